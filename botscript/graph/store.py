"""
Graph Store - Owns the node set and the ordered edge list of one editing session.
Every mutation validates before it touches state, so a failed call leaves the
store unchanged. Deleting a node cascades to every edge that references it.
"""

import copy
import logging
from typing import Optional, Dict, List, Any, Callable, Iterable, Tuple
from pydantic import ValidationError

from botscript.errors import NotFoundError, GraphIntegrityError
from botscript.ids import IdGenerator, CounterIdGenerator
from botscript.graph.models import ScriptNode, ScriptEdge

logger = logging.getLogger(__name__)

GraphListener = Callable[[str, "GraphStore"], None]


class GraphStore:
    """
    Framework-independent node/edge store behind the canvas.
    Nodes are keyed by editor id in insertion order; edges are kept as an
    ordered list because insertion order decides branch-slot assignment.
    """

    def __init__(
        self,
        node_ids: Optional[IdGenerator] = None,
        edge_ids: Optional[IdGenerator] = None,
        copy_offset: Tuple[float, float] = (250.0, 150.0),
    ):
        self._nodes: Dict[str, ScriptNode] = {}
        self._edges: List[ScriptEdge] = []
        self._node_ids = node_ids or CounterIdGenerator(prefix="", restart_each_run=False)
        self._edge_ids = edge_ids or CounterIdGenerator(prefix="edge_", restart_each_run=False)
        self._copy_offset = copy_offset
        self._listeners: List[GraphListener] = []

    # ── Mutations ─────────────────────────────────────────────────────

    def add_node(
        self,
        node_type: str,
        data: Optional[Dict[str, Any]] = None,
        position: Optional[Dict[str, float]] = None,
    ) -> str:
        """Insert a node with a fresh editor id."""
        node = ScriptNode(
            node_id=self._fresh_node_id(),
            node_type=node_type,
            position=dict(position) if position else {"x": 0.0, "y": 0.0},
            data=copy.deepcopy(data) if data is not None else {"title": f"Node {node_type}"},
        )
        self._nodes[node.node_id] = node
        logger.info(f"[GRAPH] Added node {node.node_id} ({node_type})")
        self._notify("node_added")
        return node.node_id

    def copy_node(self, node_id: str) -> str:
        """Create a sibling of an existing node with its own id and data."""
        original = self._require_node(node_id)
        dx, dy = self._copy_offset
        clone = original.clone(self._fresh_node_id(), offset_x=dx, offset_y=dy)
        self._nodes[clone.node_id] = clone
        logger.info(f"[GRAPH] Copied node {node_id} -> {clone.node_id}")
        self._notify("node_copied")
        return clone.node_id

    def update_node(
        self,
        node_id: str,
        data: Optional[Dict[str, Any]] = None,
        position: Optional[Dict[str, float]] = None,
    ) -> ScriptNode:
        """Merge display attributes into a node and/or move it."""
        node = self._require_node(node_id)
        if data:
            node.data.update(copy.deepcopy(data))
        if position is not None:
            node.position = dict(position)
        self._notify("node_updated")
        return node

    def delete_node(self, node_id: str) -> None:
        """Remove a node and every edge touching it. No-op if absent."""
        if node_id not in self._nodes:
            return
        del self._nodes[node_id]
        kept = [e for e in self._edges if not e.touches(node_id)]
        dropped = len(self._edges) - len(kept)
        self._edges = kept
        logger.info(f"[GRAPH] Deleted node {node_id} and {dropped} attached edge(s)")
        self._notify("node_deleted")

    def delete_edge(self, edge_id: str) -> None:
        """Remove an edge. No-op if absent."""
        for i, edge in enumerate(self._edges):
            if edge.edge_id == edge_id:
                del self._edges[i]
                logger.info(f"[GRAPH] Deleted edge {edge_id}")
                self._notify("edge_deleted")
                return

    def connect(self, source_id: str, target_id: str) -> str:
        """Append a transition edge. Self-loops and parallel edges are allowed."""
        self._require_node(source_id)
        self._require_node(target_id)
        edge = ScriptEdge(
            edge_id=self._fresh_edge_id(),
            source_node_id=source_id,
            target_node_id=target_id,
        )
        self._edges.append(edge)
        logger.info(f"[GRAPH] Connected {source_id} -> {target_id} ({edge.edge_id})")
        self._notify("edge_added")
        return edge.edge_id

    # ── Queries ───────────────────────────────────────────────────────

    def get_node(self, node_id: str) -> Optional[ScriptNode]:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[ScriptEdge]:
        for e in self._edges:
            if e.edge_id == edge_id:
                return e
        return None

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    @property
    def nodes(self) -> List[ScriptNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[ScriptEdge]:
        return list(self._edges)

    def outgoing_edges(self, node_id: str) -> List[ScriptEdge]:
        return [e for e in self._edges if e.source_node_id == node_id]

    def incoming_edges(self, node_id: str) -> List[ScriptEdge]:
        return [e for e in self._edges if e.target_node_id == node_id]

    def __len__(self) -> int:
        return len(self._nodes)

    # ── Listeners ─────────────────────────────────────────────────────

    def subscribe(self, listener: GraphListener) -> Callable[[], None]:
        """Register a callback fired after each successful mutation. Returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    # ── Import / Export ───────────────────────────────────────────────

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Canvas-shaped export of the current graph."""
        return {
            "nodes": [n.to_canvas() for n in self._nodes.values()],
            "edges": [e.to_canvas() for e in self._edges],
        }

    def load_snapshot(self, data: Dict[str, Any]) -> None:
        """Replace the whole graph from a canvas export. Atomic on failure."""
        try:
            nodes = [ScriptNode(**n) for n in data.get("nodes", [])]
            edges = [ScriptEdge(**e) for e in data.get("edges", [])]
        except ValidationError as e:
            raise GraphIntegrityError([err["msg"] for err in e.errors()]) from e
        errors = self._integrity_errors(nodes, edges)
        if errors:
            raise GraphIntegrityError(errors)
        self._nodes = {n.node_id: n for n in nodes}
        self._edges = edges
        logger.info(f"[GRAPH] Loaded snapshot with {len(nodes)} node(s), {len(edges)} edge(s)")
        self._notify("graph_loaded")

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any], **kwargs: Any) -> "GraphStore":
        store = cls(**kwargs)
        store.load_snapshot(data)
        return store

    @staticmethod
    def _integrity_errors(nodes: Iterable[ScriptNode], edges: Iterable[ScriptEdge]) -> List[str]:
        errors = []
        node_ids = set()
        for n in nodes:
            if n.node_id in node_ids:
                errors.append(f"Duplicate node id '{n.node_id}'")
            node_ids.add(n.node_id)
        edge_ids = set()
        for e in edges:
            if e.edge_id in edge_ids:
                errors.append(f"Duplicate edge id '{e.edge_id}'")
            edge_ids.add(e.edge_id)
            if e.source_node_id not in node_ids:
                errors.append(f"Edge {e.edge_id}: source '{e.source_node_id}' not found")
            if e.target_node_id not in node_ids:
                errors.append(f"Edge {e.edge_id}: target '{e.target_node_id}' not found")
        return errors

    # ── Internals ─────────────────────────────────────────────────────

    def _require_node(self, node_id: str) -> ScriptNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFoundError("node", node_id)
        return node

    def _fresh_node_id(self) -> str:
        while True:
            candidate = self._node_ids.new_id()
            if candidate not in self._nodes:
                return candidate

    def _fresh_edge_id(self) -> str:
        taken = {e.edge_id for e in self._edges}
        while True:
            candidate = self._edge_ids.new_id()
            if candidate not in taken:
                return candidate
