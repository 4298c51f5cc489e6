"""
Script Compiler - Compiles the canvas node/edge graph into the nested bot
execution tree.

Compilation Pipeline:
1. Root lookup (absent root compiles to an empty document, not an error)
2. Outgoing-edge grouping by source, in insertion order
3. Depth-first expansion on an explicit stack, one frame per node
4. Branch-slot filling from the Node Type Registry (extra edges dropped)
5. Path-scoped cycle handling (back-reference marker or reject)
6. Fresh id issuance per compiled node
"""

import logging
import time
from typing import Optional, Dict, List, Any, Iterable, Set, Literal
from pydantic import BaseModel, Field

from botscript.errors import CycleDetectedError
from botscript.ids import IdGenerator, RandomIdGenerator
from botscript.graph.models import ScriptNode, ScriptEdge
from botscript.compiler.registry import NodeTypeRegistry, NodeSchema, SlotPlacement
from botscript.compiler.nodes import CompiledNode, ButtonReply, BackReference, Slot
from botscript.compiler.emitter import DocumentEmitter

logger = logging.getLogger(__name__)

CyclePolicy = Literal["back_reference", "reject"]


class CompilationResult(BaseModel):
    """Result of compiling a canvas graph."""
    success: bool = False
    root_id: str = ""
    node_count: int = 0
    edge_count: int = 0
    compiled_node_count: int = 0
    back_reference_count: int = 0
    compilation_time_ms: float = 0.0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    compiled_node_ids: List[str] = Field(default_factory=list)
    document: Optional[Dict[str, Any]] = None
    root: Optional[CompiledNode] = Field(default=None, exclude=True)


class _Frame:
    """One node being expanded: its schema, fresh id, slot targets, and finished children."""

    __slots__ = ("node", "schema", "compiled_id", "targets", "children")

    def __init__(self, node: ScriptNode, schema: NodeSchema, compiled_id: str, targets: List[Optional[str]]):
        self.node = node
        self.schema = schema
        self.compiled_id = compiled_id
        self.targets = targets
        self.children: List[Slot] = []


class ScriptCompiler:
    """
    Walks the graph from a root node and produces a CompiledNode tree.
    Every call is a full recomputation; nothing is cached between runs.
    """

    def __init__(
        self,
        registry: Optional[NodeTypeRegistry] = None,
        id_generator: Optional[IdGenerator] = None,
        cycle_policy: CyclePolicy = "back_reference",
        emitter: Optional[DocumentEmitter] = None,
    ):
        if cycle_policy not in ("back_reference", "reject"):
            raise ValueError(f"Unknown cycle policy: {cycle_policy}")
        self.registry = registry or NodeTypeRegistry()
        self.id_generator = id_generator or RandomIdGenerator()
        self.cycle_policy = cycle_policy
        self.emitter = emitter or DocumentEmitter()

    def compile(
        self,
        nodes: Iterable[ScriptNode],
        edges: Iterable[ScriptEdge],
        root_id: str,
    ) -> Optional[CompiledNode]:
        """
        Compile the graph reachable from root_id.

        Returns None when root_id is not among nodes. Raises CycleDetectedError
        only under the reject cycle policy.
        """
        warnings: List[str] = []
        root = self._compile(nodes, edges, root_id, warnings)
        for w in warnings:
            logger.warning(f"[COMPILER] {w}")
        return root

    def build(
        self,
        nodes: Iterable[ScriptNode],
        edges: Iterable[ScriptEdge],
        root_id: str,
    ) -> CompilationResult:
        """Compile and wrap the outcome, envelope included, in a CompilationResult."""
        start = time.perf_counter()
        nodes = list(nodes)
        edges = list(edges)
        result = CompilationResult(root_id=root_id, node_count=len(nodes), edge_count=len(edges))

        try:
            root = self._compile(nodes, edges, root_id, result.warnings)
        except CycleDetectedError as e:
            logger.warning(f"[COMPILER] Rejected graph: {e}")
            result.errors.append(str(e))
            result.compilation_time_ms = round((time.perf_counter() - start) * 1000, 3)
            return result

        for w in result.warnings:
            logger.warning(f"[COMPILER] {w}")
        if root is None:
            result.warnings.append(f"Root node '{root_id}' not found; document is empty")
        else:
            compiled = list(root.walk())
            result.compiled_node_count = len(compiled)
            result.compiled_node_ids = [c.source_node_id for c in compiled]
            result.back_reference_count = len(root.back_references())

        result.root = root
        result.document = self.emitter.envelope(root)
        result.success = True
        result.compilation_time_ms = round((time.perf_counter() - start) * 1000, 3)
        return result

    # ── Traversal ─────────────────────────────────────────────────────

    def _compile(
        self,
        nodes: Iterable[ScriptNode],
        edges: Iterable[ScriptEdge],
        root_id: str,
        warnings: List[str],
    ) -> Optional[CompiledNode]:
        node_map: Dict[str, ScriptNode] = {n.node_id: n for n in nodes}
        if root_id not in node_map:
            return None

        outgoing: Dict[str, List[ScriptEdge]] = {}
        for e in edges:
            outgoing.setdefault(e.source_node_id, []).append(e)

        self.id_generator.start_run()
        path: List[str] = [root_id]
        on_path: Set[str] = {root_id}
        stack: List[_Frame] = [self._open(node_map[root_id], outgoing, warnings)]
        root: Optional[CompiledNode] = None

        while stack:
            frame = stack[-1]
            if len(frame.children) < len(frame.targets):
                target_id = frame.targets[len(frame.children)]
                if target_id is None:
                    frame.children.append(None)
                    continue
                target = node_map.get(target_id)
                if target is None:
                    warnings.append(
                        f"Node '{frame.node.node_id}' links to missing node '{target_id}'; slot left empty"
                    )
                    frame.children.append(None)
                    continue
                if target_id in on_path:
                    if self.cycle_policy == "reject":
                        raise CycleDetectedError(path, target_id)
                    frame.children.append(BackReference(ref=target_id))
                    continue
                stack.append(self._open(target, outgoing, warnings))
                path.append(target_id)
                on_path.add(target_id)
                continue

            stack.pop()
            path.pop()
            on_path.discard(frame.node.node_id)
            compiled = self._close(frame, node_map)
            if stack:
                stack[-1].children.append(compiled)
            else:
                root = compiled

        return root

    def _open(
        self,
        node: ScriptNode,
        outgoing: Dict[str, List[ScriptEdge]],
        warnings: List[str],
    ) -> _Frame:
        schema = self.registry.resolve(node.node_type)
        if not self.registry.is_registered(node.node_type):
            warnings.append(
                f"Node '{node.node_id}' has unregistered type '{node.node_type}'; compiled as terminal leaf"
            )
        slots = schema.branch_slot_count
        node_edges = outgoing.get(node.node_id, [])
        if len(node_edges) > slots:
            dropped = [e.edge_id for e in node_edges[slots:]]
            warnings.append(
                f"Node '{node.node_id}' ({schema.node_type}) has {len(node_edges)} outgoing edges "
                f"but {slots} slot(s); ignoring {dropped}"
            )
        targets: List[Optional[str]] = [e.target_node_id for e in node_edges[:slots]]
        targets.extend([None] * (slots - len(targets)))
        return _Frame(node, schema, self.id_generator.new_id(), targets)

    def _close(self, frame: _Frame, node_map: Dict[str, ScriptNode]) -> CompiledNode:
        schema = frame.schema
        node = frame.node
        buttons: List[ButtonReply] = []
        next_node: Slot = None

        if schema.slot_placement == SlotPlacement.BUTTONS:
            for i in range(schema.button_count()):
                target_id = frame.targets[i] if i < len(frame.targets) else None
                target = node_map.get(target_id) if target_id else None
                buttons.append(ButtonReply(
                    button_id=f"id{i + 1}",
                    title=schema.button_title(i, node, target),
                    next_node=frame.children[i] if i < len(frame.children) else None,
                ))
        elif schema.slot_placement == SlotPlacement.TOP_LEVEL:
            for i in range(schema.button_count()):
                buttons.append(ButtonReply(
                    button_id=f"id{i + 1}",
                    title=schema.button_title(i, node),
                    routes=False,
                ))
            next_node = frame.children[0] if frame.children else None

        return CompiledNode(
            id=frame.compiled_id,
            node_type=schema.node_type,
            source_node_id=node.node_id,
            bot_terminate=schema.terminal,
            field_order=tuple(schema.output_field_names),
            attributes=schema.resolve_fields(node, frame.compiled_id),
            buttons=tuple(buttons),
            next_node=next_node,
        )
