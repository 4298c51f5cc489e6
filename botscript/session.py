"""
Editor Session - Binds a graph store to the compiler and emitter.
Every successful mutation triggers a full recompile from the session root;
the latest result and document are kept for the canvas to read back.
"""

import json
import logging
from typing import Optional, Dict, List, Any

from botscript.config.settings import Settings, settings as default_settings
from botscript.ids import RandomIdGenerator
from botscript.graph.store import GraphStore
from botscript.compiler.registry import NodeTypeRegistry, NodeType
from botscript.compiler.compiler import ScriptCompiler, CompilationResult
from botscript.compiler.emitter import DocumentEmitter, ENVELOPE_KEY
from botscript.compiler.nodes import CompiledNode

logger = logging.getLogger(__name__)


class EditorSession:
    """One single-writer editing session: store, compiler, and the last compiled document."""

    def __init__(
        self,
        store: Optional[GraphStore] = None,
        compiler: Optional[ScriptCompiler] = None,
        root_id: Optional[str] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.emitter = DocumentEmitter(indent=self.config.json_indent)
        self.store = store or GraphStore(
            copy_offset=(self.config.copy_offset_x, self.config.copy_offset_y),
        )
        self.compiler = compiler or ScriptCompiler(
            registry=NodeTypeRegistry(document_url=self.config.default_document_url),
            id_generator=RandomIdGenerator(prefix=self.config.id_prefix),
            cycle_policy=self.config.cycle_policy,
            emitter=self.emitter,
        )
        self.root_id = root_id or self.config.root_node_id
        self.last_result: Optional[CompilationResult] = None
        self.compile_count = 0
        self._unsubscribe = self.store.subscribe(self._on_mutation)
        self.recompile()

    # ── Mutation API ──────────────────────────────────────────────────

    def add_node(self, node_type: str, data: Optional[Dict[str, Any]] = None,
                 position: Optional[Dict[str, float]] = None) -> str:
        return self.store.add_node(node_type, data, position)

    def copy_node(self, node_id: str) -> str:
        return self.store.copy_node(node_id)

    def update_node(self, node_id: str, data: Optional[Dict[str, Any]] = None,
                    position: Optional[Dict[str, float]] = None) -> None:
        self.store.update_node(node_id, data=data, position=position)

    def delete_node(self, node_id: str) -> None:
        self.store.delete_node(node_id)

    def connect(self, source_id: str, target_id: str) -> str:
        return self.store.connect(source_id, target_id)

    def delete_edge(self, edge_id: str) -> None:
        self.store.delete_edge(edge_id)

    def load_snapshot(self, data: Dict[str, Any]) -> None:
        self.store.load_snapshot(data)

    def seed_default(self) -> List[str]:
        """Starting canvas: a Document node and a Template node, unconnected."""
        first = self.store.add_node(
            NodeType.DOCUMENT.value, {"title": "Node 1"}, {"x": 100.0, "y": 100.0},
        )
        second = self.store.add_node(
            NodeType.TEMPLATE.value, {"title": "Node 2"}, {"x": 400.0, "y": 100.0},
        )
        return [first, second]

    # ── Compilation ───────────────────────────────────────────────────

    def set_root(self, root_id: str) -> CompilationResult:
        self.root_id = root_id
        return self.recompile()

    def recompile(self) -> CompilationResult:
        """Full recompilation of the current graph from the session root."""
        result = self.compiler.build(self.store.nodes, self.store.edges, self.root_id)
        self.last_result = result
        self.compile_count += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"[SESSION] Graph JSON: {json.dumps(self.store.snapshot(), indent=2)}")
            if result.document is not None:
                logger.debug(f"[SESSION] Nested JSON: {self.emitter.dumps_document(result.document)}")
        if not result.success:
            logger.warning(f"[SESSION] Compile of root '{self.root_id}' failed: {result.errors}")
        return result

    @property
    def tree(self) -> Optional[CompiledNode]:
        """Compiled tree behind the current document."""
        if self.last_result is None:
            return None
        return self.last_result.root

    def outline(self) -> List[str]:
        lines = self.emitter.outline(self.tree)
        for line in lines:
            logger.debug(f"[SESSION] {line}")
        return lines

    @property
    def document(self) -> Optional[Dict[str, Any]]:
        """Envelope from the last successful compile; None after a rejected cycle."""
        if self.last_result is None:
            return None
        return self.last_result.document

    @property
    def document_json(self) -> Optional[str]:
        document = self.document
        if document is None:
            return None
        return self.emitter.dumps_document(document)

    @property
    def compiled_root(self) -> Optional[Dict[str, Any]]:
        document = self.document
        if document is None:
            return None
        return document[ENVELOPE_KEY][0]

    def close(self) -> None:
        self._unsubscribe()

    def _on_mutation(self, event: str, store: GraphStore) -> None:
        logger.debug(f"[SESSION] {event}; recompiling from root '{self.root_id}'")
        self.recompile()
