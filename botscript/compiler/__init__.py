"""Script Compiler - Compile the canvas graph into the nested bot execution document"""
from .registry import NodeTypeRegistry, NodeSchema, NodeType, FieldSource, SlotPlacement
from .nodes import CompiledNode, ButtonReply, BackReference
from .compiler import ScriptCompiler, CompilationResult
from .emitter import DocumentEmitter, ENVELOPE_KEY

__all__ = [
    "NodeTypeRegistry",
    "NodeSchema",
    "NodeType",
    "FieldSource",
    "SlotPlacement",
    "CompiledNode",
    "ButtonReply",
    "BackReference",
    "ScriptCompiler",
    "CompilationResult",
    "DocumentEmitter",
    "ENVELOPE_KEY",
]
