"""Graph Store — Node/edge state of one canvas editing session."""
from .models import ScriptNode, ScriptEdge, EdgeType
from .store import GraphStore

__all__ = ["ScriptNode", "ScriptEdge", "EdgeType", "GraphStore"]
