"""
Graph Models - Node and edge records held by the graph store.
Both serialize to the canvas wire shape ({"id", "type", "position", "data"}
and {"id", "source", "target", "type"}) so snapshots round-trip with the editor.
"""

import copy
from typing import Dict, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class EdgeType(str, Enum):
    """Edge kinds. The canvas only ever draws one transition kind."""
    TRANSITION = "custom"


class ScriptNode(BaseModel):
    """A single bot action on the canvas."""
    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(alias="id")
    node_type: str = Field(alias="type")
    position: Dict[str, float] = Field(default_factory=lambda: {"x": 0.0, "y": 0.0})
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        """Display label: title, then label, then the editor id."""
        for key in ("title", "label"):
            value = self.data.get(key)
            if value not in (None, ""):
                return str(value)
        return self.node_id

    def clone(self, node_id: str, offset_x: float = 0.0, offset_y: float = 0.0) -> "ScriptNode":
        """Sibling copy with its own id, shifted position, and independently owned data."""
        return ScriptNode(
            node_id=node_id,
            node_type=self.node_type,
            position={
                "x": float(self.position.get("x", 0.0)) + offset_x,
                "y": float(self.position.get("y", 0.0)) + offset_y,
            },
            data=copy.deepcopy(self.data),
        )

    def to_canvas(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ScriptEdge(BaseModel):
    """A directed transition between two nodes."""
    model_config = ConfigDict(populate_by_name=True)

    edge_id: str = Field(alias="id")
    source_node_id: str = Field(alias="source")
    target_node_id: str = Field(alias="target")
    edge_type: EdgeType = Field(default=EdgeType.TRANSITION, alias="type")

    def touches(self, node_id: str) -> bool:
        return self.source_node_id == node_id or self.target_node_id == node_id

    def to_canvas(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
