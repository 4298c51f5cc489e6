"""
Node Type Registry - Data-driven table of per-type output schemas.
Each entry declares the branch-slot count, the ordered output field names,
and where every field's value comes from. Adding a node type is a table
edit here; the compiler's traversal never branches on a type tag.
"""

import logging
from typing import Optional, Dict, List, Any, Literal
from enum import Enum
from pydantic import BaseModel, Field

from botscript.graph.models import ScriptNode

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_URL = "https://example.com"


class NodeType(str, Enum):
    """Closed set of bot action types understood by the runtime."""
    DOCUMENT = "Document"
    TEMPLATE = "Template"
    INTERACTIVE = "Interactive"
    FLOW = "Flow"
    WEBHOOK = "Webhook"
    UNKNOWN = "Unknown"


# Palette tags issued by the first canvas build.
LEGACY_ALIASES: Dict[str, NodeType] = {
    "customNode1": NodeType.DOCUMENT,
    "customNode2": NodeType.TEMPLATE,
    "customNode3": NodeType.INTERACTIVE,
    "customNode4": NodeType.FLOW,
    "customNode5": NodeType.WEBHOOK,
}


class SlotPlacement(str, Enum):
    """Where a schema puts its compiled next_node values."""
    NONE = "none"            # terminal, no slots
    BUTTONS = "buttons"      # one slot per button_reply entry
    TOP_LEVEL = "top_level"  # a single next_node field on the node itself


class FieldSource(BaseModel):
    """Where one output field's value comes from."""
    kind: Literal["constant", "data", "label", "compiled_id"]
    value: Any = None    # constant value, or the data key for kind="data"
    default: Any = None  # used when a data key is missing or empty


class NodeSchema(BaseModel):
    """Output schema for one node type."""
    node_type: str
    branch_slot_count: int = 0
    terminal: bool = False
    slot_placement: SlotPlacement = SlotPlacement.NONE
    output_field_names: List[str] = Field(default_factory=list)
    field_mapping: Dict[str, FieldSource] = Field(default_factory=dict)
    button_titles: List[str] = Field(default_factory=list)
    description: str = ""

    def resolve_fields(self, node: ScriptNode, compiled_id: str) -> Dict[str, Any]:
        """Values for every mapped output field of a node."""
        values: Dict[str, Any] = {}
        for name, source in self.field_mapping.items():
            if source.kind == "constant":
                values[name] = source.value
            elif source.kind == "compiled_id":
                values[name] = compiled_id
            elif source.kind == "label":
                values[name] = node.label
            else:
                raw = node.data.get(source.value)
                values[name] = raw if raw not in (None, "") else source.default
        return values

    def button_count(self) -> int:
        if self.slot_placement == SlotPlacement.NONE:
            return 0
        return max(len(self.button_titles), self.branch_slot_count)

    def button_title(
        self,
        index: int,
        node: ScriptNode,
        target: Optional[ScriptNode] = None,
    ) -> str:
        """Per-node override, then the target's label on routed buttons, then the default."""
        overrides = node.data.get("buttons")
        if isinstance(overrides, list) and index < len(overrides) and overrides[index]:
            return str(overrides[index])
        if self.slot_placement == SlotPlacement.BUTTONS and target is not None:
            return target.label
        if index < len(self.button_titles):
            return self.button_titles[index]
        return f"Option {index + 1}"


def _button_schema(
    node_type: NodeType,
    slots: int,
    titles: List[str],
    description: str,
) -> NodeSchema:
    placement = SlotPlacement.BUTTONS if slots > 1 else SlotPlacement.TOP_LEVEL
    fields = ["id", "bot_terminate", "type", "type_id", "context"]
    if placement == SlotPlacement.TOP_LEVEL:
        fields.append("next_node")
    return NodeSchema(
        node_type=node_type.value,
        branch_slot_count=slots,
        slot_placement=placement,
        output_field_names=fields,
        field_mapping={
            "type": FieldSource(kind="constant", value=node_type.value),
            "type_id": FieldSource(kind="compiled_id"),
        },
        button_titles=titles,
        description=description,
    )


def default_schemas(document_url: str = DEFAULT_DOCUMENT_URL) -> List[NodeSchema]:
    """The built-in schema table."""
    return [
        NodeSchema(
            node_type=NodeType.DOCUMENT.value,
            terminal=True,
            output_field_names=["id", "bot_terminate", "custom_type", "document_url"],
            field_mapping={
                "custom_type": FieldSource(kind="constant", value="Document"),
                "document_url": FieldSource(kind="data", value="document_url", default=document_url),
            },
            description="Send a document",
        ),
        _button_schema(NodeType.TEMPLATE, 2, ["Yes", "No"], "Two-button template"),
        _button_schema(NodeType.INTERACTIVE, 2, ["Register Now", "Login"], "Interactive reply buttons"),
        _button_schema(NodeType.FLOW, 1, ["Sent"], "Hand off to a flow"),
        _button_schema(NodeType.WEBHOOK, 1, ["Action Completed"], "Call a webhook"),
        NodeSchema(
            node_type=NodeType.UNKNOWN.value,
            terminal=True,
            output_field_names=["id", "type", "bot_terminate", "text"],
            field_mapping={
                "type": FieldSource(kind="constant", value=NodeType.UNKNOWN.value),
                "text": FieldSource(kind="label"),
            },
            description="Fallback leaf for unregistered types",
        ),
    ]


class NodeTypeRegistry:
    """
    Lookup table from type tag to NodeSchema.
    Tags that are neither registered nor aliased resolve to the Unknown schema.
    """

    def __init__(self, document_url: str = DEFAULT_DOCUMENT_URL):
        self._schemas: Dict[str, NodeSchema] = {}
        self._aliases: Dict[str, str] = {tag: t.value for tag, t in LEGACY_ALIASES.items()}
        for schema in default_schemas(document_url):
            self.register(schema)

    def register(self, schema: NodeSchema) -> NodeSchema:
        """Add or replace a type's schema."""
        if schema.terminal and schema.branch_slot_count:
            raise ValueError(f"Terminal schema '{schema.node_type}' cannot declare branch slots")
        if schema.branch_slot_count and schema.slot_placement == SlotPlacement.NONE:
            raise ValueError(f"Schema '{schema.node_type}' declares slots but no slot placement")
        if schema.slot_placement == SlotPlacement.TOP_LEVEL and schema.branch_slot_count != 1:
            raise ValueError(f"Top-level next_node only fits one slot (got {schema.branch_slot_count})")
        self._schemas[schema.node_type] = schema
        return schema

    def alias(self, tag: str, node_type: str) -> None:
        if node_type not in self._schemas:
            raise ValueError(f"Cannot alias '{tag}' to unregistered type '{node_type}'")
        self._aliases[tag] = node_type

    def is_registered(self, tag: str) -> bool:
        return tag in self._schemas or tag in self._aliases

    def get(self, tag: str) -> Optional[NodeSchema]:
        return self._schemas.get(self._aliases.get(tag, tag))

    def resolve(self, tag: str) -> NodeSchema:
        """Schema for a tag, degrading to the Unknown schema."""
        schema = self.get(tag)
        if schema is None:
            logger.debug(f"[REGISTRY] Unregistered node type '{tag}', using {NodeType.UNKNOWN.value}")
            return self._schemas[NodeType.UNKNOWN.value]
        return schema

    def list_types(self) -> List[NodeSchema]:
        return list(self._schemas.values())

    def aliases(self) -> Dict[str, str]:
        return dict(self._aliases)
