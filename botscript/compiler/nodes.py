"""
Compiled Tree - Frozen output units produced by the script compiler.
A CompiledNode owns its next_node subtrees; a BackReference only points at
an editor node id and never owns a subtree.
"""

from typing import Optional, Dict, List, Any, Tuple, Union, Iterator
from pydantic import BaseModel, ConfigDict, Field


class BackReference(BaseModel):
    """Placeholder emitted instead of re-entering a node already on the current path."""
    model_config = ConfigDict(frozen=True)

    ref: str

    def to_dict(self) -> Dict[str, str]:
        return {"$ref": self.ref}


class ButtonReply(BaseModel):
    """One entry of a node's button_reply list."""
    model_config = ConfigDict(frozen=True)

    button_id: str
    title: str
    routes: bool = True  # carries its slot's next_node inline
    next_node: Optional[Union["CompiledNode", BackReference]] = None

    def shell(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.button_id, "title": self.title}
        if self.routes:
            out["next_node"] = None
        return out


Slot = Optional[Union["CompiledNode", BackReference]]


class CompiledNode(BaseModel):
    """A compiled bot action with a freshly issued id."""
    model_config = ConfigDict(frozen=True)

    id: str
    node_type: str
    source_node_id: str  # editor id, never emitted
    bot_terminate: bool
    field_order: Tuple[str, ...]
    attributes: Dict[str, Any] = Field(default_factory=dict)
    buttons: Tuple[ButtonReply, ...] = ()
    next_node: Slot = None

    def slots(self) -> List[Slot]:
        """Branch slot values, left to right."""
        routed = [b.next_node for b in self.buttons if b.routes]
        if "next_node" in self.field_order:
            routed.append(self.next_node)
        return routed

    def walk(self) -> Iterator["CompiledNode"]:
        """Pre-order iteration over this node and every owned descendant."""
        stack: List[CompiledNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            children = [s for s in node.slots() if isinstance(s, CompiledNode)]
            stack.extend(reversed(children))

    def back_references(self) -> List[BackReference]:
        return [
            s for node in self.walk() for s in node.slots()
            if isinstance(s, BackReference)
        ]

    def _shell(self) -> Dict[str, Any]:
        """Ordered output dict with every slot left as None."""
        out: Dict[str, Any] = {}
        for name in self.field_order:
            if name == "id":
                out["id"] = self.id
            elif name == "bot_terminate":
                out["bot_terminate"] = self.bot_terminate
            elif name == "context":
                out["context"] = {
                    "type": "button_reply",
                    "button_reply": [b.shell() for b in self.buttons],
                }
            elif name == "next_node":
                out["next_node"] = None
            else:
                out[name] = self.attributes.get(name)
        return out

    def to_dict(self) -> Dict[str, Any]:
        """Render the tree to plain dicts without recursing on the Python stack."""
        root = self._shell()
        stack: List[Tuple[CompiledNode, Dict[str, Any]]] = [(self, root)]
        while stack:
            node, out = stack.pop()
            holders: List[Tuple[Dict[str, Any], Slot]] = []
            if "context" in out:
                entries = out["context"]["button_reply"]
                for entry, button in zip(entries, node.buttons):
                    if button.routes:
                        holders.append((entry, button.next_node))
            if "next_node" in out:
                holders.append((out, node.next_node))
            for holder, child in holders:
                if isinstance(child, CompiledNode):
                    child_out = child._shell()
                    holder["next_node"] = child_out
                    stack.append((child, child_out))
                elif isinstance(child, BackReference):
                    holder["next_node"] = child.to_dict()
        return root


ButtonReply.model_rebuild()
CompiledNode.model_rebuild()
