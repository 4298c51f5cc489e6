"""
Document Emitter - Wraps a compiled root in the bot runtime envelope and
serializes it to canonical JSON text.
Compiled trees can nest far deeper than the interpreter's recursion limit
(three JSON levels per Template or Interactive node), so encoding walks the
document with an explicit stack and only hands scalars to the json module.
"""

import json
from typing import Optional, Dict, List, Any, Tuple, Union

from botscript.compiler.nodes import CompiledNode, BackReference

ENVELOPE_KEY = "create_bot_node"


class _Raw(str):
    """Already-encoded JSON text waiting on the encoder stack."""


def dumps_json(value: Any, indent: Optional[int] = None) -> str:
    """
    Encode dicts, lists, tuples and JSON scalars without recursing on the
    Python stack. Output matches json.dumps(..., ensure_ascii=False) with
    compact separators, or with the given indent.
    """
    chunks: List[str] = []
    stack: List[Tuple[Any, int]] = [(value, 0)]
    while stack:
        item, depth = stack.pop()
        if isinstance(item, _Raw):
            chunks.append(item)
            continue
        if isinstance(item, dict):
            entries = [(json.dumps(str(k), ensure_ascii=False), v) for k, v in item.items()]
            opener, closer = "{", "}"
        elif isinstance(item, (list, tuple)):
            entries = [(None, v) for v in item]
            opener, closer = "[", "]"
        else:
            chunks.append(json.dumps(item, ensure_ascii=False))
            continue
        if not entries:
            chunks.append(opener + closer)
            continue

        if indent is None:
            lead, sep, colon = "", ",", ":"
            tail = closer
        else:
            inner = "\n" + " " * (indent * (depth + 1))
            lead, sep, colon = inner, "," + inner, ": "
            tail = "\n" + " " * (indent * depth) + closer

        pending: List[Tuple[Any, int]] = [(_Raw(opener + lead), depth)]
        for i, (key, child) in enumerate(entries):
            prefix = sep if i else ""
            if key is not None:
                prefix += key + colon
            if prefix:
                pending.append((_Raw(prefix), depth))
            pending.append((child, depth + 1))
        pending.append((_Raw(tail), depth))
        stack.extend(reversed(pending))
    return "".join(chunks)


class DocumentEmitter:
    """Produces {"create_bot_node": [root]} documents with a stable field order."""

    def __init__(self, indent: Optional[int] = None):
        self.indent = indent

    def envelope(self, root: Optional[CompiledNode]) -> Dict[str, List[Any]]:
        return {ENVELOPE_KEY: [root.to_dict() if root is not None else None]}

    def dumps(self, root: Optional[CompiledNode]) -> str:
        return self.dumps_document(self.envelope(root))

    def dumps_document(self, document: Dict[str, Any]) -> str:
        return dumps_json(document, indent=self.indent)

    def encode(self, root: Optional[CompiledNode]) -> bytes:
        return self.dumps(root).encode("utf-8")

    def outline(self, root: Optional[CompiledNode]) -> List[str]:
        """Indented one-line-per-node summary of a compiled tree."""
        lines: List[str] = []
        if root is None:
            return lines
        stack: List[Tuple[int, str, Union[CompiledNode, BackReference]]] = [(0, "", root)]
        while stack:
            depth, via, item = stack.pop()
            pad = " " * (depth * 2)
            if isinstance(item, BackReference):
                lines.append(f"{pad}{via}-> $ref {item.ref}")
                continue
            custom_type = item.attributes.get("custom_type") or "N/A"
            lines.append(
                f"{pad}{via}Node ID: {item.id}, Type: {item.node_type}, Custom Type: {custom_type}"
            )
            children: List[Tuple[int, str, Union[CompiledNode, BackReference]]] = []
            for button in item.buttons:
                if button.routes and button.next_node is not None:
                    children.append((depth + 1, f"[{button.title}] ", button.next_node))
            if item.next_node is not None:
                children.append((depth + 1, "", item.next_node))
            stack.extend(reversed(children))
        return lines
