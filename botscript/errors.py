"""Error kinds raised by the graph store and the compiler."""

from typing import List, Sequence


class BotScriptError(Exception):
    """Base class for bot script builder errors."""


class NotFoundError(BotScriptError, LookupError):
    """A mutation referenced a node or edge id that is not in the store."""

    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind.capitalize()} '{item_id}' not found")


class CycleDetectedError(BotScriptError, ValueError):
    """Raised under the reject cycle policy when a branch revisits its own path."""

    def __init__(self, path: Sequence[str], node_id: str):
        self.path: List[str] = list(path)
        self.node_id = node_id
        loop = " -> ".join(self.path + [node_id])
        super().__init__(f"Cycle detected at node '{node_id}': {loop}")


class GraphIntegrityError(BotScriptError, ValueError):
    """A graph snapshot violates the store's referential invariants."""

    def __init__(self, errors: Sequence[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors))
