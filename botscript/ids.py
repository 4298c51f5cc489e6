"""
Id issuance for compiled nodes and editor nodes.
Generators are injectable so tests can pin exact output; none of them read
the wall clock.
"""

import random
import string
from typing import Optional, Set

_BASE36 = string.digits + string.ascii_lowercase


class IdGenerator:
    """Issues ids that are unique within a single compile run."""

    def start_run(self) -> None:
        """Called by the compiler before each run."""

    def new_id(self) -> str:
        raise NotImplementedError


class CounterIdGenerator(IdGenerator):
    """Monotonic counter; restarts every run so identical graphs emit identical ids."""

    def __init__(self, prefix: str = "id_", start: int = 1, restart_each_run: bool = True):
        self.prefix = prefix
        self.start = start
        self.restart_each_run = restart_each_run
        self._next = start

    def start_run(self) -> None:
        if self.restart_each_run:
            self._next = self.start

    def new_id(self) -> str:
        value = f"{self.prefix}{self._next}"
        self._next += 1
        return value


class RandomIdGenerator(IdGenerator):
    """Base-36 random ids from a private, optionally seeded, Random instance."""

    def __init__(self, prefix: str = "id_", length: int = 9, seed: Optional[int] = None):
        if length < 1:
            raise ValueError("length must be at least 1")
        self.prefix = prefix
        self.length = length
        self._rng = random.Random(seed)
        self._issued: Set[str] = set()

    def start_run(self) -> None:
        self._issued.clear()

    def new_id(self) -> str:
        if len(self._issued) >= len(_BASE36) ** self.length:
            raise RuntimeError(
                f"All {len(self._issued)} ids of length {self.length} were issued in this run"
            )
        while True:
            token = "".join(self._rng.choice(_BASE36) for _ in range(self.length))
            value = f"{self.prefix}{token}"
            if value not in self._issued:
                self._issued.add(value)
                return value
