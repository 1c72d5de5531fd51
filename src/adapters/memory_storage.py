"""In-memory storage adapter, for tests and throwaway sessions."""

from __future__ import annotations

from src.data.models import Obligation


class InMemoryStorage:
    """StoragePort that keeps copies in a list; nothing survives the process."""

    name = "memory"

    def __init__(self, obligations: list[Obligation] | None = None) -> None:
        self._items = [o.copy() for o in obligations or []]
        self.save_count = 0

    def load_all(self) -> list[Obligation]:
        return [o.copy() for o in self._items]

    def save_all(self, obligations: list[Obligation]) -> None:
        self._items = [o.copy() for o in obligations]
        self.save_count += 1
