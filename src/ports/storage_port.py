"""Storage port - abstract interface for persisting obligations.

The store depends on this protocol, never on a specific medium. Back-ends
use full-collection replace semantics: the whole list is read at startup
and rewritten on every mutation.
"""

from __future__ import annotations

from typing import Protocol

from src.data.models import Obligation


class PersistenceError(Exception):
    """Raised when a storage back-end cannot read or durably write the collection."""


class StoragePort(Protocol):
    """Abstract storage interface used by ObligationStore."""

    name: str

    def load_all(self) -> list[Obligation]: ...

    def save_all(self, obligations: list[Obligation]) -> None: ...
