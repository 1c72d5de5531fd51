"""Storage adapter factory - creates the right back-end based on config."""

from __future__ import annotations

from src.config import settings
from src.ports.storage_port import StoragePort


def create_storage() -> StoragePort:
    """Return the storage adapter matching the STORAGE_BACKEND setting."""
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "json":
        from src.adapters.json_file_storage import JsonFileStorage

        return JsonFileStorage(path=settings.DATA_PATH, default_tz=settings.tz)

    if backend == "sqlite":
        from src.adapters.sqlite_storage import SQLiteStorage

        return SQLiteStorage(db_path=settings.DATABASE_PATH, default_tz=settings.tz)

    if backend == "memory":
        from src.adapters.memory_storage import InMemoryStorage

        return InMemoryStorage()

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")
