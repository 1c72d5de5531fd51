"""JSON flat-file storage adapter.

Keeps the whole collection in one pretty-printed JSON array. Writes go to a
temporary file in the same directory and are moved into place with
``os.replace``, so a crash mid-write leaves the previous file intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import tzinfo
from pathlib import Path

from src.data.models import Obligation, ValidationError
from src.ports.storage_port import PersistenceError

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """StoragePort backed by a single JSON file."""

    name = "json"

    def __init__(self, path: str | None = None, default_tz: tzinfo | None = None) -> None:
        if path is None:
            from src.config import settings
            path = settings.DATA_PATH
            default_tz = default_tz or settings.tz

        self._path = Path(path)
        self._default_tz = default_tz
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> list[Obligation]:
        if not self._path.exists():
            logger.info("No data file at %s, starting empty", self._path)
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Cannot read {self._path}: {exc}") from exc

        if not isinstance(raw, list):
            raise PersistenceError(f"{self._path} does not contain a JSON array")

        try:
            obligations = [Obligation.from_dict(item, self._default_tz) for item in raw]
        except ValidationError as exc:
            raise PersistenceError(f"Corrupt obligation in {self._path}: {exc}") from exc
        logger.debug("Loaded %d obligations from %s", len(obligations), self._path)
        return obligations

    def save_all(self, obligations: list[Obligation]) -> None:
        payload = json.dumps([o.to_dict() for o in obligations], indent=2)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error("Error saving obligations to %s: %s", self._path, exc)
            raise PersistenceError(f"Cannot write {self._path}: {exc}") from exc
        logger.debug("Saved %d obligations to %s", len(obligations), self._path)
