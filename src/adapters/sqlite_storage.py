"""
Obligation Tracker - SQLite storage adapter.

Obligations persist in one SQLite table. ``save_all`` replaces every row in
a single transaction, so a failed write rolls back to the previous
collection. A ``position`` column keeps insertion order.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from datetime import tzinfo
from pathlib import Path

from src.data.models import Obligation, ValidationError
from src.ports.storage_port import PersistenceError

logger = logging.getLogger(__name__)


class SQLiteStorage:
    """SQLite-backed StoragePort."""

    name = "sqlite"

    def __init__(self, db_path: str | None = None, default_tz: tzinfo | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH
            default_tz = default_tz or settings.tz

        self._db_path = db_path
        self._default_tz = default_tz
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the obligations table if it doesn't exist."""
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS obligations (
                        id                 TEXT    PRIMARY KEY,
                        position           INTEGER NOT NULL,
                        title              TEXT    NOT NULL,
                        due_at             TEXT,
                        estimated_duration INTEGER,
                        urgency            TEXT,
                        task_type          TEXT,
                        status             TEXT    NOT NULL DEFAULT 'pending',
                        created_at         TEXT    NOT NULL
                    )
                """)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot initialize {self._db_path}: {exc}") from exc
        logger.debug("Obligations table initialized at %s", self._db_path)

    def _row_to_obligation(self, row: sqlite3.Row) -> Obligation:
        return Obligation.from_dict(
            {
                "id": row["id"],
                "title": row["title"],
                "due_at": row["due_at"],
                "estimated_duration": row["estimated_duration"],
                "urgency": row["urgency"],
                "task_type": row["task_type"],
                "status": row["status"],
                "created_at": row["created_at"],
            },
            self._default_tz,
        )

    def load_all(self) -> list[Obligation]:
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    "SELECT * FROM obligations ORDER BY position"
                ).fetchall()
            return [self._row_to_obligation(r) for r in rows]
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot read {self._db_path}: {exc}") from exc
        except ValidationError as exc:
            raise PersistenceError(f"Corrupt obligation in {self._db_path}: {exc}") from exc

    def save_all(self, obligations: list[Obligation]) -> None:
        rows = []
        for position, ob in enumerate(obligations):
            d = ob.to_dict()
            rows.append((
                d["id"], position, d["title"], d["due_at"], d["estimated_duration"],
                d["urgency"], d["task_type"], d["status"], d["created_at"],
            ))

        conn = None
        try:
            conn = self._connect()
            with conn:
                conn.execute("DELETE FROM obligations")
                conn.executemany(
                    """
                    INSERT INTO obligations
                        (id, position, title, due_at, estimated_duration,
                         urgency, task_type, status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as exc:
            logger.error("Error saving obligations to %s: %s", self._db_path, exc)
            raise PersistenceError(f"Cannot write {self._db_path}: {exc}") from exc
        finally:
            if conn is not None:
                conn.close()
        logger.debug("Saved %d obligations to %s", len(obligations), self._db_path)
