"""Capped, newest-first generation history persisted in a SQLite key-value table."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)

HISTORY_KEY = "diagram-history"
DEFAULT_MAX_ITEMS = 20


@dataclass
class HistoryItem:
    id: str
    code: str
    language: str
    diagramType: str
    diagram: Any
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryItem:
        return cls(
            id=str(data["id"]),
            code=str(data["code"]),
            language=str(data["language"]),
            diagramType=str(data["diagramType"]),
            diagram=data["diagram"],
            timestamp=int(data["timestamp"]),
        )


class HistoryStore:
    """History of prior generations.

    The whole list is stored as one JSON value under ``key``. Several
    stores (one per request thread) may share a database file, so every
    mutation re-reads the list and writes it back inside a single
    ``BEGIN IMMEDIATE`` transaction. Stored data that cannot be decoded is
    discarded and the store starts empty.
    """

    def __init__(
        self, db_path: Path, max_items: int = DEFAULT_MAX_ITEMS, key: str = HISTORY_KEY,
    ) -> None:
        self._db_path = db_path
        self._max_items = max_items
        self._key = key
        db_path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; transactions are opened explicitly in _transaction()
        self._conn = sqlite3.connect(str(db_path), timeout=30.0, isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS kv_store (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        with self._transaction():
            self._read()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")

    def _read(self) -> list[HistoryItem]:
        row = self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (self._key,)
        ).fetchone()
        if row is None:
            return []
        try:
            raw = json.loads(row[0])
            if not isinstance(raw, list):
                raise ValueError("history is not a list")
            return [HistoryItem.from_dict(item) for item in raw][: self._max_items]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding corrupt history under %r: %s", self._key, e)
            self._conn.execute("DELETE FROM kv_store WHERE key = ?", (self._key,))
            return []

    def _write(self, items: list[HistoryItem]) -> None:
        value = json.dumps([item.to_dict() for item in items])
        self._conn.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (self._key, value),
        )

    def items(self) -> list[HistoryItem]:
        with self._transaction():
            return self._read()

    def add(self, code: str, language: str, diagram_type: str, diagram: Any) -> HistoryItem:
        """Prepend a new item and evict the oldest beyond ``max_items``."""
        item = HistoryItem(
            id=uuid.uuid4().hex,
            code=code,
            language=language,
            diagramType=diagram_type,
            diagram=diagram,
            timestamp=int(time.time() * 1000),
        )
        with self._transaction():
            self._write([item, *self._read()][: self._max_items])
        return item

    def restore(self, item_id: str) -> HistoryItem | None:
        return next((item for item in self.items() if item.id == item_id), None)

    def remove(self, item_id: str) -> bool:
        """Remove an item. Returns False if no item has that id."""
        with self._transaction():
            current = self._read()
            remaining = [item for item in current if item.id != item_id]
            if len(remaining) == len(current):
                return False
            self._write(remaining)
        return True

    def clear(self) -> None:
        with self._transaction():
            self._conn.execute("DELETE FROM kv_store WHERE key = ?", (self._key,))

    def close(self) -> None:
        self._conn.close()
