"""SQLite-backed view history built on the DB-API `Database` adapter."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from datetime import datetime
from typing import Iterator, Optional

from ...core.contracts import DatabasePort
from ...core.errors import InvalidArgumentError, StorageFailureError
from ...core.recommendations.recommendation_types import ViewHistoryEntry
from ...core.vectors.vector_codecs import decode_timestamp, encode_timestamp
from ...core.vectors.vector_types import utc_now

logger = logging.getLogger(__name__)


class SQLiteViewHistory:
    """Stores one row per image view in a `view_history` table."""

    def __init__(self, db: DatabasePort, *, table: str = "view_history") -> None:
        if not table.isidentifier():
            raise InvalidArgumentError(f"table must be a plain identifier, got {table!r}")
        self._db = db
        self._table = db.dialect.q(table)
        self.ensure_schema()

    def ensure_schema(self) -> None:
        with self._storage_errors("create view history schema"), self._db.transaction():
            self._db.execute(
                f"""CREATE TABLE IF NOT EXISTS {self._table} (
                "id" INTEGER PRIMARY KEY,
                "image_id" TEXT NOT NULL,
                "viewed_at" TEXT NOT NULL,
                "duration_ms" INTEGER
            );"""
            )

    def record_view(
        self,
        image_id: str,
        *,
        viewed_at: Optional[datetime] = None,
        duration_ms: Optional[int] = None,
    ) -> int:
        """Insert one view and return its row id."""

        params = {
            "image_id": str(image_id),
            "viewed_at": encode_timestamp(viewed_at or utc_now()),
            "duration_ms": duration_ms,
        }
        with self._storage_errors("record view"), self._db.transaction():
            cur = self._db.execute(
                f'INSERT INTO {self._table} ("image_id", "viewed_at", "duration_ms") '
                f"VALUES ({self._ph('image_id')}, {self._ph('viewed_at')}, "
                f"{self._ph('duration_ms')});",
                params,
            )
            return int(cur.lastrowid)

    def update_duration(self, view_id: int, duration_ms: int) -> bool:
        if duration_ms < 0:
            raise InvalidArgumentError("duration_ms must be >= 0")
        with self._storage_errors("update view duration"), self._db.transaction():
            cur = self._db.execute(
                f'UPDATE {self._table} SET "duration_ms" = {self._ph("duration_ms")} '
                f'WHERE "id" = {self._ph("id")};',
                {"duration_ms": int(duration_ms), "id": int(view_id)},
            )
            return cur.rowcount > 0

    def find_recent(self, *, since: datetime, limit: int) -> list[ViewHistoryEntry]:
        with self._storage_errors("read view history"):
            rows = self._db.fetchall(
                f'SELECT "image_id", "viewed_at", "duration_ms" FROM {self._table} '
                f'WHERE "viewed_at" >= {self._ph("since")} '
                f'ORDER BY "viewed_at" DESC, "id" DESC LIMIT {self._ph("limit")};',
                {"since": encode_timestamp(since), "limit": int(limit)},
            )
        return [
            ViewHistoryEntry(
                image_id=str(row["image_id"]),
                viewed_at=decode_timestamp(row["viewed_at"]),
                duration_ms=None if row["duration_ms"] is None else int(row["duration_ms"]),
            )
            for row in rows
        ]

    def _ph(self, key: str) -> str:
        return self._db.dialect.placeholder(key)

    @contextlib.contextmanager
    def _storage_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            logger.error("SQLite failure during %s: %s", action, exc)
            raise StorageFailureError(f"Failed to {action}: {exc}") from exc
