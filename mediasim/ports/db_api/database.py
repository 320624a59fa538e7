"""DB-API adapter implementation for the core database port."""

from __future__ import annotations

import contextlib
import sqlite3
import threading
from pathlib import Path
from typing import Any, Mapping

from ...core.types import MaybeRow, QueryParams, RowMapping, Rows
from .dialects import Dialect, SQLiteDialect


class Database:
    """Thin DB-API wrapper that normalizes execute and row mapping behavior.

    All access to the wrapped connection is serialized through one reentrant
    lock, so a single connection can be shared by writer and reader threads.
    A transaction holds the lock until it commits or rolls back.
    """

    def __init__(self, conn: Any, dialect: Dialect):
        """Create database adapter.

        Args:
            conn: DB-API connection object.
            dialect: Concrete SQL dialect instance.
        """

        self._closed = False
        self._lock = threading.RLock()
        self.conn: Any | None = conn
        self.dialect = dialect

    @classmethod
    def sqlite(cls, path: str | Path = ":memory:", *, busy_timeout_ms: int = 5000) -> Database:
        """Open a SQLite database tuned for one writer and concurrent readers."""

        database = str(path)
        if database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(database, check_same_thread=False, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
        if database != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
        return cls(conn, SQLiteDialect())

    @property
    def closed(self) -> bool:
        return self._closed

    def _require_open_connection(self) -> Any:
        if self._closed or self.conn is None:
            raise RuntimeError("connection is closed")
        return self.conn

    def _should_begin_sqlite_transaction(self, conn: Any) -> bool:
        if getattr(self.dialect, "name", "").lower() != "sqlite":
            return False
        if getattr(conn, "isolation_level", None) is not None:
            return False
        return not bool(getattr(conn, "in_transaction", False))

    @contextlib.contextmanager
    def transaction(self):
        """Provide commit/rollback transaction scope."""

        with self._lock:
            conn = self._require_open_connection()
            try:
                if self._should_begin_sqlite_transaction(conn):
                    conn.execute("BEGIN IMMEDIATE")
                yield
                conn.commit()
            except BaseException:
                conn.rollback()
                raise

    def execute(self, sql: str, params: QueryParams = None) -> Any:
        """Execute SQL with optional parameters and return cursor."""

        with self._lock:
            conn = self._require_open_connection()
            cur = conn.cursor()
            if params is None:
                cur.execute(sql)
            else:
                cur.execute(sql, params)
            return cur

    def _row_to_mapping(self, cursor: Any, row: Any) -> RowMapping:
        """Normalize row object to mapping.

        Supports mapping rows directly and tuple/list rows via
        `cursor.description`.
        """

        if isinstance(row, Mapping):
            return row

        if isinstance(row, (tuple, list)):
            desc = getattr(cursor, "description", None)
            if not desc:
                raise TypeError(
                    "Cursor has no description; cannot map tuple rows to dict."
                )
            cols = [d[0] for d in desc]
            return dict(zip(cols, row))

        keys = getattr(row, "keys", None)
        if callable(keys):
            return {key: row[key] for key in keys()}

        raise TypeError(f"Unsupported row type: {type(row)}")

    def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow:
        """Execute query and return one normalized row mapping."""

        with self._lock:
            cur = self.execute(sql, params)
            row = cur.fetchone()
            if row is None:
                return None
            return self._row_to_mapping(cur, row)

    def fetchall(self, sql: str, params: QueryParams = None) -> Rows:
        """Execute query and return all rows as normalized mappings."""

        with self._lock:
            cur = self.execute(sql, params)
            rows = cur.fetchall()
            return [self._row_to_mapping(cur, r) for r in rows]

    def close(self) -> None:
        """Close underlying connection; repeated calls are no-ops."""

        with self._lock:
            if self._closed:
                return
            conn = self.conn
            self._closed = True
            self.conn = None
        close = getattr(conn, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
