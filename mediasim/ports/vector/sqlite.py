"""SQLite adapter implementing durable vector store operations.

Vectors are persisted as raw float32 blobs in one table per collection and
mirrored into an in-process `SimilarityIndexAdapter` that serves queries.
Every write commits before the mirror is updated, and both happen under one
writer lock so the mirror always matches the committed table. Reads check
`PRAGMA data_version` first and reload the mirror when another connection
has committed since it was last loaded.
"""

from __future__ import annotations

import contextlib
import logging
import re
import sqlite3
import threading
from typing import Any, Collection, Iterator, Optional, Sequence

import numpy as np

from ...core.contracts import DatabasePort
from ...core.errors import (
    DimensionMismatchError,
    InvalidArgumentError,
    NotReadyError,
    SimilarityEngineError,
    StorageFailureError,
)
from ...core.vectors.similarity_index import SimilarityIndexAdapter
from ...core.vectors.vector_codecs import (
    Float32BlobCodec,
    VectorBlobCodec,
    decode_timestamp,
    encode_timestamp,
)
from ...core.vectors.vector_metrics import (
    DISTANCE_METRICS,
    VectorMetric,
    VectorMetricInput,
    normalize_vector_metric,
)
from ...core.vectors.vector_types import EmbeddingVector, SimilarityResult

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_COLLECTIONS_META_TABLE = "_mediasim_collections"


class SQLiteVectorStore:
    """Vector store adapter backed by a SQLite `Database`."""

    def __init__(
        self,
        db: DatabasePort,
        *,
        codec: VectorBlobCodec | None = None,
        owns_db: bool = True,
    ) -> None:
        dialect_name = str(getattr(db.dialect, "name", "")).lower()
        if dialect_name != "sqlite":
            raise InvalidArgumentError(
                "SQLiteVectorStore requires a database adapter configured with SQLiteDialect."
            )
        self._db = db
        self._codec = codec or Float32BlobCodec()
        self._owns_db = owns_db
        self._collections: dict[str, SimilarityIndexAdapter] = {}
        self._seen_versions: dict[str, int] = {}
        self._write_lock = threading.RLock()
        self._closed = False

    def create_collection(
        self,
        name: str,
        dimension: int,
        metric: VectorMetricInput = VectorMetric.COSINE,
        *,
        overwrite: bool = False,
        exist_ok: bool = False,
    ) -> None:
        if dimension <= 0:
            raise InvalidArgumentError("dimension must be > 0")
        normalized_metric = normalize_vector_metric(metric, supported=DISTANCE_METRICS)
        table_sql = self._quote_table(name)

        with self._write_lock, self._storage_errors(f"create collection {name!r}"):
            self._require_open()
            with self._db.transaction():
                self._ensure_collections_metadata_table()
                stored = self._read_collection_metadata(name)
                reuse = stored is not None and not overwrite

                if reuse:
                    if not exist_ok:
                        raise InvalidArgumentError(f"Collection already exists: {name}")
                    stored_dimension, stored_metric = stored
                    if stored_dimension != dimension:
                        raise DimensionMismatchError(stored_dimension, dimension)
                    if stored_metric != normalized_metric:
                        raise InvalidArgumentError(
                            f"Collection {name!r} uses metric {stored_metric.value}, "
                            f"not {normalized_metric.value}"
                        )
                else:
                    self._db.execute(f"DROP TABLE IF EXISTS {table_sql};")
                    self._db.execute(
                        f"""CREATE TABLE {table_sql} (
                        "entity_id" TEXT PRIMARY KEY,
                        "vector" BLOB NOT NULL,
                        "computed_at" TEXT NOT NULL
                    );"""
                    )
                    self._upsert_collection_metadata(name, dimension, normalized_metric)

            version = self._data_version()
            records = self._load_rows(name, dimension) if reuse else []
            index = SimilarityIndexAdapter(dimension, normalized_metric)
            index.swap(records)
            self._collections[name] = index
            self._seen_versions[name] = version

        logger.info(
            "Opened vector collection %s (dimension=%d metric=%s rows=%d)",
            name,
            dimension,
            normalized_metric.value,
            len(records),
        )

    def upsert(self, collection: str, records: Sequence[EmbeddingVector]) -> None:
        if not records:
            return
        index = self._get_collection(collection)
        for record in records:
            self._check_dimension(index, record.vector)

        table_sql = self._quote_table(collection)
        sql = (
            f"INSERT INTO {table_sql} "
            '("entity_id", "vector", "computed_at") '
            f"VALUES ({self._placeholder('entity_id')}, {self._placeholder('vector')}, "
            f"{self._placeholder('computed_at')}) "
            'ON CONFLICT ("entity_id") DO UPDATE SET '
            '"vector" = excluded."vector", '
            '"computed_at" = excluded."computed_at";'
        )

        with self._write_lock, self._storage_errors(f"upsert into {collection!r}"):
            self._require_open()
            with self._db.transaction():
                for record in records:
                    self._db.execute(sql, self._record_params(record))
            index.put_many(records)

    def query(
        self,
        collection: str,
        vector: np.ndarray,
        *,
        top_k: int = 10,
        exclude: Collection[str] = (),
    ) -> list[SimilarityResult]:
        index = self._refresh(collection)
        self._check_dimension(index, vector)
        return index.search(vector, top_k, exclude)

    def fetch(
        self, collection: str, ids: Optional[Sequence[str]] = None
    ) -> list[EmbeddingVector]:
        return self._refresh(collection).fetch(ids)

    def delete(self, collection: str, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        index = self._get_collection(collection)
        table_sql = self._quote_table(collection)
        unique_ids = list(dict.fromkeys(str(item_id) for item_id in ids))

        with self._write_lock, self._storage_errors(f"delete from {collection!r}"):
            self._require_open()
            deleted = 0
            with self._db.transaction():
                for item_id in unique_ids:
                    cur = self._db.execute(
                        f'DELETE FROM {table_sql} WHERE "entity_id" = {self._placeholder("entity_id")};',
                        {"entity_id": item_id},
                    )
                    deleted += max(int(getattr(cur, "rowcount", 0) or 0), 0)
            for item_id in unique_ids:
                index.discard(item_id)
        return deleted

    def count(self, collection: str) -> int:
        return len(self._refresh(collection))

    def replace(self, collection: str, records: Sequence[EmbeddingVector]) -> int:
        index = self._get_collection(collection)
        for record in records:
            self._check_dimension(index, record.vector)

        table_sql = self._quote_table(collection)
        insert_sql = (
            f"INSERT OR REPLACE INTO {table_sql} "
            '("entity_id", "vector", "computed_at") '
            f"VALUES ({self._placeholder('entity_id')}, {self._placeholder('vector')}, "
            f"{self._placeholder('computed_at')});"
        )

        with self._write_lock, self._storage_errors(f"replace {collection!r}"):
            self._require_open()
            self._sync_locked(collection, index)
            with self._db.transaction():
                self._db.execute(f"DELETE FROM {table_sql};")
                for record in records:
                    self._db.execute(insert_sql, self._record_params(record))
            return index.swap(records)

    def close(self) -> None:
        with self._write_lock:
            if self._closed:
                return
            self._closed = True
            self._collections.clear()
            self._seen_versions.clear()
            if self._owns_db:
                with self._storage_errors("close database"):
                    self._db.close()

    def _get_collection(self, name: str) -> SimilarityIndexAdapter:
        if self._closed:
            raise NotReadyError("SQLiteVectorStore is closed")
        index = self._collections.get(name)
        if index is None:
            raise KeyError(f"Collection does not exist: {name}")
        return index

    def _refresh(self, collection: str) -> SimilarityIndexAdapter:
        index = self._get_collection(collection)
        with self._write_lock, self._storage_errors(f"refresh {collection!r}"):
            self._require_open()
            self._sync_locked(collection, index)
        return index

    def _sync_locked(self, collection: str, index: SimilarityIndexAdapter) -> None:
        # data_version only moves when another connection commits.
        version = self._data_version()
        if version == self._seen_versions.get(collection):
            return
        records = self._load_rows(collection, index.dimension)
        index.swap(records)
        self._seen_versions[collection] = version
        logger.debug("Reloaded vector collection %s (rows=%d)", collection, len(records))

    def _data_version(self) -> int:
        row = self._db.fetchone("PRAGMA data_version;")
        return int(row["data_version"]) if row is not None else 0

    def _require_open(self) -> None:
        if self._closed:
            raise NotReadyError("SQLiteVectorStore is closed")

    def _load_rows(self, name: str, dimension: int) -> list[EmbeddingVector]:
        rows = self._db.fetchall(
            f'SELECT "entity_id", "vector", "computed_at" FROM {self._quote_table(name)} '
            'ORDER BY "entity_id" ASC;'
        )
        return [
            EmbeddingVector(
                entity_id=str(row["entity_id"]),
                vector=self._codec.decode(row["vector"], dimension),
                computed_at=decode_timestamp(row["computed_at"]),
            )
            for row in rows
        ]

    def _ensure_collections_metadata_table(self) -> None:
        metadata_table = self._db.dialect.q(_COLLECTIONS_META_TABLE)
        self._db.execute(
            f"""CREATE TABLE IF NOT EXISTS {metadata_table} (
            "name" TEXT PRIMARY KEY,
            "dimension" INTEGER NOT NULL,
            "metric" TEXT NOT NULL
        );"""
        )

    def _read_collection_metadata(self, name: str) -> tuple[int, VectorMetric] | None:
        metadata_table = self._db.dialect.q(_COLLECTIONS_META_TABLE)
        row = self._db.fetchone(
            f'SELECT "dimension", "metric" FROM {metadata_table} '
            f'WHERE "name" = {self._placeholder("name")};',
            {"name": name},
        )
        if row is None:
            return None
        return int(row["dimension"]), normalize_vector_metric(str(row["metric"]))

    def _upsert_collection_metadata(
        self, name: str, dimension: int, metric: VectorMetric
    ) -> None:
        metadata_table = self._db.dialect.q(_COLLECTIONS_META_TABLE)
        self._db.execute(
            f"INSERT INTO {metadata_table} "
            '("name", "dimension", "metric") '
            f"VALUES ({self._placeholder('name')}, {self._placeholder('dimension')}, "
            f"{self._placeholder('metric')}) "
            'ON CONFLICT ("name") DO UPDATE SET '
            '"dimension" = excluded."dimension", '
            '"metric" = excluded."metric";',
            {"name": name, "dimension": int(dimension), "metric": metric.value},
        )

    def _record_params(self, record: EmbeddingVector) -> dict[str, Any]:
        return {
            "entity_id": str(record.entity_id),
            "vector": self._codec.encode(record.vector),
            "computed_at": encode_timestamp(record.computed_at),
        }

    def _placeholder(self, key: str) -> str:
        return self._db.dialect.placeholder(key)

    def _quote_table(self, name: str) -> str:
        cleaned = str(name).strip()
        if not _IDENTIFIER_RE.fullmatch(cleaned) or cleaned == _COLLECTIONS_META_TABLE:
            raise InvalidArgumentError(
                f"collection name must be a plain SQL identifier, got {name!r}"
            )
        return self._db.dialect.q(cleaned)

    @staticmethod
    def _check_dimension(index: SimilarityIndexAdapter, vector: np.ndarray) -> None:
        if len(vector) != index.dimension:
            raise DimensionMismatchError(index.dimension, len(vector))

    @contextlib.contextmanager
    def _storage_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except SimilarityEngineError:
            raise
        except sqlite3.Error as exc:
            logger.error("SQLite failure during %s: %s", action, exc)
            raise StorageFailureError(f"Failed to {action}: {exc}") from exc
        except RuntimeError as exc:
            if getattr(self._db, "closed", False):
                raise NotReadyError("database connection is closed") from exc
            raise
