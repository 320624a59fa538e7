"""Store facade for embedding writes and similarity reads."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Collection, Iterable, Optional, Sequence

from ..contracts import VectorStorePort
from ..errors import InvalidArgumentError, NotReadyError
from ..types import VectorInput
from .vector_codecs import coerce_vector
from .vector_metrics import (
    DISTANCE_METRICS,
    VectorMetric,
    VectorMetricInput,
    normalize_vector_metric,
)
from .vector_types import EmbeddingVector, SimilarityResult, utc_now

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "embeddings"


class EmbeddingStore:
    """High-level embedding operations backed by a vector store port.

    Writers (`upsert`, `remove`, `clear_all`, `replace_all`) and readers
    (`find_similar`, `enumerate`) may run from different threads; the backend
    guarantees per-id atomic writes and snapshot-consistent reads.
    """

    def __init__(
        self,
        store: VectorStorePort,
        collection: str = DEFAULT_COLLECTION,
        *,
        dimension: int,
        metric: VectorMetricInput = VectorMetric.COSINE,
        auto_create: bool = True,
        overwrite: bool = False,
    ) -> None:
        """Create an embedding store.

        Args:
            store: Concrete vector store adapter.
            collection: Logical collection (table) name.
            dimension: Fixed vector dimension for this store.
            metric: Distance metric (`str` or `VectorMetric`); `cosine` or `l2`.
            auto_create: Create the collection, or attach to an existing one
                with the same dimension and metric.
            overwrite: Drop and recreate the collection (used with auto_create).
        """

        if dimension <= 0:
            raise InvalidArgumentError("dimension must be > 0")

        self.store = store
        self.collection = collection
        self.dimension = dimension
        self.metric = normalize_vector_metric(metric, supported=DISTANCE_METRICS)
        self._closed = False
        self._close_lock = threading.Lock()

        if auto_create:
            self.store.create_collection(
                collection,
                dimension=dimension,
                metric=self.metric,
                overwrite=overwrite,
                exist_ok=True,
            )

    @property
    def closed(self) -> bool:
        return self._closed

    def upsert(
        self,
        entity_id: str,
        vector: VectorInput,
        *,
        computed_at: Optional[datetime] = None,
    ) -> None:
        """Insert or overwrite the embedding of one entity.

        Raises `DimensionMismatchError` without touching the store when the
        vector length differs from the store dimension.
        """

        record = self._build_record(entity_id, vector, computed_at)
        self._require_open()
        self.store.upsert(self.collection, [record])
        logger.debug("Upserted embedding for %s", record.entity_id)

    def upsert_many(self, records: Iterable[EmbeddingVector]) -> None:
        """Validate every record, then write them all in one call."""

        normalized = [
            self._build_record(record.entity_id, record.vector, record.computed_at)
            for record in records
        ]
        if not normalized:
            return
        self._require_open()
        self.store.upsert(self.collection, normalized)
        logger.debug("Upserted %d embeddings", len(normalized))

    def remove(self, entity_id: str) -> None:
        """Delete one embedding; absent ids are ignored."""

        self._require_open()
        self.store.delete(self.collection, [self._normalize_id(entity_id)])

    def find_similar(
        self,
        query: VectorInput,
        limit: int = 10,
        exclude: Collection[str] = (),
    ) -> list[SimilarityResult]:
        """Return the `limit` nearest stored vectors, ascending by distance.

        Ties are ordered by ascending id. Ids in `exclude` are never returned.
        """

        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidArgumentError(f"limit must be a positive integer, got {limit!r}")
        query_vector = coerce_vector(query, self.dimension)
        self._require_open()
        return self.store.query(
            self.collection,
            query_vector,
            top_k=limit,
            exclude=frozenset(str(item_id) for item_id in exclude),
        )

    def find_similar_to(
        self, entity_id: str, limit: int = 10
    ) -> Optional[list[SimilarityResult]]:
        """Neighbors of a stored entity, or `None` when it has no embedding."""

        record = self.get(entity_id)
        if record is None:
            return None
        return self.find_similar(record.vector, limit, exclude={record.entity_id})

    def get(self, entity_id: str) -> Optional[EmbeddingVector]:
        self._require_open()
        rows = self.store.fetch(self.collection, [self._normalize_id(entity_id)])
        return rows[0] if rows else None

    def get_many(self, ids: Sequence[str]) -> list[EmbeddingVector]:
        """Fetch stored embeddings for `ids`, skipping ids without one."""

        self._require_open()
        return self.store.fetch(self.collection, [self._normalize_id(item) for item in ids])

    def has_embedding(self, entity_id: str) -> bool:
        return self.get(entity_id) is not None

    def enumerate(self) -> list[EmbeddingVector]:
        """Every stored embedding, ordered by id, from one consistent snapshot."""

        self._require_open()
        return self.store.fetch(self.collection, None)

    def ids(self) -> list[str]:
        return [record.entity_id for record in self.enumerate()]

    def count(self) -> int:
        self._require_open()
        return self.store.count(self.collection)

    def clear_all(self) -> None:
        """Atomically empty the store; readers see all rows or none."""

        self._require_open()
        dropped = self.store.replace(self.collection, [])
        logger.info("Cleared %d embeddings from %s", dropped, self.collection)

    def replace_all(self, records: Iterable[EmbeddingVector]) -> None:
        """Swap the whole store for `records` in one atomic step."""

        normalized = [
            self._build_record(record.entity_id, record.vector, record.computed_at)
            for record in records
        ]
        self._require_open()
        dropped = self.store.replace(self.collection, normalized)
        logger.info(
            "Replaced %d embeddings in %s with %d",
            dropped,
            self.collection,
            len(normalized),
        )

    def close(self) -> None:
        """Release the backend; later calls raise `NotReadyError`."""

        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self.store.close()

    def __enter__(self) -> EmbeddingStore:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _build_record(
        self,
        entity_id: str,
        vector: VectorInput,
        computed_at: Optional[datetime],
    ) -> EmbeddingVector:
        return EmbeddingVector(
            entity_id=self._normalize_id(entity_id),
            vector=coerce_vector(vector, self.dimension),
            computed_at=computed_at or utc_now(),
        )

    def _require_open(self) -> None:
        if self._closed:
            raise NotReadyError("EmbeddingStore is closed")

    @staticmethod
    def _normalize_id(value: str) -> str:
        if value is None:
            raise InvalidArgumentError("entity id must not be None")
        normalized = str(value)
        if not normalized:
            raise InvalidArgumentError("entity id must be a non-empty string")
        return normalized
