"""In-memory vector store adapter for testing and local development."""

from __future__ import annotations

import threading
from typing import Collection, Optional, Sequence

import numpy as np

from ...core.errors import DimensionMismatchError, InvalidArgumentError
from ...core.vectors.similarity_index import SimilarityIndexAdapter
from ...core.vectors.vector_metrics import (
    DISTANCE_METRICS,
    VectorMetric,
    VectorMetricInput,
    normalize_vector_metric,
)
from ...core.vectors.vector_types import EmbeddingVector, SimilarityResult


class InMemoryVectorStore:
    """Simple in-memory implementation of vector store operations."""

    def __init__(self) -> None:
        self._collections: dict[str, SimilarityIndexAdapter] = {}
        self._lock = threading.Lock()

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

        with self._lock:
            existing = self._collections.get(name)
            if existing is not None and not overwrite:
                if not exist_ok:
                    raise InvalidArgumentError(f"Collection already exists: {name}")
                if existing.dimension != dimension:
                    raise DimensionMismatchError(existing.dimension, dimension)
                if existing.metric != normalized_metric:
                    raise InvalidArgumentError(
                        f"Collection {name!r} uses metric {existing.metric.value}, "
                        f"not {normalized_metric.value}"
                    )
                return

            self._collections[name] = SimilarityIndexAdapter(dimension, normalized_metric)

    def upsert(self, collection: str, records: Sequence[EmbeddingVector]) -> None:
        index = self._get_collection(collection)
        for record in records:
            self._check_dimension(index, record.vector)
        index.put_many(records)

    def query(
        self,
        collection: str,
        vector: np.ndarray,
        *,
        top_k: int = 10,
        exclude: Collection[str] = (),
    ) -> list[SimilarityResult]:
        index = self._get_collection(collection)
        self._check_dimension(index, vector)
        return index.search(vector, top_k, exclude)

    def fetch(
        self, collection: str, ids: Optional[Sequence[str]] = None
    ) -> list[EmbeddingVector]:
        return self._get_collection(collection).fetch(ids)

    def delete(self, collection: str, ids: Sequence[str]) -> int:
        index = self._get_collection(collection)
        return sum(1 for item_id in ids if index.discard(item_id))

    def count(self, collection: str) -> int:
        return len(self._get_collection(collection))

    def replace(self, collection: str, records: Sequence[EmbeddingVector]) -> int:
        index = self._get_collection(collection)
        for record in records:
            self._check_dimension(index, record.vector)
        return index.swap(records)

    def close(self) -> None:
        with self._lock:
            self._collections.clear()

    def _get_collection(self, name: str) -> SimilarityIndexAdapter:
        index = self._collections.get(name)
        if index is None:
            raise KeyError(f"Collection does not exist: {name}")
        return index

    @staticmethod
    def _check_dimension(index: SimilarityIndexAdapter, vector: np.ndarray) -> None:
        if len(vector) != index.dimension:
            raise DimensionMismatchError(index.dimension, len(vector))
