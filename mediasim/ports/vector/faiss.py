"""Faiss adapter implementing vector store operations.

This adapter is optional and requires `faiss-cpu` and `numpy` packages installed.
Queries run against exact flat indexes; results are re-sorted by
`(distance, id)` so ties come back in a stable order.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Collection, Optional, Sequence

import numpy as np

from ...core.errors import DimensionMismatchError, InvalidArgumentError
from ...core.vectors.vector_metrics import (
    DISTANCE_METRICS,
    VectorMetric,
    VectorMetricInput,
    normalize_vector_metric,
)
from ...core.vectors.vector_types import EmbeddingVector, SimilarityResult


@dataclass
class _CollectionState:
    dimension: int
    metric: VectorMetric
    index: Any
    ext_to_int: dict[str, int] = field(default_factory=dict)
    int_to_ext: dict[int, str] = field(default_factory=dict)
    records: dict[str, EmbeddingVector] = field(default_factory=dict)
    next_internal_id: int = 1


class FaissVectorStore:
    """Vector store adapter for Facebook AI Similarity Search (Faiss)."""

    def __init__(self) -> None:
        try:
            import faiss  # type: ignore[import-not-found]
        except ImportError as exc:  # pragma: no cover - env dependent
            raise ImportError(
                "faiss-cpu is required for FaissVectorStore. "
                "Install with `pip install mediasim[faiss]`."
            ) from exc

        self._faiss = faiss
        self._collections: dict[str, _CollectionState] = {}
        self._lock = threading.RLock()

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
            self._collections[name] = self._new_state(dimension, normalized_metric)

    def upsert(self, collection: str, records: Sequence[EmbeddingVector]) -> None:
        if not records:
            return

        with self._lock:
            state = self._get_collection(collection)
            for record in records:
                self._check_dimension(state, record.vector)
            self._add_records(state, records)

    def query(
        self,
        collection: str,
        vector: np.ndarray,
        *,
        top_k: int = 10,
        exclude: Collection[str] = (),
    ) -> list[SimilarityResult]:
        if top_k <= 0:
            return []

        with self._lock:
            state = self._get_collection(collection)
            self._check_dimension(state, vector)
            if not state.records:
                return []

            excluded = {item_id for item_id in exclude if item_id in state.records}
            total = len(state.records)
            fetch_k = min(top_k + len(excluded), total)
            query_vector = np.array([vector], dtype=np.float32)
            if state.metric == VectorMetric.COSINE:
                if not np.any(query_vector):
                    return self._zero_query(state, top_k, excluded)
                self._faiss.normalize_L2(query_vector)

            while True:
                results, farthest = self._search(state, query_vector, fetch_k, excluded)
                results.sort(key=lambda item: (item.distance, item.entity_id))
                # Faiss picks among rows tied at the cut-off by insertion order,
                # so widen the search until the whole boundary tie group is in.
                if fetch_k >= total or len(results) < top_k:
                    break
                if farthest > results[top_k - 1].distance:
                    break
                fetch_k = min(fetch_k * 2, total)

        return results[:top_k]

    def _search(
        self,
        state: _CollectionState,
        query_vector: np.ndarray,
        fetch_k: int,
        excluded: set[str],
    ) -> tuple[list[SimilarityResult], float]:
        raw_distances, internal_ids = state.index.search(query_vector, fetch_k)

        results: list[SimilarityResult] = []
        farthest = 0.0
        for raw, internal_id in zip(raw_distances[0], internal_ids[0]):
            if internal_id == -1:
                continue
            distance = self._to_distance(state.metric, float(raw))
            farthest = max(farthest, distance)
            external_id = state.int_to_ext.get(int(internal_id))
            if external_id is None or external_id in excluded:
                continue
            results.append(SimilarityResult(entity_id=external_id, distance=distance))
        return results, farthest

    def fetch(
        self, collection: str, ids: Optional[Sequence[str]] = None
    ) -> list[EmbeddingVector]:
        with self._lock:
            state = self._get_collection(collection)
            if ids is None:
                return [state.records[item_id] for item_id in sorted(state.records)]
            return [state.records[item_id] for item_id in ids if item_id in state.records]

    def delete(self, collection: str, ids: Sequence[str]) -> int:
        with self._lock:
            state = self._get_collection(collection)
            delete_ids: list[int] = []

            for item_id in ids:
                internal_id = state.ext_to_int.pop(item_id, None)
                if internal_id is None:
                    continue
                state.int_to_ext.pop(internal_id, None)
                state.records.pop(item_id, None)
                delete_ids.append(internal_id)

            if delete_ids:
                id_array = np.array(delete_ids, dtype=np.int64)
                state.index.remove_ids(id_array)

            return len(delete_ids)

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._get_collection(collection).records)

    def replace(self, collection: str, records: Sequence[EmbeddingVector]) -> int:
        with self._lock:
            current = self._get_collection(collection)
            dimension, metric = current.dimension, current.metric
        for record in records:
            self._check_dimension(current, record.vector)

        replacement = self._new_state(dimension, metric)
        if records:
            self._add_records(replacement, records)

        with self._lock:
            dropped = len(self._get_collection(collection).records)
            self._collections[collection] = replacement
        return dropped

    def close(self) -> None:
        with self._lock:
            self._collections.clear()

    def _new_state(self, dimension: int, metric: VectorMetric) -> _CollectionState:
        if metric == VectorMetric.COSINE:
            base_index = self._faiss.IndexFlatIP(dimension)
        else:
            base_index = self._faiss.IndexFlatL2(dimension)
        return _CollectionState(
            dimension=dimension,
            metric=metric,
            index=self._faiss.IndexIDMap2(base_index),
        )

    def _add_records(self, state: _CollectionState, records: Sequence[EmbeddingVector]) -> None:
        ids_to_remove: list[int] = []
        latest: dict[str, EmbeddingVector] = {}
        for record in records:
            latest[record.entity_id] = record

        vectors_to_add: list[np.ndarray] = []
        int_ids_to_add: list[int] = []
        for entity_id, record in latest.items():
            existing_id = state.ext_to_int.get(entity_id)
            if existing_id is not None:
                ids_to_remove.append(existing_id)
                internal_id = existing_id
            else:
                internal_id = state.next_internal_id
                state.next_internal_id += 1

            vectors_to_add.append(np.asarray(record.vector, dtype=np.float32))
            int_ids_to_add.append(internal_id)
            state.ext_to_int[entity_id] = internal_id
            state.int_to_ext[internal_id] = entity_id
            state.records[entity_id] = record

        if ids_to_remove:
            state.index.remove_ids(np.array(ids_to_remove, dtype=np.int64))

        vector_array = np.array(vectors_to_add, dtype=np.float32)
        if state.metric == VectorMetric.COSINE:
            self._faiss.normalize_L2(vector_array)
        state.index.add_with_ids(vector_array, np.array(int_ids_to_add, dtype=np.int64))

    def _get_collection(self, name: str) -> _CollectionState:
        if name not in self._collections:
            raise KeyError(f"Collection does not exist: {name}")
        return self._collections[name]

    @staticmethod
    def _zero_query(
        state: _CollectionState, top_k: int, excluded: set[str]
    ) -> list[SimilarityResult]:
        ids = sorted(item_id for item_id in state.records if item_id not in excluded)
        return [SimilarityResult(entity_id=item_id, distance=1.0) for item_id in ids[:top_k]]

    @staticmethod
    def _check_dimension(state: _CollectionState, vector: np.ndarray) -> None:
        if len(vector) != state.dimension:
            raise DimensionMismatchError(state.dimension, len(vector))

    @staticmethod
    def _to_distance(metric: VectorMetric, raw: float) -> float:
        if metric == VectorMetric.L2:
            # IndexFlatL2 reports squared distances.
            return float(np.sqrt(max(raw, 0.0)))
        return min(max(1.0 - raw, 0.0), 2.0)
