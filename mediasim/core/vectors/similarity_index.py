"""In-process similarity index shared by the vector store adapters.

Readers never scan the live row map. They take an immutable `_Snapshot`
(ids sorted ascending plus one prepared float32 matrix) and compute on it,
so a concurrent write, clear, or bulk swap is observed either entirely or
not at all.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Collection, Iterable, Optional, Sequence

import numpy as np

from .vector_metrics import VectorMetric, distances, prepare_rows
from .vector_types import EmbeddingVector, SimilarityResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    ids: tuple[str, ...]
    positions: dict[str, int]
    rows: np.ndarray
    records: dict[str, EmbeddingVector] = field(repr=False)


def _build_snapshot(
    metric: VectorMetric,
    dimension: int,
    records: dict[str, EmbeddingVector],
) -> _Snapshot:
    ids = tuple(sorted(records))
    if ids:
        matrix = np.vstack([records[item_id].vector for item_id in ids]).astype(
            np.float32
        )
    else:
        matrix = np.empty((0, dimension), dtype=np.float32)
    rows = prepare_rows(metric, matrix)
    rows.setflags(write=False)
    return _Snapshot(
        ids=ids,
        positions={item_id: index for index, item_id in enumerate(ids)},
        rows=rows,
        records=dict(records),
    )


class SimilarityIndexAdapter:
    """Maps stored rows onto the distance metric and serves k-NN queries."""

    def __init__(self, dimension: int, metric: VectorMetric = VectorMetric.COSINE) -> None:
        self.dimension = dimension
        self.metric = metric
        self._records: dict[str, EmbeddingVector] = {}
        self._snapshot: Optional[_Snapshot] = None
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._current().ids)

    def put(self, record: EmbeddingVector) -> None:
        with self._lock:
            self._records[record.entity_id] = record
            self._snapshot = None

    def put_many(self, records: Iterable[EmbeddingVector]) -> None:
        with self._lock:
            for record in records:
                self._records[record.entity_id] = record
            self._snapshot = None

    def discard(self, entity_id: str) -> bool:
        with self._lock:
            removed = self._records.pop(entity_id, None) is not None
            if removed:
                self._snapshot = None
            return removed

    def clear(self) -> int:
        return self.swap(())

    def swap(self, records: Iterable[EmbeddingVector]) -> int:
        """Replace every row at once and return how many rows were dropped."""

        replacement = {record.entity_id: record for record in records}
        snapshot = _build_snapshot(self.metric, self.dimension, replacement)
        with self._lock:
            dropped = len(self._records)
            self._records = replacement
            self._snapshot = snapshot
        logger.debug(
            "Swapped similarity index: dropped=%d loaded=%d", dropped, len(replacement)
        )
        return dropped

    def get(self, entity_id: str) -> Optional[EmbeddingVector]:
        with self._lock:
            return self._records.get(entity_id)

    def fetch(self, ids: Optional[Sequence[str]] = None) -> list[EmbeddingVector]:
        snapshot = self._current()
        if ids is None:
            return [snapshot.records[item_id] for item_id in snapshot.ids]
        return [snapshot.records[item_id] for item_id in ids if item_id in snapshot.records]

    def search(
        self,
        query: np.ndarray,
        limit: int,
        exclude: Collection[str] = (),
    ) -> list[SimilarityResult]:
        """Return up to `limit` neighbors ordered by `(distance, id)`."""

        if limit <= 0:
            return []

        snapshot = self._current()
        if not snapshot.ids:
            return []

        scores = distances(self.metric, snapshot.rows, query)
        keep = np.ones(len(snapshot.ids), dtype=bool)
        for item_id in exclude:
            position = snapshot.positions.get(item_id)
            if position is not None:
                keep[position] = False

        candidates = np.flatnonzero(keep)
        if candidates.size == 0:
            return []

        # Rows are in ascending id order, so a stable sort breaks ties by id.
        order = candidates[np.argsort(scores[candidates], kind="stable")][:limit]
        return [
            SimilarityResult(entity_id=snapshot.ids[index], distance=float(scores[index]))
            for index in order
        ]

    def _current(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                self._snapshot = _build_snapshot(self.metric, self.dimension, self._records)
            return self._snapshot
