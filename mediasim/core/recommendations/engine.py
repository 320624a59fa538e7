"""Personalized recommendations from recent viewing behavior.

Each recently viewed image with an embedding acts as a seed. Seeds fan out
into independent nearest-neighbor queries; the candidates are merged keeping
each image's smallest distance, scored with `1 / (1 + distance)`, and ranked
by score descending then id ascending.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Sequence

from .._parallel import run_queries
from ..cancellation import CancellationToken, check_cancelled
from ..config import EngineConfig
from ..contracts import ViewHistoryPort
from ..errors import InvalidArgumentError
from ..vectors.embedding_store import EmbeddingStore
from ..vectors.vector_metrics import distance_to_score
from ..vectors.vector_types import EmbeddingVector, SimilarityResult, as_utc
from .recommendation_types import (
    RecommendationCandidate,
    RecommendationOptions,
    RecommendationReason,
    RecommendationResult,
    RecommendationsEmpty,
    RecommendationsFound,
    ViewHistoryEntry,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationEngine:
    """Ranks unseen images by similarity to what the user viewed recently."""

    def __init__(
        self,
        store: EmbeddingStore,
        history: ViewHistoryPort,
        *,
        seed_window: int = 20,
        fan_out_factor: int = 2,
        history_limit: int = 100,
        min_view_ms: int = 0,
        max_workers: int = 1,
        clock: Optional[Clock] = None,
    ) -> None:
        for name, value in (
            ("seed_window", seed_window),
            ("fan_out_factor", fan_out_factor),
            ("history_limit", history_limit),
            ("max_workers", max_workers),
        ):
            if value < 1:
                raise InvalidArgumentError(f"{name} must be >= 1")
        if min_view_ms < 0:
            raise InvalidArgumentError("min_view_ms must be >= 0")

        self.store = store
        self.history = history
        self.seed_window = seed_window
        self.fan_out_factor = fan_out_factor
        self.history_limit = history_limit
        self.min_view_ms = min_view_ms
        self.max_workers = max_workers
        self._clock = clock or _utc_clock

    @classmethod
    def from_config(
        cls,
        store: EmbeddingStore,
        history: ViewHistoryPort,
        config: EngineConfig,
        *,
        clock: Optional[Clock] = None,
    ) -> RecommendationEngine:
        return cls(
            store,
            history,
            seed_window=config.seed_window,
            fan_out_factor=config.fan_out_factor,
            history_limit=config.history_limit,
            min_view_ms=config.min_view_ms,
            max_workers=config.max_workers,
            clock=clock,
        )

    def generate(
        self,
        options: Optional[RecommendationOptions] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> RecommendationResult:
        """Produce recommendations, or an empty result naming why there are none."""

        options = options or RecommendationOptions()
        options.validate()

        seed_ids = self._collect_seed_ids(options.history_days)
        if not seed_ids:
            logger.debug("No recommendation seeds within %d days", options.history_days)
            return RecommendationsEmpty(RecommendationReason.NO_HISTORY)

        check_cancelled(cancel)
        seeds = self.store.get_many(seed_ids)
        if not seeds:
            logger.debug("None of %d seed images has an embedding", len(seed_ids))
            return RecommendationsEmpty(RecommendationReason.NO_EMBEDDINGS)

        per_seed = options.limit * self.fan_out_factor
        batches = self._gather(seeds, per_seed, frozenset(seed_ids), cancel)
        recommendations = merge_candidates(batches, options.limit)
        if not recommendations:
            return RecommendationsEmpty(RecommendationReason.NO_SIMILAR)

        logger.debug(
            "Generated %d recommendations from %d seeds",
            len(recommendations),
            len(seeds),
        )
        return RecommendationsFound(tuple(recommendations))

    def _collect_seed_ids(self, history_days: int) -> list[str]:
        cutoff = as_utc(self._clock()) - timedelta(days=history_days)
        entries: Sequence[ViewHistoryEntry] = self.history.find_recent(
            since=cutoff, limit=self.history_limit
        )

        recent = [
            entry
            for entry in entries
            if as_utc(entry.viewed_at) >= cutoff and self._counts_as_view(entry)
        ]
        recent.sort(key=lambda entry: as_utc(entry.viewed_at), reverse=True)

        seed_ids: list[str] = []
        seen: set[str] = set()
        for entry in recent:
            if entry.image_id in seen:
                continue
            seen.add(entry.image_id)
            seed_ids.append(entry.image_id)
            if len(seed_ids) >= self.seed_window:
                break
        return seed_ids

    def _counts_as_view(self, entry: ViewHistoryEntry) -> bool:
        if self.min_view_ms == 0 or entry.duration_ms is None:
            return True
        return entry.duration_ms >= self.min_view_ms

    def _gather(
        self,
        seeds: Sequence[EmbeddingVector],
        per_seed: int,
        exclude: frozenset[str],
        cancel: Optional[CancellationToken],
    ) -> list[list[SimilarityResult]]:
        return run_queries(
            lambda seed: self.store.find_similar(seed.vector, per_seed, exclude),
            seeds,
            max_workers=self.max_workers,
            cancel=cancel,
            thread_name_prefix="mediasim-recommend",
        )


def merge_candidates(
    batches: Iterable[Iterable[SimilarityResult]],
    limit: int,
) -> list[RecommendationCandidate]:
    """Merge per-seed neighbors keeping each id's minimum distance."""

    best: dict[str, float] = {}
    for batch in batches:
        for hit in batch:
            current = best.get(hit.entity_id)
            if current is None or hit.distance < current:
                best[hit.entity_id] = hit.distance

    candidates = [
        RecommendationCandidate(image_id=image_id, score=distance_to_score(distance))
        for image_id, distance in best.items()
    ]
    candidates.sort(key=lambda item: (-item.score, item.image_id))
    return candidates[:limit]
