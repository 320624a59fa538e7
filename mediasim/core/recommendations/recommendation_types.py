"""Inputs and tagged results of recommendation generation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from ..errors import InvalidArgumentError

MAX_RECOMMENDATION_LIMIT = 100


@dataclass(frozen=True)
class ViewHistoryEntry:
    """One recorded view of a library image."""

    image_id: str
    viewed_at: datetime
    duration_ms: Optional[int] = None


@dataclass(frozen=True)
class RecommendationOptions:
    limit: int = 10
    history_days: int = 30

    def validate(self) -> None:
        if isinstance(self.limit, bool) or not isinstance(self.limit, int):
            raise InvalidArgumentError(f"limit must be an integer, got {self.limit!r}")
        if not 1 <= self.limit <= MAX_RECOMMENDATION_LIMIT:
            raise InvalidArgumentError(
                f"limit must be between 1 and {MAX_RECOMMENDATION_LIMIT}, got {self.limit}"
            )
        if isinstance(self.history_days, bool) or not isinstance(self.history_days, int):
            raise InvalidArgumentError(
                f"history_days must be an integer, got {self.history_days!r}"
            )
        if self.history_days < 1:
            raise InvalidArgumentError(
                f"history_days must be >= 1, got {self.history_days}"
            )


class RecommendationReason(str, Enum):
    """Why a recommendation call produced no candidates."""

    NO_HISTORY = "no_history"
    NO_EMBEDDINGS = "no_embeddings"
    NO_SIMILAR = "no_similar"


@dataclass(frozen=True)
class RecommendationCandidate:
    image_id: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.image_id, "score": self.score}


@dataclass(frozen=True)
class RecommendationsFound:
    recommendations: tuple[RecommendationCandidate, ...]

    @property
    def reason(self) -> None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"recommendations": [item.to_dict() for item in self.recommendations]}


@dataclass(frozen=True)
class RecommendationsEmpty:
    reason: RecommendationReason

    @property
    def recommendations(self) -> tuple[RecommendationCandidate, ...]:
        return ()

    def to_dict(self) -> dict[str, Any]:
        return {"recommendations": [], "reason": self.reason.value}


RecommendationResult = Union[RecommendationsFound, RecommendationsEmpty]
