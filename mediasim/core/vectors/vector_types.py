"""Shared vector entities used by vector ports and the embedding store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, eq=False)
class EmbeddingVector:
    """One stored embedding: a float32 vector owned by a library entity."""

    entity_id: str
    vector: np.ndarray
    computed_at: datetime = field(default_factory=utc_now)

    @property
    def dimension(self) -> int:
        return int(self.vector.shape[0])

    def tolist(self) -> list[float]:
        return [float(value) for value in self.vector]


@dataclass(frozen=True)
class SimilarityResult:
    """Represents one neighbor returned by a similarity query."""

    entity_id: str
    distance: float

    def to_dict(self) -> dict[str, object]:
        return {"id": self.entity_id, "distance": self.distance}


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so mixed inputs compare safely."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
