"""Engine configuration with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

from .errors import InvalidArgumentError
from .vectors.vector_metrics import DISTANCE_METRICS, normalize_vector_metric

ENV_PREFIX = "MEDIASIM_"
VECTOR_BACKENDS = frozenset({"sqlite", "memory", "faiss"})


@dataclass(frozen=True)
class EngineConfig:
    """Tunables shared by the store, recommendation engine, and clusterer."""

    dimension: int = 512
    metric: str = "cosine"
    vector_backend: str = "sqlite"
    database_path: str = ":memory:"
    collection: str = "embeddings"
    duplicate_threshold: float = 0.1
    duplicate_neighbors: int = 20
    recommendation_limit: int = 10
    history_days: int = 30
    seed_window: int = 20
    fan_out_factor: int = 2
    history_limit: int = 100
    min_view_ms: int = 0
    max_workers: int = 1

    def __post_init__(self) -> None:
        if self.dimension <= 0:
            raise InvalidArgumentError("dimension must be > 0")
        normalize_vector_metric(self.metric, supported=DISTANCE_METRICS)
        if self.vector_backend not in VECTOR_BACKENDS:
            raise InvalidArgumentError(
                f"vector_backend must be one of {sorted(VECTOR_BACKENDS)}, got {self.vector_backend!r}"
            )
        if self.duplicate_threshold <= 0:
            raise InvalidArgumentError("duplicate_threshold must be > 0")
        for name in (
            "duplicate_neighbors",
            "recommendation_limit",
            "history_days",
            "seed_window",
            "fan_out_factor",
            "history_limit",
            "max_workers",
        ):
            if getattr(self, name) < 1:
                raise InvalidArgumentError(f"{name} must be >= 1")
        if self.min_view_ms < 0:
            raise InvalidArgumentError("min_view_ms must be >= 0")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        prefix: str = ENV_PREFIX,
    ) -> EngineConfig:
        """Build a config from `<PREFIX><FIELD>` environment variables."""

        source = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for item in fields(cls):
            raw = source.get(f"{prefix}{item.name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            overrides[item.name] = _parse(item.name, item.type, raw.strip())
        return cls(**overrides)

    def with_overrides(self, **changes: Any) -> EngineConfig:
        return replace(self, **changes)


def _parse(name: str, annotation: Any, raw: str) -> Any:
    kind = annotation if isinstance(annotation, str) else getattr(annotation, "__name__", "")
    try:
        if kind == "int":
            return int(raw)
        if kind == "float":
            return float(raw)
    except ValueError as exc:
        raise InvalidArgumentError(f"Invalid value for {name}: {raw!r}") from exc
    return raw
