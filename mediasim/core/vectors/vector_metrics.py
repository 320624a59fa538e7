"""Distance metric definitions and the vectorized distance math behind them."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Mapping

import numpy as np

from ..errors import InvalidArgumentError


class VectorMetric(str, Enum):
    """Supported normalized vector metric values."""

    COSINE = "cosine"
    L2 = "l2"


VectorMetricInput = str | VectorMetric

# Both metrics yield a non-negative distance usable by score transforms.
DISTANCE_METRICS = frozenset({VectorMetric.COSINE, VectorMetric.L2})


def normalize_vector_metric(
    metric: VectorMetricInput,
    *,
    supported: Iterable[VectorMetric] | None = None,
    aliases: Mapping[str, VectorMetric] | None = None,
) -> VectorMetric:
    """Normalize user metric input into a `VectorMetric` value."""

    alias_map = {key.lower(): value for key, value in (aliases or {}).items()}

    if isinstance(metric, VectorMetric):
        normalized = metric
    elif isinstance(metric, str):
        key = metric.strip().lower()
        if key in VectorMetric._value2member_map_:
            normalized = VectorMetric(key)
        elif key in alias_map:
            normalized = alias_map[key]
        else:
            allowed = sorted(
                set(VectorMetric._value2member_map_.keys()) | set(alias_map.keys())
            )
            raise InvalidArgumentError(
                f"Unsupported metric: {metric}. Supported: {allowed}"
            )
    else:
        raise InvalidArgumentError(f"Unsupported metric type: {type(metric).__name__}")

    if supported is not None:
        supported_set = set(supported)
        if normalized not in supported_set:
            allowed = sorted(item.value for item in supported_set)
            raise InvalidArgumentError(
                f"Unsupported metric: {normalized.value}. Supported: {allowed}"
            )

    return normalized


def prepare_rows(metric: VectorMetric, matrix: np.ndarray) -> np.ndarray:
    """Return the matrix in the form `distances()` expects for `metric`.

    Cosine rows are scaled to unit length; zero rows stay zero so their
    similarity to anything is 0.
    """

    if metric != VectorMetric.COSINE or matrix.size == 0:
        return matrix
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    safe = np.where(norms == 0.0, 1.0, norms)
    return (matrix / safe).astype(np.float32, copy=False)


def distances(metric: VectorMetric, rows: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Distances from `query` to every row of a matrix from `prepare_rows()`."""

    if rows.shape[0] == 0:
        return np.empty(0, dtype=np.float64)

    if metric == VectorMetric.L2:
        diff = rows.astype(np.float64) - query.astype(np.float64)
        return np.sqrt(np.einsum("ij,ij->i", diff, diff))

    norm = float(np.linalg.norm(query))
    if norm == 0.0:
        return np.ones(rows.shape[0], dtype=np.float64)
    unit = (query / norm).astype(np.float32)
    similarity = rows @ unit
    return np.clip(1.0 - similarity.astype(np.float64), 0.0, 2.0)


def pair_distance(metric: VectorMetric, left: np.ndarray, right: np.ndarray) -> float:
    """Distance between two vectors, consistent with `distances()`."""

    rows = prepare_rows(metric, np.asarray([left], dtype=np.float32))
    return float(distances(metric, rows, np.asarray(right, dtype=np.float32))[0])


def distance_to_score(distance: float) -> float:
    """Map a non-negative distance onto (0, 1]; identical vectors score 1."""

    return 1.0 / (1.0 + max(distance, 0.0))
