"""Codecs translating vectors and timestamps to and from their stored form."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

import numpy as np

from ..errors import DimensionMismatchError, InvalidArgumentError, StorageFailureError
from ..types import VectorInput


class VectorBlobCodec(Protocol):
    """Codec interface for vector blob serialization and deserialization."""

    def encode(self, vector: np.ndarray) -> bytes: ...

    def decode(self, blob: bytes, dimension: int) -> np.ndarray: ...


@dataclass(frozen=True)
class Float32BlobCodec:
    """Raw little-endian float32 bytes, `4 * dimension` bytes per vector."""

    dtype: str = "<f4"

    def encode(self, vector: np.ndarray) -> bytes:
        return np.asarray(vector, dtype=self.dtype).tobytes()

    def decode(self, blob: bytes, dimension: int) -> np.ndarray:
        raw = bytes(blob)
        expected = dimension * np.dtype(self.dtype).itemsize
        if len(raw) != expected:
            raise StorageFailureError(
                f"Stored vector blob has {len(raw)} bytes, expected {expected}"
            )
        values = np.frombuffer(raw, dtype=self.dtype).astype(np.float32)
        values.setflags(write=False)
        return values


def coerce_vector(vector: VectorInput | np.ndarray, dimension: int) -> np.ndarray:
    """Return a read-only float32 copy of `vector`, validating its shape."""

    try:
        values = np.array(vector, dtype=np.float32)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"Vector must be numeric: {exc}") from exc

    if values.ndim != 1:
        raise InvalidArgumentError(
            f"Vector must be one-dimensional, got shape {values.shape}"
        )
    if values.shape[0] != dimension:
        raise DimensionMismatchError(dimension, int(values.shape[0]))
    if not np.all(np.isfinite(values)):
        raise InvalidArgumentError("Vector contains NaN or infinite values")

    values.setflags(write=False)
    return values


def encode_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def decode_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
