"""Error taxonomy raised by the similarity engine."""

from __future__ import annotations


class SimilarityEngineError(Exception):
    """Base class for engine errors; `code` is stable across releases."""

    code: str = "ENGINE_ERROR"


class DimensionMismatchError(SimilarityEngineError, ValueError):
    """Vector length does not match the store dimension."""

    code = "DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Vector dimension mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class InvalidArgumentError(SimilarityEngineError, ValueError):
    """Caller supplied an out-of-range limit, threshold, or window."""

    code = "INVALID_ARGUMENT"


class NotReadyError(SimilarityEngineError, RuntimeError):
    """Store is closed or otherwise unavailable."""

    code = "NOT_READY"


class StorageFailureError(SimilarityEngineError, RuntimeError):
    """Underlying storage I/O failed."""

    code = "STORAGE_FAILURE"


class OperationCancelledError(SimilarityEngineError, RuntimeError):
    """Caller cancelled a running query."""

    code = "CANCELLED"
