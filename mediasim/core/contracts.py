"""Core port contracts used by adapters, the store facade, and the engines."""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Collection, List, Mapping, Optional, Protocol, Sequence

import numpy as np

from .types import MaybeRow, QueryParams, RowMapping
from .vectors.vector_metrics import VectorMetric, VectorMetricInput
from .vectors.vector_types import EmbeddingVector, SimilarityResult


class DialectPort(Protocol):
    """Dialect behavior required by SQL-backed adapters."""

    name: str
    paramstyle: str

    def q(self, ident: str) -> str: ...

    def placeholder(self, key: str) -> str: ...


class DatabasePort(Protocol):
    """Database adapter behavior required by SQL-backed adapters."""

    dialect: DialectPort

    def transaction(self) -> AbstractContextManager[None]: ...

    def execute(self, sql: str, params: QueryParams = None) -> Any: ...

    def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow: ...

    def fetchall(self, sql: str, params: QueryParams = None) -> List[RowMapping]: ...

    def close(self) -> None: ...


class VectorStorePort(Protocol):
    """Vector backend behavior required by `EmbeddingStore`."""

    def create_collection(
        self,
        name: str,
        dimension: int,
        metric: VectorMetricInput = VectorMetric.COSINE,
        *,
        overwrite: bool = False,
        exist_ok: bool = False,
    ) -> None: ...

    def upsert(self, collection: str, records: Sequence[EmbeddingVector]) -> None: ...

    def query(
        self,
        collection: str,
        vector: np.ndarray,
        *,
        top_k: int = 10,
        exclude: Collection[str] = (),
    ) -> List[SimilarityResult]: ...

    def fetch(
        self, collection: str, ids: Optional[Sequence[str]] = None
    ) -> List[EmbeddingVector]: ...

    def delete(self, collection: str, ids: Sequence[str]) -> int: ...

    def count(self, collection: str) -> int: ...

    def replace(self, collection: str, records: Sequence[EmbeddingVector]) -> int: ...

    def close(self) -> None: ...


class ViewHistoryPort(Protocol):
    """Read access to the library's view history, newest first."""

    def find_recent(self, *, since: datetime, limit: int) -> Sequence[Any]: ...


class ImageCatalogPort(Protocol):
    """Resolves library ids to image references with creation times."""

    def find_refs(self, ids: Sequence[str]) -> Mapping[str, Any]: ...
