"""Build an `EmbeddingStore` from an `EngineConfig`."""

from __future__ import annotations

import logging
from typing import Optional

from .core.config import EngineConfig
from .core.errors import InvalidArgumentError
from .core.vectors.embedding_store import EmbeddingStore
from .ports.db_api.database import Database
from .ports.vector.faiss import FaissVectorStore
from .ports.vector.in_memory import InMemoryVectorStore
from .ports.vector.sqlite import SQLiteVectorStore

logger = logging.getLogger(__name__)


def open_embedding_store(config: Optional[EngineConfig] = None) -> EmbeddingStore:
    """Open the configured vector backend and attach an `EmbeddingStore` to it.

    The SQLite backend reloads rows already persisted at `database_path`;
    the memory and faiss backends always start empty.
    """

    config = config or EngineConfig()
    backend = config.vector_backend
    if backend == "sqlite":
        store = SQLiteVectorStore(Database.sqlite(config.database_path))
    elif backend == "memory":
        store = InMemoryVectorStore()
    elif backend == "faiss":
        store = FaissVectorStore()
    else:
        raise InvalidArgumentError(f"Unknown vector backend: {backend!r}")

    logger.debug("Opening %s embedding store %r", backend, config.collection)
    try:
        return EmbeddingStore(
            store,
            config.collection,
            dimension=config.dimension,
            metric=config.metric,
        )
    except BaseException:
        store.close()
        raise
