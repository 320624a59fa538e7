"""Public port exports for concrete adapter implementations."""

from .db_api import Database, Dialect, SQLiteDialect
from .history import InMemoryImageCatalog, InMemoryViewHistory, SQLiteViewHistory
from .vector import FaissVectorStore, InMemoryVectorStore, SQLiteVectorStore

__all__ = [
    "Database",
    "Dialect",
    "SQLiteDialect",
    "InMemoryVectorStore",
    "SQLiteVectorStore",
    "FaissVectorStore",
    "InMemoryViewHistory",
    "InMemoryImageCatalog",
    "SQLiteViewHistory",
]
