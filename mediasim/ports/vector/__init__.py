"""Vector store adapter exports."""

from .faiss import FaissVectorStore
from .in_memory import InMemoryVectorStore
from .sqlite import SQLiteVectorStore

__all__ = [
    "InMemoryVectorStore",
    "SQLiteVectorStore",
    "FaissVectorStore",
]
