"""View history and image catalog adapter exports."""

from .in_memory import InMemoryImageCatalog, InMemoryViewHistory
from .sqlite import SQLiteViewHistory

__all__ = [
    "InMemoryImageCatalog",
    "InMemoryViewHistory",
    "SQLiteViewHistory",
]
