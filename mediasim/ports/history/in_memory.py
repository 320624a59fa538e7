"""In-memory view history and image catalog for tests and local tools."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from ...core.duplicates.duplicate_types import ImageRef
from ...core.recommendations.recommendation_types import ViewHistoryEntry
from ...core.vectors.vector_types import as_utc, utc_now


class InMemoryViewHistory:
    """Append-only list of views."""

    def __init__(self, entries: Iterable[ViewHistoryEntry] = ()) -> None:
        self._entries: list[ViewHistoryEntry] = list(entries)
        self._lock = threading.Lock()

    def record_view(
        self,
        image_id: str,
        *,
        viewed_at: Optional[datetime] = None,
        duration_ms: Optional[int] = None,
    ) -> ViewHistoryEntry:
        entry = ViewHistoryEntry(
            image_id=str(image_id),
            viewed_at=viewed_at or utc_now(),
            duration_ms=duration_ms,
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def find_recent(self, *, since: datetime, limit: int) -> list[ViewHistoryEntry]:
        cutoff = as_utc(since)
        with self._lock:
            recent = [entry for entry in self._entries if as_utc(entry.viewed_at) >= cutoff]
        recent.sort(key=lambda entry: as_utc(entry.viewed_at), reverse=True)
        return recent[:limit]


class InMemoryImageCatalog:
    """Maps image ids to `ImageRef`s."""

    def __init__(self, refs: Iterable[ImageRef] = ()) -> None:
        self._refs: dict[str, ImageRef] = {ref.id: ref for ref in refs}

    def add(self, ref: ImageRef) -> None:
        self._refs[ref.id] = ref

    def remove(self, image_id: str) -> None:
        self._refs.pop(image_id, None)

    def find_refs(self, ids: Sequence[str]) -> Mapping[str, ImageRef]:
        return {item_id: self._refs[item_id] for item_id in ids if item_id in self._refs}
