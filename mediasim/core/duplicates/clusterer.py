"""Near-duplicate grouping over the stored embeddings.

Every image queries its nearest neighbors; any pair within the threshold in
either direction becomes an edge. Edges are merged with union-find in
ascending `(distance, id, id)` order, so the merges form a minimum spanning
forest and images linked only through an intermediate still share a group.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Mapping, Optional, Sequence

from .._parallel import run_queries
from ..cancellation import CancellationToken, check_cancelled
from ..config import EngineConfig
from ..contracts import ImageCatalogPort
from ..errors import InvalidArgumentError
from ..vectors.embedding_store import EmbeddingStore
from ..vectors.vector_types import EmbeddingVector, SimilarityResult, as_utc
from .duplicate_types import (
    DuplicateGroup,
    DuplicateMember,
    DuplicateOptions,
    DuplicateReport,
    ImageRef,
)
from .union_find import UnionFind

logger = logging.getLogger(__name__)

Pair = tuple[str, str]


def _pair(left: str, right: str) -> Pair:
    return (left, right) if left < right else (right, left)


def _ref_order(ref: ImageRef) -> tuple:
    return (as_utc(ref.created_at), ref.id)


class DuplicateClusterer:
    """Groups stored images whose embeddings sit within a distance threshold."""

    def __init__(
        self,
        store: EmbeddingStore,
        catalog: Optional[ImageCatalogPort] = None,
        *,
        neighbors: int = 20,
        max_workers: int = 1,
    ) -> None:
        if neighbors < 1:
            raise InvalidArgumentError("neighbors must be >= 1")
        if max_workers < 1:
            raise InvalidArgumentError("max_workers must be >= 1")
        self.store = store
        self.catalog = catalog
        self.neighbors = neighbors
        self.max_workers = max_workers

    @classmethod
    def from_config(
        cls,
        store: EmbeddingStore,
        config: EngineConfig,
        catalog: Optional[ImageCatalogPort] = None,
    ) -> DuplicateClusterer:
        return cls(
            store,
            catalog,
            neighbors=config.duplicate_neighbors,
            max_workers=config.max_workers,
        )

    def find(
        self,
        options: Optional[DuplicateOptions] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> DuplicateReport:
        options = options or DuplicateOptions()
        options.validate()

        snapshot = self.store.enumerate()
        if len(snapshot) < 2:
            return DuplicateReport()

        edges = self._collect_edges(snapshot, float(options.threshold), cancel)
        if not edges:
            return DuplicateReport()

        check_cancelled(cancel)
        forest = UnionFind()
        tree: dict[str, list[tuple[str, float]]] = {}
        for (left, right), distance in sorted(
            edges.items(), key=lambda item: (item[1], item[0])
        ):
            if forest.union(left, right):
                tree.setdefault(left, []).append((right, distance))
                tree.setdefault(right, []).append((left, distance))

        components = [sorted(group) for group in forest.groups() if len(group) > 1]
        refs = self._resolve_refs(
            [member for group in components for member in group],
            {record.entity_id: record for record in snapshot},
        )

        groups: list[DuplicateGroup] = []
        for members in components:
            group = self._build_group(members, refs, edges, tree)
            if group is not None:
                groups.append(group)

        groups.sort(key=lambda group: _ref_order(group.original))
        report = DuplicateReport(tuple(groups))
        logger.info(
            "Found %d duplicate groups (%d duplicates) among %d embeddings",
            report.total_groups,
            report.total_duplicates,
            len(snapshot),
        )
        return report

    def _collect_edges(
        self,
        snapshot: Sequence[EmbeddingVector],
        threshold: float,
        cancel: Optional[CancellationToken],
    ) -> dict[Pair, float]:
        known = {record.entity_id for record in snapshot}
        limit = min(self.neighbors, len(snapshot) - 1)

        def neighbors_of(record: EmbeddingVector) -> list[SimilarityResult]:
            return self.store.find_similar(record.vector, limit, {record.entity_id})

        batches = run_queries(
            neighbors_of,
            snapshot,
            max_workers=self.max_workers,
            cancel=cancel,
            thread_name_prefix="mediasim-duplicates",
        )

        edges: dict[Pair, float] = {}
        for record, hits in zip(snapshot, batches):
            for hit in hits:
                if hit.distance > threshold:
                    break
                # Rows written after the snapshot was taken are left out.
                if hit.entity_id not in known or hit.entity_id == record.entity_id:
                    continue
                key = _pair(record.entity_id, hit.entity_id)
                current = edges.get(key)
                if current is None or hit.distance < current:
                    edges[key] = hit.distance
        return edges

    def _resolve_refs(
        self,
        ids: Sequence[str],
        records: Mapping[str, EmbeddingVector],
    ) -> dict[str, ImageRef]:
        if self.catalog is None:
            return {
                item_id: ImageRef(id=item_id, created_at=records[item_id].computed_at)
                for item_id in ids
            }

        found = dict(self.catalog.find_refs(list(ids)))
        missing = [item_id for item_id in ids if item_id not in found]
        if missing:
            logger.warning(
                "Skipping %d duplicate candidates missing from the image catalog",
                len(missing),
            )
        return {item_id: found[item_id] for item_id in ids if item_id in found}

    @staticmethod
    def _build_group(
        members: Sequence[str],
        refs: Mapping[str, ImageRef],
        edges: Mapping[Pair, float],
        tree: Mapping[str, list[tuple[str, float]]],
    ) -> Optional[DuplicateGroup]:
        present = sorted((refs[item_id] for item_id in members if item_id in refs), key=_ref_order)
        if len(present) < 2:
            return None

        original = present[0]
        bottleneck = _bottleneck_from(original.id, tree)
        duplicates = []
        for ref in present[1:]:
            distance = edges.get(_pair(original.id, ref.id))
            if distance is None:
                distance = bottleneck[ref.id]
            duplicates.append(DuplicateMember(ref=ref, distance=distance))
        return DuplicateGroup(original=original, duplicates=tuple(duplicates))


def _bottleneck_from(
    origin: str, tree: Mapping[str, list[tuple[str, float]]]
) -> dict[str, float]:
    """Largest edge on the spanning-tree path from `origin` to each node."""

    reach = {origin: 0.0}
    queue = deque([origin])
    while queue:
        node = queue.popleft()
        for neighbor, distance in tree.get(node, ()):
            if neighbor in reach:
                continue
            reach[neighbor] = max(reach[node], distance)
            queue.append(neighbor)
    return reach
