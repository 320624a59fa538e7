"""Disjoint-set forest with path compression and union by rank."""

from __future__ import annotations

from typing import Hashable, Iterable, TypeVar

T = TypeVar("T", bound=Hashable)


class UnionFind:
    """Incrementally merges items into connected components."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._parent: dict[T, T] = {}
        self._rank: dict[T, int] = {}
        for item in items:
            self.make_set(item)

    def __contains__(self, item: object) -> bool:
        return item in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def make_set(self, item: T) -> None:
        if item not in self._parent:
            self._parent[item] = item
            self._rank[item] = 0

    def find(self, item: T) -> T:
        self.make_set(item)
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        # Path compression: point every node on the walk at the root.
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, left: T, right: T) -> bool:
        """Merge the sets of `left` and `right`; False if already merged."""

        root_left = self.find(left)
        root_right = self.find(right)
        if root_left == root_right:
            return False

        rank_left = self._rank[root_left]
        rank_right = self._rank[root_right]
        if rank_left < rank_right:
            self._parent[root_left] = root_right
        elif rank_left > rank_right:
            self._parent[root_right] = root_left
        else:
            self._parent[root_right] = root_left
            self._rank[root_left] = rank_left + 1
        return True

    def connected(self, left: T, right: T) -> bool:
        return self.find(left) == self.find(right)

    def groups(self) -> list[list[T]]:
        """Components in first-seen order, members in insertion order."""

        by_root: dict[T, list[T]] = {}
        for item in self._parent:
            by_root.setdefault(self.find(item), []).append(item)
        return list(by_root.values())
