"""Inputs and results of duplicate clustering."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..errors import InvalidArgumentError

DEFAULT_DUPLICATE_THRESHOLD = 0.1


@dataclass(frozen=True)
class ImageRef:
    """An opaque image id plus the metadata used to pick an original."""

    id: str
    created_at: datetime
    title: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "createdAt": self.created_at.isoformat()}
        if self.title is not None:
            data["title"] = self.title
        return data


@dataclass(frozen=True)
class DuplicateOptions:
    threshold: float = DEFAULT_DUPLICATE_THRESHOLD

    def validate(self) -> None:
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, float)):
            raise InvalidArgumentError(
                f"threshold must be a number, got {self.threshold!r}"
            )
        if not self.threshold > 0:
            raise InvalidArgumentError(f"threshold must be > 0, got {self.threshold}")


@dataclass(frozen=True)
class DuplicateMember:
    ref: ImageRef
    distance: float

    def to_dict(self) -> dict[str, Any]:
        data = self.ref.to_dict()
        data["distance"] = self.distance
        return data


@dataclass(frozen=True)
class DuplicateGroup:
    original: ImageRef
    duplicates: tuple[DuplicateMember, ...]

    @property
    def members(self) -> tuple[ImageRef, ...]:
        return (self.original,) + tuple(item.ref for item in self.duplicates)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original.to_dict(),
            "duplicates": [item.to_dict() for item in self.duplicates],
        }


@dataclass(frozen=True)
class DuplicateReport:
    groups: tuple[DuplicateGroup, ...] = ()

    @property
    def total_groups(self) -> int:
        return len(self.groups)

    @property
    def total_duplicates(self) -> int:
        return sum(len(group.duplicates) for group in self.groups)

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [group.to_dict() for group in self.groups],
            "totalGroups": self.total_groups,
            "totalDuplicates": self.total_duplicates,
        }
