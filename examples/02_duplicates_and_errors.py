"""Duplicate grouping on a SQLite-backed store and expected error cases."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

# Allow running this script directly from repository root.
PROJECT_ROOT = next(
    (parent for parent in Path(__file__).resolve().parents if (parent / "mediasim").exists()),
    None,
)
if PROJECT_ROOT and str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mediasim import (
    DuplicateClusterer,
    DuplicateOptions,
    EngineConfig,
    ImageRef,
    InMemoryImageCatalog,
    RecommendationOptions,
    SimilarityEngineError,
    open_embedding_store,
)


def expect_error(label: str, fn) -> None:  # noqa: ANN001
    try:
        fn()
    except SimilarityEngineError as exc:
        print(f"[OK] {label}: {exc.code}: {exc}")
    else:
        print(f"[UNEXPECTED] {label}: no exception raised")


def duplicates_demo() -> None:
    config = EngineConfig(dimension=2, database_path=":memory:")
    with open_embedding_store(config) as store:
        store.upsert("img1", [1.0, 0.0])
        store.upsert("img2", [0.99, 0.01])
        store.upsert("img3", [0.0, 1.0])

        catalog = InMemoryImageCatalog(
            [
                ImageRef("img1", datetime(2023, 1, 1, tzinfo=timezone.utc), "beach"),
                ImageRef("img2", datetime(2023, 6, 1, tzinfo=timezone.utc), "beach (copy)"),
                ImageRef("img3", datetime(2023, 3, 1, tzinfo=timezone.utc), "forest"),
            ]
        )
        clusterer = DuplicateClusterer.from_config(store, config, catalog)
        print("Duplicates:", clusterer.find(DuplicateOptions(threshold=0.05)).to_dict())

        expect_error("zero threshold", lambda: clusterer.find(DuplicateOptions(threshold=0)))
        expect_error("dimension mismatch on upsert", lambda: store.upsert("bad", [1, 0, 0]))
        expect_error("non-positive limit", lambda: store.find_similar([1, 0], limit=0))
        expect_error("limit above 100", lambda: RecommendationOptions(limit=101).validate())

    expect_error("query after close", lambda: store.count())


if __name__ == "__main__":
    duplicates_demo()
