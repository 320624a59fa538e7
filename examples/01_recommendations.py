"""Recommendation flow with an in-memory store and view history."""

from __future__ import annotations

import math
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Allow running this script directly from repository root.
PROJECT_ROOT = next(
    (parent for parent in Path(__file__).resolve().parents if (parent / "mediasim").exists()),
    None,
)
if PROJECT_ROOT and str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mediasim import (
    EmbeddingStore,
    InMemoryVectorStore,
    InMemoryViewHistory,
    RecommendationEngine,
    RecommendationOptions,
)


def main() -> None:
    now = datetime.now(timezone.utc)
    store = EmbeddingStore(InMemoryVectorStore(), dimension=2)
    history = InMemoryViewHistory()

    # img4 sits at cosine distance 0.1 from img1, img5 at 0.3.
    store.upsert("img1", [1.0, 0.0])
    store.upsert("img4", [0.9, math.sqrt(0.19)])
    store.upsert("img5", [0.7, math.sqrt(0.51)])

    engine = RecommendationEngine(store, history)
    print("Before any views:", engine.generate().to_dict())

    history.record_view("img1", viewed_at=now - timedelta(days=2))
    print("Top 1:", engine.generate(RecommendationOptions(limit=1)).to_dict())
    print("Top 5:", engine.generate(RecommendationOptions(limit=5)).to_dict())

    # Similar images to a stored one, excluding itself.
    print("Similar to img1:", [hit.to_dict() for hit in store.find_similar_to("img1", limit=2)])


if __name__ == "__main__":
    main()
