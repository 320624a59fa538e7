from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from mediasim import (
    Database,
    EmbeddingStore,
    ImageRef,
    InMemoryImageCatalog,
    InMemoryViewHistory,
    InvalidArgumentError,
    RecommendationEngine,
    RecommendationOptions,
    SQLiteVectorStore,
    SQLiteViewHistory,
    StorageFailureError,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class SQLiteViewHistoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = Database.sqlite(":memory:")
        self.history = SQLiteViewHistory(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def test_find_recent_is_newest_first_and_limited(self) -> None:
        for days_ago, image_id in ((5, "a"), (1, "b"), (3, "c"), (40, "old")):
            self.history.record_view(image_id, viewed_at=NOW - timedelta(days=days_ago))

        recent = self.history.find_recent(since=NOW - timedelta(days=30), limit=2)

        self.assertEqual([entry.image_id for entry in recent], ["b", "c"])
        self.assertEqual(recent[0].viewed_at, NOW - timedelta(days=1))
        self.assertIsNone(recent[0].duration_ms)

    def test_update_duration(self) -> None:
        view_id = self.history.record_view("a", viewed_at=NOW)

        updated = self.history.update_duration(view_id, 1500)
        missing = self.history.update_duration(view_id + 100, 10)
        entry = self.history.find_recent(since=NOW - timedelta(days=1), limit=1)[0]

        self.assertTrue(updated)
        self.assertFalse(missing)
        self.assertEqual(entry.duration_ms, 1500)
        with self.assertRaises(InvalidArgumentError):
            self.history.update_duration(view_id, -1)

    def test_offset_timestamps_compare_in_utc(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        self.history.record_view("early", viewed_at=datetime(2024, 6, 15, 13, 0, tzinfo=plus_two))
        self.history.record_view("late", viewed_at=datetime(2024, 6, 15, 11, 30, tzinfo=timezone.utc))

        recent = self.history.find_recent(since=NOW - timedelta(hours=1), limit=10)

        self.assertEqual([entry.image_id for entry in recent], ["late", "early"])

    def test_rejects_unsafe_table_names(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            SQLiteViewHistory(self.db, table="views; DROP TABLE x")

    def test_sqlite_errors_become_storage_failures(self) -> None:
        self.db.execute('DROP TABLE "view_history";')

        with self.assertRaises(StorageFailureError):
            self.history.find_recent(since=NOW, limit=5)

    def test_drives_recommendations_alongside_embeddings(self) -> None:
        store = EmbeddingStore(SQLiteVectorStore(self.db, owns_db=False), dimension=2)
        store.upsert("seen", [1, 0])
        store.upsert("similar", [0.95, 0.05])
        store.upsert("different", [0, 1])
        self.history.record_view("seen", viewed_at=NOW - timedelta(hours=3))
        engine = RecommendationEngine(store, self.history, clock=lambda: NOW)

        result = engine.generate(RecommendationOptions(limit=1))

        self.assertEqual([item.image_id for item in result.recommendations], ["similar"])


class InMemoryAdapterTests(unittest.TestCase):
    def test_in_memory_history_filters_and_orders(self) -> None:
        history = InMemoryViewHistory()
        history.record_view("a", viewed_at=NOW - timedelta(days=2))
        history.record_view("b", viewed_at=NOW - timedelta(days=1))
        history.record_view("c", viewed_at=NOW - timedelta(days=10))

        recent = history.find_recent(since=NOW - timedelta(days=5), limit=5)

        self.assertEqual([entry.image_id for entry in recent], ["b", "a"])

    def test_catalog_lookup_skips_unknown_ids(self) -> None:
        catalog = InMemoryImageCatalog([ImageRef("a", NOW), ImageRef("b", NOW)])
        catalog.remove("b")

        self.assertEqual(list(catalog.find_refs(["a", "b", "z"])), ["a"])


if __name__ == "__main__":
    unittest.main()
