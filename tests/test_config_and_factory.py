from __future__ import annotations

import os
import tempfile
import unittest

from mediasim import (
    EmbeddingStore,
    EngineConfig,
    InMemoryVectorStore,
    InvalidArgumentError,
    SQLiteVectorStore,
    VectorMetric,
    open_embedding_store,
)


class EngineConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = EngineConfig()

        self.assertEqual(config.dimension, 512)
        self.assertEqual(config.metric, "cosine")
        self.assertEqual(config.vector_backend, "sqlite")
        self.assertEqual(config.duplicate_threshold, 0.1)
        self.assertEqual(config.recommendation_limit, 10)
        self.assertEqual(config.history_days, 30)
        self.assertEqual(config.max_workers, 1)

    def test_from_env_reads_prefixed_values(self) -> None:
        config = EngineConfig.from_env(
            {
                "MEDIASIM_DIMENSION": "128",
                "MEDIASIM_METRIC": "l2",
                "MEDIASIM_DUPLICATE_THRESHOLD": "0.25",
                "MEDIASIM_MAX_WORKERS": " 4 ",
                "MEDIASIM_DATABASE_PATH": "/tmp/embeddings.db",
                "MEDIASIM_HISTORY_DAYS": "",
                "OTHER_DIMENSION": "3",
            }
        )

        self.assertEqual(config.dimension, 128)
        self.assertEqual(config.metric, "l2")
        self.assertEqual(config.duplicate_threshold, 0.25)
        self.assertEqual(config.max_workers, 4)
        self.assertEqual(config.database_path, "/tmp/embeddings.db")
        self.assertEqual(config.history_days, 30)

    def test_from_env_custom_prefix(self) -> None:
        config = EngineConfig.from_env({"APP_SEED_WINDOW": "5"}, prefix="APP_")

        self.assertEqual(config.seed_window, 5)

    def test_invalid_values_are_rejected(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            EngineConfig.from_env({"MEDIASIM_DIMENSION": "abc"})
        for overrides in (
            {"dimension": 0},
            {"metric": "dot"},
            {"vector_backend": "redis"},
            {"duplicate_threshold": 0},
            {"fan_out_factor": 0},
            {"min_view_ms": -5},
        ):
            with self.subTest(overrides=overrides):
                with self.assertRaises(InvalidArgumentError):
                    EngineConfig(**overrides)

    def test_with_overrides_returns_new_config(self) -> None:
        base = EngineConfig()
        changed = base.with_overrides(dimension=8)

        self.assertEqual(changed.dimension, 8)
        self.assertEqual(base.dimension, 512)
        with self.assertRaises(InvalidArgumentError):
            base.with_overrides(max_workers=0)


class OpenEmbeddingStoreTests(unittest.TestCase):
    def test_memory_backend(self) -> None:
        store = open_embedding_store(
            EngineConfig(dimension=2, vector_backend="memory", metric="l2", collection="vecs")
        )

        self.assertIsInstance(store, EmbeddingStore)
        self.assertIsInstance(store.store, InMemoryVectorStore)
        self.assertEqual(store.metric, VectorMetric.L2)
        self.assertEqual(store.collection, "vecs")
        store.close()

    def test_sqlite_backend_reloads_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = EngineConfig(dimension=2, database_path=os.path.join(tmp, "lib", "e.db"))

            with open_embedding_store(config) as store:
                self.assertIsInstance(store.store, SQLiteVectorStore)
                store.upsert("img1", [1, 0])

            with open_embedding_store(config) as reopened:
                self.assertEqual(reopened.ids(), ["img1"])


if __name__ == "__main__":
    unittest.main()
