from __future__ import annotations

import importlib
import unittest
from unittest.mock import patch

import numpy as np

from mediasim import (
    DimensionMismatchError,
    DuplicateClusterer,
    DuplicateOptions,
    EmbeddingStore,
    EmbeddingVector,
    FaissVectorStore,
    InMemoryVectorStore,
    VectorMetric,
)


def _module_available(name: str) -> bool:
    try:
        importlib.import_module(name)
    except ImportError:
        return False
    return True


HAS_FAISS = _module_available("faiss")


@unittest.skipUnless(HAS_FAISS, "faiss is not installed")
class FaissLocalVectorFlowTests(unittest.TestCase):
    def _store(self, metric: VectorMetric = VectorMetric.COSINE) -> EmbeddingStore:
        return EmbeddingStore(FaissVectorStore(), "faiss_images", dimension=3, metric=metric)

    def test_faiss_memory_flow_upsert_query_fetch_delete(self) -> None:
        store = self._store()
        store.upsert("u1", [1, 0, 0])
        store.upsert("u2", [0, 1, 0])
        store.upsert("u3", [0.9, 0.1, 0])
        store.upsert("u3", [0.8, 0.2, 0])

        fetched = store.get_many(["u2", "u1"])
        hits = store.find_similar([1, 0, 0], limit=2)
        excluded = store.find_similar([1, 0, 0], limit=2, exclude={"u1"})
        store.remove("u2")

        self.assertEqual([item.entity_id for item in fetched], ["u2", "u1"])
        self.assertEqual([hit.entity_id for hit in hits], ["u1", "u3"])
        self.assertEqual([hit.entity_id for hit in excluded], ["u3", "u2"])
        self.assertEqual(store.ids(), ["u1", "u3"])
        self.assertEqual(store.count(), 2)

    def test_faiss_l2_reports_euclidean_distance(self) -> None:
        store = self._store(VectorMetric.L2)
        store.upsert("x", [1, 0, 0])
        store.upsert("y", [3, 0, 0])

        hits = store.find_similar([0, 0, 0], limit=2)

        self.assertEqual([hit.entity_id for hit in hits], ["x", "y"])
        self.assertAlmostEqual(hits[1].distance, 3.0, places=5)

    def test_faiss_ties_and_zero_query_order_by_id(self) -> None:
        store = self._store()
        store.upsert("b", [0, 1, 0])
        store.upsert("a", [0, 0, 1])

        tied = store.find_similar([1, 0, 0], limit=2)
        zero = store.find_similar([0, 0, 0], limit=2)

        self.assertEqual([hit.entity_id for hit in tied], ["a", "b"])
        self.assertEqual([(hit.entity_id, hit.distance) for hit in zero], [("a", 1.0), ("b", 1.0)])

    def test_faiss_truncated_ties_keep_smallest_ids(self) -> None:
        store = self._store()
        for item_id in ("d", "c", "b", "a"):
            store.upsert(item_id, [0, 1, 0])
        store.upsert("far", [1, 0, 0])

        top1 = store.find_similar([0, 1, 0], limit=1)
        top2 = store.find_similar([0, 1, 0], limit=2, exclude={"a"})
        l2_store = self._store(VectorMetric.L2)
        for item_id in ("z", "y", "x"):
            l2_store.upsert(item_id, [2, 0, 0])
        l2_top = l2_store.find_similar([0, 0, 0], limit=2)

        self.assertEqual([hit.entity_id for hit in top1], ["a"])
        self.assertEqual([hit.entity_id for hit in top2], ["b", "c"])
        self.assertEqual([hit.entity_id for hit in l2_top], ["x", "y"])

    def test_faiss_matches_in_memory_backend(self) -> None:
        rng = np.random.default_rng(11)
        faiss_store = self._store()
        memory_store = EmbeddingStore(InMemoryVectorStore(), dimension=3)
        for index in range(25):
            values = rng.normal(size=3).tolist()
            faiss_store.upsert(f"img{index:02d}", values)
            memory_store.upsert(f"img{index:02d}", values)

        query = [0.2, 0.5, -0.1]
        faiss_hits = faiss_store.find_similar(query, limit=6)
        memory_hits = memory_store.find_similar(query, limit=6)

        self.assertEqual(
            [hit.entity_id for hit in faiss_hits], [hit.entity_id for hit in memory_hits]
        )
        for left, right in zip(faiss_hits, memory_hits):
            self.assertAlmostEqual(left.distance, right.distance, places=5)

    def test_faiss_replace_and_dimension_checks(self) -> None:
        backend = FaissVectorStore()
        backend.create_collection("images", dimension=2)
        backend.upsert("images", [EmbeddingVector("a", np.array([1, 0], dtype=np.float32))])

        dropped = backend.replace(
            "images", [EmbeddingVector("b", np.array([0, 1], dtype=np.float32))]
        )

        self.assertEqual(dropped, 1)
        self.assertEqual([item.entity_id for item in backend.fetch("images")], ["b"])
        with self.assertRaises(DimensionMismatchError):
            backend.create_collection("images", dimension=3, exist_ok=True)
        with self.assertRaises(KeyError):
            backend.fetch("missing_collection")

    def test_faiss_backs_duplicate_clustering(self) -> None:
        store = EmbeddingStore(FaissVectorStore(), dimension=2)
        store.upsert("img1", [1, 0])
        store.upsert("img2", [0.99, 0.01])
        store.upsert("img3", [0, 1])

        report = DuplicateClusterer(store).find(DuplicateOptions(threshold=0.05))

        self.assertEqual(report.total_groups, 1)
        self.assertEqual(sorted(ref.id for ref in report.groups[0].members), ["img1", "img2"])


class FaissAdapterOptionalTests(unittest.TestCase):
    def test_faiss_store_requires_dependency(self) -> None:
        real_import = __import__

        def fake_import(name, *args, **kwargs):
            if name == "faiss":
                raise ImportError(f"simulated missing {name}")
            return real_import(name, *args, **kwargs)

        with patch("builtins.__import__", side_effect=fake_import):
            with self.assertRaises(ImportError):
                FaissVectorStore()


if __name__ == "__main__":
    unittest.main()
