from __future__ import annotations

import unittest
from datetime import datetime, timezone

import numpy as np

from mediasim import (
    DimensionMismatchError,
    EmbeddingVector,
    Float32BlobCodec,
    InvalidArgumentError,
    SimilarityIndexAdapter,
    StorageFailureError,
    VectorMetric,
    distance_to_score,
)
from mediasim.core.vectors.vector_codecs import coerce_vector, decode_timestamp, encode_timestamp
from mediasim.core.vectors.vector_metrics import normalize_vector_metric, pair_distance


def _record(entity_id: str, values: list[float], day: int = 1) -> EmbeddingVector:
    return EmbeddingVector(
        entity_id,
        np.asarray(values, dtype=np.float32),
        datetime(2024, 1, day, tzinfo=timezone.utc),
    )


class SimilarityIndexAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.index = SimilarityIndexAdapter(2, VectorMetric.COSINE)
        self.index.put_many([_record("b", [0, 1]), _record("a", [1, 0], day=3)])

    def test_snapshot_taken_before_write_is_unchanged(self) -> None:
        before = self.index.fetch()
        self.index.put(_record("c", [1, 1]))
        self.index.discard("a")

        self.assertEqual([item.entity_id for item in before], ["a", "b"])
        self.assertEqual([item.entity_id for item in self.index.fetch()], ["b", "c"])
        self.assertEqual(len(self.index), 2)

    def test_discard_reports_whether_row_existed(self) -> None:
        self.assertTrue(self.index.discard("a"))
        self.assertFalse(self.index.discard("a"))

    def test_swap_returns_dropped_count(self) -> None:
        dropped = self.index.swap([_record("z", [1, 0])])

        self.assertEqual(dropped, 2)
        self.assertEqual(self.index.clear(), 1)
        self.assertEqual(len(self.index), 0)

    def test_search_excludes_and_limits(self) -> None:
        hits = self.index.search(np.array([1, 0], dtype=np.float32), 5, exclude={"a"})
        none = self.index.search(np.array([1, 0], dtype=np.float32), 0)

        self.assertEqual([hit.entity_id for hit in hits], ["b"])
        self.assertEqual(none, [])

    def test_get_returns_live_row(self) -> None:
        self.assertEqual(self.index.get("a").tolist(), [1.0, 0.0])
        self.assertIsNone(self.index.get("missing"))


class MetricTests(unittest.TestCase):
    def test_normalize_metric_inputs(self) -> None:
        self.assertEqual(normalize_vector_metric(" Cosine "), VectorMetric.COSINE)
        self.assertEqual(
            normalize_vector_metric("euclidean", aliases={"euclidean": VectorMetric.L2}),
            VectorMetric.L2,
        )
        with self.assertRaises(InvalidArgumentError):
            normalize_vector_metric("manhattan")
        with self.assertRaises(InvalidArgumentError):
            normalize_vector_metric("dot")
        with self.assertRaises(InvalidArgumentError):
            normalize_vector_metric(3)  # type: ignore[arg-type]
        with self.assertRaises(InvalidArgumentError):
            normalize_vector_metric("l2", supported={VectorMetric.COSINE})

    def test_pair_distance_is_symmetric(self) -> None:
        left = np.array([0.3, 0.7], dtype=np.float32)
        right = np.array([-0.2, 0.4], dtype=np.float32)

        for metric in (VectorMetric.COSINE, VectorMetric.L2):
            with self.subTest(metric=metric):
                self.assertAlmostEqual(
                    pair_distance(metric, left, right),
                    pair_distance(metric, right, left),
                    places=6,
                )

    def test_distance_to_score(self) -> None:
        self.assertEqual(distance_to_score(0.0), 1.0)
        self.assertAlmostEqual(distance_to_score(0.1), 1 / 1.1)
        self.assertEqual(distance_to_score(-0.5), 1.0)
        self.assertGreater(distance_to_score(0.2), distance_to_score(0.3))


class CodecTests(unittest.TestCase):
    def test_float32_blob_layout(self) -> None:
        codec = Float32BlobCodec()
        blob = codec.encode(np.array([1.0, -0.5], dtype=np.float32))
        decoded = codec.decode(blob, 2)

        self.assertEqual(blob, np.array([1.0, -0.5], dtype="<f4").tobytes())
        self.assertEqual(decoded.tolist(), [1.0, -0.5])
        self.assertFalse(decoded.flags.writeable)
        with self.assertRaises(StorageFailureError):
            codec.decode(blob, 3)

    def test_coerce_vector_validation(self) -> None:
        vector = coerce_vector([1, 2, 3], 3)

        self.assertEqual(vector.dtype, np.float32)
        self.assertFalse(vector.flags.writeable)
        with self.assertRaises(DimensionMismatchError) as ctx:
            coerce_vector([1, 2], 3)
        with self.assertRaises(InvalidArgumentError):
            coerce_vector(["a", "b", "c"], 3)
        with self.assertRaises(InvalidArgumentError):
            coerce_vector([1, float("inf"), 3], 3)
        self.assertEqual((ctx.exception.expected, ctx.exception.actual), (3, 2))

    def test_timestamps_round_trip_as_utc(self) -> None:
        naive = datetime(2024, 2, 3, 4, 5, 6)
        encoded = encode_timestamp(naive)

        self.assertEqual(encoded, "2024-02-03T04:05:06.000000+00:00")
        self.assertEqual(decode_timestamp(encoded), naive.replace(tzinfo=timezone.utc))
        self.assertEqual(
            decode_timestamp("2024-02-03T04:05:06").tzinfo, timezone.utc
        )


if __name__ == "__main__":
    unittest.main()
