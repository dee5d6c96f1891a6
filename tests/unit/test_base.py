# tests/unit/test_base.py

"""
Unit tests for the abstract summary base classes.
"""

import unittest

from tiny_digest.algorithms.tdigest import TDigest
from tiny_digest.core.base import QuantileEstimator, StreamSummary


class TestStreamSummary(unittest.TestCase):
    """Tests for behaviour shared by every summary."""

    def test_cannot_instantiate_abstract_classes(self):
        with self.assertRaises(TypeError):
            StreamSummary()
        with self.assertRaises(TypeError):
            QuantileEstimator()

    def test_tdigest_is_a_quantile_estimator(self):
        td = TDigest()
        self.assertIsInstance(td, QuantileEstimator)
        self.assertIsInstance(td, StreamSummary)

    def test_base_dict(self):
        data = TDigest(memory_limit_bytes=4096).update([1, 2])._base_dict()
        self.assertEqual(
            data,
            {"type": "TDigest", "items_processed": 2, "memory_limit_bytes": 4096},
        )

    def test_serialize_formats(self):
        td = TDigest().update([1, 2, 3])
        self.assertIsInstance(td.serialize(), str)
        self.assertIsInstance(td.serialize(format="binary"), bytes)

        # Either form is accepted by either format
        restored = TDigest.deserialize(td.serialize(format="binary"), format="json")
        self.assertEqual(restored.clusters, td.clusters)
        restored = TDigest.deserialize(td.serialize(format="json"), format="binary")
        self.assertEqual(restored.clusters, td.clusters)

    def test_check_same_type(self):
        td = TDigest()
        td._check_same_type(TDigest())
        with self.assertRaises(TypeError):
            td._check_same_type("not a digest")


class TestQuantileEstimator(unittest.TestCase):
    """Tests for the percentile snapshot helpers."""

    def test_snapshot_keys(self):
        snapshot = TDigest().update(range(100)).percentile_snapshot()
        self.assertEqual(
            list(snapshot), ["p1", "p5", "p25", "p50", "p75", "p95", "p99"]
        )

    def test_snapshot_empty(self):
        snapshot = TDigest().percentile_snapshot()
        self.assertTrue(all(v is None for v in snapshot.values()))

    def test_snapshot_ordered(self):
        values = list(TDigest().update(range(100)).percentile_snapshot().values())
        self.assertEqual(values, sorted(values))


if __name__ == "__main__":
    unittest.main()
