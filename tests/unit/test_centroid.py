# tests/unit/test_centroid.py

"""
Unit tests for the centroid store and insertion engine.
"""

import random
import unittest

from tiny_digest.algorithms.centroid import (
    Centroid,
    cluster_add,
    insert_value,
    is_ordered,
    size_limit,
)


class TestCentroid(unittest.TestCase):
    """Tests for the Centroid value type."""

    def test_fields(self):
        c = Centroid(mean=10.0, weight=5)
        self.assertEqual(c.mean, 10.0)
        self.assertEqual(c.weight, 5)

    def test_equals_plain_tuple(self):
        self.assertEqual(Centroid(1.5, 2), (1.5, 2))
        self.assertEqual([Centroid(1, 1), Centroid(2, 1)], [(1, 1), (2, 1)])

    def test_ordering(self):
        c1 = Centroid(mean=5.0, weight=1)
        c2 = Centroid(mean=10.0, weight=1)
        c3 = Centroid(mean=5.0, weight=2)
        self.assertTrue(c1 < c2)
        self.assertFalse(c2 < c1)
        # Equal means fall back to weight, like a tuple
        self.assertTrue(c1 < c3)

    def test_repr(self):
        c = Centroid(mean=12.3456, weight=7.89)
        self.assertEqual(repr(c), "Centroid(mean=12.35, weight=7.89)")

    def test_serialization(self):
        c1 = Centroid(mean=25.5, weight=2.0)
        data = c1.to_dict()
        self.assertEqual(data, {"mean": 25.5, "weight": 2.0})

        c2 = Centroid.from_dict(data)
        self.assertIsInstance(c2, Centroid)
        self.assertEqual(c1, c2)

    def test_deserialization_invalid(self):
        with self.assertRaises(ValueError):
            Centroid.from_dict({"mean": 10})  # Missing weight
        with self.assertRaises(ValueError):
            Centroid.from_dict({"weight": 5})  # Missing mean
        with self.assertRaises(ValueError):
            Centroid.from_dict({"mean": 10, "weight": -2.0})
        with self.assertRaises(ValueError):
            Centroid.from_dict({"mean": 10, "weight": 0})
        for mean in [float("nan"), float("inf"), float("-inf")]:
            with self.assertRaises(ValueError):
                Centroid.from_dict({"mean": mean, "weight": 1})


class TestSizeLimit(unittest.TestCase):
    """Tests for the rank-dependent centroid size limit."""

    def test_median_limit(self):
        self.assertEqual(size_limit(1000, 0.1, 0.5), 100)

    def test_tails_are_tighter(self):
        self.assertLess(size_limit(1000, 0.1, 0.01), size_limit(1000, 0.1, 0.5))
        self.assertLess(size_limit(1000, 0.1, 0.99), size_limit(1000, 0.1, 0.5))

    def test_never_below_one(self):
        self.assertEqual(size_limit(10, 0.1, 0.01), 1)
        self.assertEqual(size_limit(0, 0.1, 0.5), 1)
        self.assertEqual(size_limit(2, 0, 0.25), 1)


class TestClusterAdd(unittest.TestCase):
    """Tests for merging an observation into a single centroid."""

    def test_combine_when_room(self):
        self.assertEqual(cluster_add(Centroid(1, 1), 2, 1, 5), [(1.5, 2)])
        self.assertEqual(cluster_add(Centroid(1, 9), 2, 1, 100), [(1.1, 10)])

    def test_new_cluster_when_no_room(self):
        self.assertEqual(cluster_add(Centroid(1, 1), 2, 1, 1), [(1, 1), (2, 1)])
        self.assertEqual(cluster_add(Centroid(2, 1), 1, 1, 1), [(1, 1), (2, 1)])

    def test_split_when_some_room(self):
        self.assertEqual(cluster_add(Centroid(1, 9), 2, 2, 10), [(1.1, 10), (2, 1)])
        self.assertEqual(cluster_add(Centroid(1, 9), 0, 2, 10), [(0, 1), (0.9, 10)])

    def test_same_value_combines_regardless_of_limit(self):
        self.assertEqual(cluster_add(Centroid(1, 1), 1, 1, 10), [(1, 2)])
        self.assertEqual(cluster_add(Centroid(1, 50), 1, 5, 1), [(1, 55)])

    def test_split_preserves_weight(self):
        result = cluster_add(Centroid(3.0, 7), 4.0, 6, 10)
        self.assertEqual(len(result), 2)
        self.assertEqual(sum(c.weight for c in result), 13)
        self.assertTrue(all(c.weight > 0 for c in result))
        self.assertTrue(is_ordered(result))

    def test_split_stays_between_inputs(self):
        # An over-full centroid must not be pushed away from the new value.
        self.assertEqual(cluster_add(Centroid(1, 10), 2, 1, 4), [(1, 10), (2, 1)])
        self.assertEqual(cluster_add(Centroid(1, 10), 0, 3, 4), [(0, 3), (1, 10)])

        rng = random.Random(11)
        for _ in range(500):
            mean = rng.uniform(-10, 10)
            value = rng.uniform(-10, 10)
            old_weight = rng.randint(1, 20)
            weight = rng.randint(1, 20)
            limit = rng.randint(1, 30)
            result = cluster_add(Centroid(mean, old_weight), value, weight, limit)
            lo = min(mean, value) - 1e-9
            hi = max(mean, value) + 1e-9
            for c in result:
                self.assertTrue(lo <= c.mean <= hi, msg=f"{c} outside [{lo}, {hi}]")
                self.assertGreater(c.weight, 0)
            self.assertEqual(sum(c.weight for c in result), old_weight + weight)

    def test_returns_centroids(self):
        for c in cluster_add(Centroid(1, 1), 2, 1, 1):
            self.assertIsInstance(c, Centroid)


class TestInsertValue(unittest.TestCase):
    """Tests for placing an observation in an ordered centroid list."""

    def test_add_if_empty(self):
        self.assertEqual(insert_value([], 0, 1.5, 1, 0.1), [(1.5, 1)])

    def test_adds_to_the_front(self):
        self.assertEqual(
            insert_value([Centroid(10, 1)], 1, 1.5, 1, 0.1), [(1.5, 1), (10, 1)]
        )
        self.assertEqual(
            insert_value([Centroid(1.5, 1), Centroid(10, 1)], 2, 1, 1, 0.1),
            [(1, 1), (1.5, 1), (10, 1)],
        )

    def test_adds_to_the_rear(self):
        self.assertEqual(
            insert_value([Centroid(1.5, 1)], 1, 10, 1, 0.1), [(1.5, 1), (10, 1)]
        )

    def test_adds_to_the_middle_closer_to_front(self):
        self.assertEqual(
            insert_value([Centroid(1.5, 1), Centroid(10, 1)], 2, 5, 1, 0),
            [(1.5, 1), (5, 1), (10, 1)],
        )

    def test_adds_to_the_middle_closer_to_rear(self):
        self.assertEqual(
            insert_value([Centroid(1.5, 1), Centroid(10, 1)], 2, 6, 1, 0),
            [(1.5, 1), (6, 1), (10, 1)],
        )

    def test_merges_into_closer_centroid(self):
        clusters = [Centroid(0, 4), Centroid(10, 4)]
        self.assertEqual(insert_value(clusters, 8, 4, 1, 1), [(0.8, 5), (10, 4)])
        self.assertEqual(insert_value(clusters, 8, 6, 1, 1), [(0, 4), (9.2, 5)])

    def test_equal_distance_goes_right(self):
        clusters = [Centroid(0, 4), Centroid(10, 4)]
        self.assertEqual(insert_value(clusters, 8, 5, 1, 1), [(0, 4), (9.0, 5)])

    def test_value_equal_to_last_mean_folds_in(self):
        self.assertEqual(insert_value([Centroid(1, 1)], 1, 1, 1, 0.1), [(1, 2)])
        self.assertEqual(
            insert_value([Centroid(0, 1), Centroid(3, 2)], 3, 3, 1, 0.1),
            [(0, 1), (3, 3)],
        )

    def test_zero_weight_is_noop(self):
        clusters = [Centroid(1, 1), Centroid(2, 1)]
        self.assertEqual(insert_value(clusters, 2, 1.5, 0, 0.1), clusters)
        self.assertEqual(insert_value([], 0, 1.5, 0, 0.1), [])

    def test_input_not_modified(self):
        clusters = [Centroid(1.5, 1), Centroid(10, 1)]
        snapshot = list(clusters)
        result = insert_value(clusters, 2, 5, 1, 0)
        self.assertEqual(clusters, snapshot)
        self.assertIsNot(result, clusters)

    def test_full_centroid_spills_whole_observation(self):
        # The middle centroid is already over its limit of 1, so nothing
        # merges into it and the observation gets its own centroid.
        clusters = [Centroid(0.5, 1), Centroid(1, 10), Centroid(1.2, 1)]
        self.assertEqual(
            insert_value(clusters, 12, 1.09, 1, 0.05),
            [(0.5, 1), (1, 10), (1.09, 1), (1.2, 1)],
        )

    def test_random_insertions_keep_invariants(self):
        rng = random.Random(7)
        clusters = []
        count = 0
        for _ in range(2000):
            value = rng.gauss(50, 15)
            weight = rng.choice([1, 1, 1, 2, 5])
            clusters = insert_value(clusters, count, value, weight, 0.1)
            count += weight

        self.assertTrue(is_ordered(clusters))
        self.assertEqual(sum(c.weight for c in clusters), count)
        self.assertTrue(all(c.weight > 0 for c in clusters))
        self.assertLess(len(clusters), 2000)


if __name__ == "__main__":
    unittest.main()
