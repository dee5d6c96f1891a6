"""
Example of using tiny-digest to track percentiles over a stream.

This example feeds latency-like measurements into a T-Digest, compares its
estimates with exact percentiles, compacts it, and folds digests together.
"""

import random
import sys

from tiny_digest.algorithms.tdigest import TDigest


def demonstrate_basic_percentiles():
    """Estimate percentiles of a skewed stream and compare with exact values."""
    print("\n=== Basic Percentile Demo ===")

    rng = random.Random(42)
    values = [rng.lognormvariate(3.0, 0.6) for _ in range(5000)]

    digest = TDigest(delta=0.05, seed=42)
    digest = digest.update(values)

    print(f"Observations: {digest.count}")
    print(f"Centroids: {len(digest.clusters)}")

    exact = sorted(values)
    for p in [0.01, 0.25, 0.5, 0.75, 0.95, 0.99]:
        actual = exact[min(int(p * len(exact)), len(exact) - 1)]
        estimate = digest.percentile(p)
        print(f"  p{round(p * 100):>2}: estimate={estimate:8.3f}  exact={actual:8.3f}")

    median = digest.percentile(0.5)
    print(f"\nRank of the estimated median: {digest.quantile(median):.3f}")


def demonstrate_compression():
    """Show how sorted input defeats merging and how compress() recovers."""
    print("\n=== Compression Demo ===")

    digest = TDigest(delta=0.1, seed=7).update(range(1, 1001))
    print("After adding 1..1000 in order:")
    print(f"  {digest!r}")

    compressed = digest.compress()
    print("After compress():")
    print(f"  {compressed!r}")

    print(f"\nMemory before: {digest.estimate_size()} bytes")
    print(f"Memory after:  {compressed.estimate_size()} bytes")


def demonstrate_weighted_and_folding():
    """Add weighted observations and fold one digest into another."""
    print("\n=== Weighted Updates and Folding Demo ===")

    morning = TDigest().update([(120, 30), (250, 5), (90, 60)])
    evening = TDigest().update([(300, 10), (110, 40)])

    combined = morning.merge(evening)
    print(f"Morning total weight: {morning.count}")
    print(f"Evening total weight: {evening.count}")
    print(f"Combined total weight: {combined.count}")
    print(f"Combined median: {combined.percentile(0.5):.1f}")
    print(f"Share of traffic at or below 150: {combined.quantile(150):.2%}")


def demonstrate_serialization():
    """Serialize a digest to JSON and restore it."""
    print("\n=== Serialization Demo ===")

    digest = TDigest(seed=3).update(random.Random(3).gauss(0, 1) for _ in range(500))
    digest = digest.compress()

    serialized = digest.serialize(format="json")
    print(f"Serialized size: {len(serialized)} bytes")

    restored = TDigest.deserialize(serialized, format="json")
    print(f"Restored median: {restored.percentile(0.5):.4f}")
    print(f"Original median: {digest.percentile(0.5):.4f}")

    stats = restored.get_stats()
    print(f"Centroids: {stats['num_centroids']}, max weight: {stats['max_weight']}")
    print(f"Approximate size: {sys.getsizeof(serialized)} bytes as a string")


if __name__ == "__main__":
    demonstrate_basic_percentiles()
    demonstrate_compression()
    demonstrate_weighted_and_folding()
    demonstrate_serialization()
