# tiny_digest/algorithms/tdigest.py

import logging
import math
import numbers
import random
import sys
from collections.abc import Iterable
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type, TypeVar, Union

from tiny_digest.algorithms.centroid import Centroid, Number, insert_value, is_ordered
from tiny_digest.core.base import QuantileEstimator

logger = logging.getLogger(__name__)

# Type variable for the class itself (for from_dict)
TDigestType = TypeVar("TDigestType", bound="TDigest")


def _is_number(item: Any) -> bool:
    return isinstance(item, numbers.Real) and not isinstance(item, bool)


def _as_number(item: Any) -> Number:
    # Fractions and numpy scalars are stored as plain floats.
    return item if type(item) in (int, float) else float(item)


class TDigest(QuantileEstimator):
    """
    T-Digest for streaming percentile and quantile estimation.

    The digest keeps an ordered list of (mean, weight) centroids. Each new
    observation is merged into its nearest bracketing centroid, subject to a
    size limit that shrinks toward the tails, so extreme percentiles are
    estimated more precisely than the median.

    Digests are values: update() and compress() return new digests and the
    receiver is never modified, so a digest can be shared freely. Folding
    one digest into another re-inserts its centroids as weighted
    observations; it is not a structural merge.

    Insertion is a linear scan, O(n) in the number of centroids. Inserting
    data in sorted order defeats merging (every value lands past the last
    centroid), which is what compress() is for.
    """

    DEFAULT_DELTA: float = 0.1

    def __init__(
        self,
        delta: float = DEFAULT_DELTA,
        memory_limit_bytes: Optional[int] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize an empty T-Digest.

        Args:
            delta: Compression parameter in (0, 1]. Smaller values keep more
                centroids and give more accurate estimates. Default: 0.1.
            memory_limit_bytes: Optional maximum memory usage in bytes.
            seed: Optional random seed for compress(), for reproducibility.

        Raises:
            ValueError: If delta is not in (0, 1].
        """
        super().__init__(memory_limit_bytes)
        if not _is_number(delta) or not (0.0 < delta <= 1.0):
            raise ValueError("Delta must be a number in (0, 1]")

        self.delta: float = delta
        self.seed: Optional[int] = seed
        self._clusters: List[Centroid] = []
        self._count: Number = 0

    def _copy(self: TDigestType) -> TDigestType:
        clone = self.__class__(
            delta=self.delta,
            memory_limit_bytes=self._memory_limit_bytes,
            seed=self.seed,
        )
        clone._clusters = list(self._clusters)
        clone._count = self._count
        clone._items_processed = self._items_processed
        return clone

    #
    # Update dispatcher
    #
    def update(self: TDigestType, data: Any, weight: Number = 1) -> TDigestType:
        """
        Return a new digest with data folded in.

        Accepted shapes:
            - a number, added with the given weight;
            - a (value, weight) tuple;
            - a range, each integer added with the given weight;
            - another TDigest, whose centroids are re-inserted one by one;
            - any other iterable mixing the above.

        Non-finite values are skipped.

        Args:
            data: The observation(s) to add.
            weight: Weight for bare numbers. Must be non-negative.

        Returns:
            A new TDigest. This digest is left unchanged.

        Raises:
            TypeError: If data has an unsupported shape.
            ValueError: If a weight is negative.
        """
        result = self._copy()
        added = 0
        for item in self._observations(data, weight):
            if isinstance(item, TDigest):
                # A folded digest contributes the observations it had seen.
                for mean, w in item._clusters:
                    result._insert(mean, w)
                added += item.items_processed
            elif result._insert(*item):
                added += 1

        result._items_processed += added
        return result

    def _observations(
        self, data: Any, weight: Number
    ) -> Iterator[Union[Tuple[Number, Number], "TDigest"]]:
        """Normalize one input into (value, weight) pairs and whole digests."""
        if _is_number(data):
            yield _as_number(data), weight
        elif (
            isinstance(data, tuple)
            and len(data) == 2
            and _is_number(data[0])
            and _is_number(data[1])
        ):
            yield _as_number(data[0]), _as_number(data[1])
        elif isinstance(data, TDigest):
            yield data
        elif isinstance(data, range):
            for value in data:
                yield value, weight
        elif isinstance(data, Iterable) and not isinstance(data, (str, bytes)):
            for item in data:
                yield from self._observations(item, weight)
        else:
            raise TypeError(f"Cannot add {type(data).__name__} to a TDigest")

    def _insert(self, value: Number, weight: Number) -> bool:
        """
        Fold one observation into this (private, unshared) digest.

        Returns False when the observation was skipped.
        """
        if not _is_number(weight) or not math.isfinite(weight) or weight < 0:
            raise ValueError(
                f"Weight must be a non-negative finite number, got {weight!r}"
            )
        weight = _as_number(weight)
        if not math.isfinite(value):
            logger.debug("Skipping non-finite value %r", value)
            return False
        if weight == 0:
            return False

        self._clusters = insert_value(
            self._clusters, self._count, value, weight, self.delta
        )
        self._count += weight
        return True

    def merge(self: TDigestType, other: TDigestType) -> TDigestType:
        """
        Fold another T-Digest into a copy of this one.

        Args:
            other: Another TDigest with the same delta.

        Returns:
            A new TDigest covering the data of both inputs.

        Raises:
            TypeError: If 'other' is not a TDigest.
            ValueError: If the delta parameters don't match.
        """
        self._check_same_type(other)

        if self.delta != other.delta:
            raise ValueError(
                f"Cannot merge TDigest sketches with different deltas: "
                f"{self.delta} != {other.delta}"
            )

        return self.update(other)

    #
    # Query engine
    #
    def percentile(self, p: float) -> Optional[float]:
        """
        Estimate the value at rank p.

        Between centroid midpoints the estimate is linearly interpolated.

        Args:
            p: Rank between 0.0 and 1.0. 0.0 gives the first centroid's mean
               and 1.0 the last's.

        Returns:
            The estimated value, or None if the digest is empty.

        Raises:
            ValueError: If p is not between 0.0 and 1.0.
        """
        if not (0.0 <= p <= 1.0):
            raise ValueError(f"Percentile {p} not in [0, 1]")

        clusters = self._clusters
        if not clusters or self._count == 0:
            return None
        if p == 0:
            return clusters[0].mean
        if p == 1:
            return clusters[-1].mean

        count = self._count
        acc: Number = 0
        for i in range(len(clusters) - 1):
            (v1, w1), (v2, w2) = clusters[i], clusters[i + 1]
            q1 = (acc + w1 / 2) / count
            q2 = (acc + w1 + w2 / 2) / count
            if p < q1:
                return v1
            if q1 < p < q2:
                return (v2 - v1) / (q2 - q1) * (p - q1) + v1
            acc += w1

        return clusters[-1].mean

    def quantile(self, value: float) -> float:
        """
        Estimate the fraction of total weight at or below value.

        Args:
            value: The value to locate.

        Returns:
            A probability in [0.0, 1.0]; 0.0 for an empty digest.
        """
        clusters = self._clusters
        count = self._count
        if count == 0:
            return 0.0
        if value < clusters[0].mean:
            return 0.0

        acc: Number = 0
        for i in range(len(clusters) - 1):
            (v1, w1), (v2, w2) = clusters[i], clusters[i + 1]
            if v1 <= value <= v2:
                q1 = (acc + w1 / 2) / count
                q2 = (acc + w1 + w2 / 2) / count
                if v1 == v2:
                    return (q1 + q2) / 2
                return (q2 - q1) / (v2 - v1) * (value - v1) + q1
            acc += w1

        return (acc + clusters[-1].weight) / count

    #
    # Compactor
    #
    def compress(self: TDigestType, seed: Optional[int] = None) -> TDigestType:
        """
        Rebuild the digest by re-inserting its centroids in random order.

        Sorted insertion order leaves one centroid per observation; feeding
        the centroids back shuffled lets the size limit do its work and
        usually shrinks the digest substantially. The total weight is
        rounded to the nearest integer to drop floating-point drift.

        Args:
            seed: Optional seed for the shuffle. Defaults to the digest's
                  own seed; with neither, the shuffle is unseeded.

        Returns:
            A new TDigest with the same delta and at most as many centroids.
        """
        rng = random.Random(seed if seed is not None else self.seed)
        shuffled = list(self._clusters)
        rng.shuffle(shuffled)

        result = self.__class__(
            delta=self.delta,
            memory_limit_bytes=self._memory_limit_bytes,
            seed=self.seed,
        )
        for mean, weight in shuffled:
            result._insert(mean, weight)
        result._count = round(result._count)
        result._items_processed = self._items_processed

        logger.debug(
            "Compressed TDigest from %d to %d centroids",
            len(self._clusters),
            len(result._clusters),
        )
        return result

    #
    # Serialization
    #
    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the T-Digest to a dictionary.

        Returns:
            Dictionary containing the sketch configuration and centroids.
        """
        state = self._base_dict()
        state.update(
            {
                "delta": self.delta,
                "count": self._count,
                "seed": self.seed,
                "centroids": [c.to_dict() for c in self._clusters],
            }
        )
        return state

    @classmethod
    def from_dict(cls: Type[TDigestType], data: Dict[str, Any]) -> TDigestType:
        """
        Deserialize a T-Digest from a dictionary representation.

        Args:
            data: Dictionary created by to_dict().

        Returns:
            A reconstructed TDigest instance.

        Raises:
            ValueError: If the dictionary is missing required keys or has invalid data.
        """
        if "type" not in data:
            raise ValueError("Invalid dictionary format for TDigest. Missing 'type'")

        if data.get("type") != cls.__name__:
            raise ValueError(
                f"Dictionary represents class '{data.get('type')}' but expected '{cls.__name__}'"
            )

        required_keys = {"delta", "count", "centroids", "items_processed"}
        missing_keys = required_keys - data.keys()
        if missing_keys:
            raise ValueError(
                f"Invalid dictionary format for TDigest. Missing keys: {missing_keys}"
            )

        instance = cls(
            delta=data["delta"],
            memory_limit_bytes=data.get("memory_limit_bytes"),
            seed=data.get("seed"),
        )
        instance._items_processed = data["items_processed"]
        instance._count = data["count"]

        try:
            centroids = [Centroid.from_dict(c_data) for c_data in data["centroids"]]
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError(f"Error deserializing centroids: {e}") from e

        # compress() rounds the count, so it may differ from the weights by 0.5.
        total = sum(c.weight for c in centroids)
        if not _is_number(data["count"]) or abs(data["count"] - total) > 0.5:
            raise ValueError(
                f"Invalid serialized data: count {data['count']!r} does not match "
                f"centroid weights ({total})"
            )

        if not is_ordered(centroids):
            centroids.sort()
        instance._clusters = centroids

        return instance

    #
    # Inspection
    #
    @property
    def count(self) -> Number:
        """Total weight of all observations in the digest."""
        return self._count

    @property
    def clusters(self) -> List[Centroid]:
        """The centroids, sorted ascending by mean."""
        return list(self._clusters)

    @property
    def is_empty(self) -> bool:
        """Check if the digest contains any data."""
        return not self._clusters

    def get_centroids(self) -> List[Tuple[float, Number]]:
        """
        Return the current centroids as (mean, weight) tuples.

        Returns:
            List of plain tuples, sorted by mean.
        """
        return [(c.mean, c.weight) for c in self._clusters]

    def __len__(self) -> int:
        """Return the number of observations folded into the digest."""
        return self.items_processed

    def __repr__(self) -> str:
        parts = [
            f"count={self._count}",
            f"clusters={len(self._clusters)}",
            f"delta={self.delta}",
        ]
        parts.extend(f"{k}={v}" for k, v in self.percentile_snapshot().items())
        return f"TDigest<{', '.join(parts)}>"

    def estimate_size(self) -> int:
        """
        Estimate the memory footprint of the T-Digest in bytes.

        Returns:
            Estimated size in bytes.
        """
        size = super().estimate_size()

        size += sys.getsizeof(self.delta)
        size += sys.getsizeof(self._count)

        size += sys.getsizeof(self._clusters)
        if self._clusters:
            size += sum(sys.getsizeof(c) for c in self._clusters)
            size += sum(
                sys.getsizeof(c.mean) + sys.getsizeof(c.weight) for c in self._clusters
            )

        return size

    #
    # Benchmarking hooks
    #
    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the T-Digest.

        Returns:
            A dictionary with structure, weight and percentile figures.
        """
        stats = super().get_stats()

        stats.update(
            {
                "delta": self.delta,
                "count": self._count,
                "num_centroids": len(self._clusters),
            }
        )

        if self._clusters:
            weights = [c.weight for c in self._clusters]
            stats.update(
                {
                    "min_weight": min(weights),
                    "max_weight": max(weights),
                    "avg_weight": sum(weights) / len(weights),
                    "compression_ratio": self._count / len(self._clusters),
                    "min_value": self._clusters[0].mean,
                    "max_value": self._clusters[-1].mean,
                }
            )

        if self.items_processed > 0:
            stats["bytes_per_item"] = self.estimate_size() / self.items_processed

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Describe the accuracy characteristics of this digest.

        A centroid at rank q holds at most 4 * delta * q * (1 - q) of the
        total weight, which bounds how far an interpolated rank can be off.

        Returns:
            A dictionary with the bound at several ranks.
        """
        bounds: Dict[str, Any] = {}

        if self.is_empty:
            bounds["state"] = "empty"
            return bounds

        bounds["accuracy_model"] = "non-uniform (higher at tails)"
        bounds["error_bounds"] = {
            f"q{q:.3f}": 4 * self.delta * q * (1 - q)
            for q in [0.001, 0.01, 0.05, 0.25, 0.5, 0.75, 0.95, 0.99, 0.999]
        }
        bounds["actual_centroids"] = len(self._clusters)

        return bounds

    def analyze_quantile_accuracy(
        self, reference_data: Optional[List[float]] = None
    ) -> Dict[str, Any]:
        """
        Compare percentile estimates against exact values from reference data.

        Args:
            reference_data: Optional list of values. When given, estimates are
                compared with the exact percentiles of the data. Otherwise the
                theoretical bounds from error_bounds() are reported.

        Returns:
            A dictionary containing accuracy analysis information.
        """
        analysis: Dict[str, Any] = {
            "algorithm": "T-Digest",
            "delta": self.delta,
            "num_centroids": len(self._clusters),
            "items_processed": self.items_processed,
        }

        ranks = [0.01, 0.05, 0.1, 0.25, 0.5, 0.75, 0.9, 0.95, 0.99]

        if reference_data is None:
            analysis["theoretical_bounds"] = {
                f"q{q:.3f}": 4 * self.delta * q * (1 - q) for q in ranks
            }
            return analysis

        if not reference_data:
            return {"error": "Reference data is empty"}

        sorted_data = sorted(reference_data)
        n = len(sorted_data)

        exact = {}
        estimates = {}
        abs_errors = {}
        for q in ranks:
            key = f"q{q:.3f}"
            exact[key] = sorted_data[min(int(q * n), n - 1)]
            estimates[key] = self.percentile(q)
            if estimates[key] is not None:
                abs_errors[key] = abs(estimates[key] - exact[key])

        analysis.update(
            {
                "reference_data_size": n,
                "exact_percentiles": exact,
                "tdigest_estimates": estimates,
                "absolute_errors": abs_errors,
            }
        )
        if abs_errors:
            analysis["max_absolute_error"] = max(abs_errors.values())

        return analysis

    @classmethod
    def from_accuracy_target(
        cls, accuracy_target: float, tail_focus: bool = True
    ) -> "TDigest":
        """
        Create a T-Digest whose cluster size bound matches an accuracy target.

        Args:
            accuracy_target: Largest acceptable fraction of total weight in
                one centroid, between 0 and 1.
            tail_focus: If True, size for q=0.01; otherwise for the median.

        Returns:
            A new, empty TDigest.

        Raises:
            ValueError: If accuracy_target is not between 0 and 1.
        """
        if not (0.0 < accuracy_target < 1.0):
            raise ValueError("Accuracy target must be between 0 and 1")

        q = 0.01 if tail_focus else 0.5
        delta = accuracy_target / (4 * q * (1 - q))

        return cls(delta=min(1.0, delta))
