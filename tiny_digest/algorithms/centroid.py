# tiny_digest/algorithms/centroid.py

"""
Centroid store and insertion engine for the T-Digest.

A digest is an ordered list of centroids, each a (mean, weight) pair
standing for one or more merged observations. Inserting an observation
either merges it into the nearest bracketing centroid or spills the part
that would exceed the size limit into a new centroid next to it.

The size limit depends on the centroid's normalized rank q:

    max(1, floor(4 * count * delta * q * (1 - q)))

so clusters stay small near the tails and may grow near the median.

All functions here return new lists; the input store is never modified.
"""

import math
from typing import Dict, List, NamedTuple, Sequence, Union

Number = Union[int, float]


class Centroid(NamedTuple):
    """A (mean, weight) cluster. Sorts and compares like a plain tuple."""

    mean: float
    weight: Number

    def __repr__(self) -> str:
        return f"Centroid(mean={self.mean:.4g}, weight={self.weight:.4g})"

    def to_dict(self) -> Dict[str, Number]:
        """Serialize the centroid to a dictionary."""
        return {"mean": self.mean, "weight": self.weight}

    @classmethod
    def from_dict(cls, data: Dict[str, Number]) -> "Centroid":
        """Deserialize a centroid from a dictionary."""
        if "mean" not in data or "weight" not in data:
            raise ValueError("Centroid dictionary missing 'mean' or 'weight'")
        if data["weight"] <= 0:
            raise ValueError(
                f"Invalid serialized data: Centroid weight must be positive ({data['weight']})"
            )
        if not math.isfinite(data["mean"]):
            raise ValueError(
                f"Invalid serialized data: Centroid mean must be finite ({data['mean']})"
            )
        return cls(mean=data["mean"], weight=data["weight"])


def size_limit(count: Number, delta: float, q: float) -> int:
    """
    Largest weight a centroid at normalized rank q may reach.

    Args:
        count: Total weight of the digest.
        delta: Compression parameter.
        q: Normalized rank of the centroid's midpoint.

    Returns:
        The limit, never less than 1.
    """
    return max(1, math.floor(4 * count * delta * q * (1 - q)))


def cluster_add(
    centroid: Centroid, value: Number, weight: Number, limit: Number
) -> List[Centroid]:
    """
    Add a weighted observation to a centroid without exceeding limit.

    Args:
        centroid: The centroid chosen to absorb the observation.
        value: The observed value.
        weight: The observation's weight.
        limit: Maximum weight the merged centroid may carry.

    Returns:
        One centroid when the observation fits, otherwise two centroids
        sorted by mean: the spilled remainder at value and the grown
        original.
    """
    mean, old_weight = centroid
    if value == mean:
        return [Centroid(mean, old_weight + weight)]

    if old_weight + weight <= limit:
        new_mean = (mean * old_weight + value * weight) / (old_weight + weight)
        return [Centroid(new_mean, old_weight + weight)]

    # Fill the centroid up to the limit; the rest stays behind at value.
    used = max(0, limit - old_weight)
    rem = weight - used
    new_mean = (mean * old_weight + value * used) / (old_weight + used)
    return sorted([Centroid(value, rem), Centroid(new_mean, old_weight + used)])


def insert_value(
    clusters: Sequence[Centroid],
    count: Number,
    value: Number,
    weight: Number,
    delta: float,
) -> List[Centroid]:
    """
    Insert one weighted observation into an ordered centroid list.

    The list is scanned left to right with a running prefix weight. The
    first adjacent pair (c1, c2) with c1.mean <= value <= c2.mean receives
    the observation: c1 when value is strictly closer to it, c2 otherwise
    (equal distances go right).

    Args:
        clusters: Centroids sorted ascending by mean.
        count: Total weight of the digest before this insertion.
        value: The observed value.
        weight: The observation's weight. Zero is a no-op.
        delta: Compression parameter.

    Returns:
        A new sorted list of centroids.
    """
    clusters = list(clusters)
    if weight == 0:
        return clusters

    if not clusters:
        return [Centroid(value, weight)]

    if value < clusters[0].mean:
        return [Centroid(value, weight)] + clusters

    prefix_weight = 0
    for i in range(len(clusters) - 1):
        c1, c2 = clusters[i], clusters[i + 1]
        if c1.mean <= value <= c2.mean:
            if value - c1.mean < c2.mean - value:
                q = (prefix_weight + c1.weight / 2) / count
                limit = size_limit(count, delta, q)
                clusters[i : i + 1] = cluster_add(c1, value, weight, limit)
                return clusters
            q = (prefix_weight + c1.weight + c2.weight / 2) / count
            limit = size_limit(count, delta, q)
            clusters[i + 1 : i + 2] = cluster_add(c2, value, weight, limit)
            return clusters
        prefix_weight += c1.weight

    last = clusters[-1]
    if value == last.mean:
        clusters[-1] = Centroid(last.mean, last.weight + weight)
        return clusters

    clusters.append(Centroid(value, weight))
    return clusters


def is_ordered(clusters: Sequence[Centroid]) -> bool:
    """Check that centroids are sorted ascending by mean."""
    return all(
        clusters[i].mean <= clusters[i + 1].mean for i in range(len(clusters) - 1)
    )
