"""
Algorithm implementations for tiny-digest.
"""

from tiny_digest.algorithms.centroid import (
    Centroid,
    cluster_add,
    insert_value,
    size_limit,
)
from tiny_digest.algorithms.tdigest import TDigest

__all__ = [
    "Centroid",
    "TDigest",
    "cluster_add",
    "insert_value",
    "size_limit",
]
