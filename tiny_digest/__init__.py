"""
tiny-digest - Streaming Percentile Sketches

tiny-digest is a Python library for estimating percentiles and ranks over
data streams with bounded memory, using the t-digest.
"""

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_digest.algorithms.centroid import Centroid
from tiny_digest.algorithms.tdigest import TDigest
from tiny_digest.core.base import QuantileEstimator, StreamSummary

__all__ = [
    # Core base classes
    "StreamSummary",
    "QuantileEstimator",
    # Algorithm implementations
    "Centroid",
    "TDigest",
]
