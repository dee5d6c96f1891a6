"""
Core functionality for tiny-digest.
"""

from tiny_digest.core.base import QuantileEstimator, StreamSummary

__all__ = [
    "StreamSummary",
    "QuantileEstimator",
]
