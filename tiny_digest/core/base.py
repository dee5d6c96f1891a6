"""
Base classes and interfaces for tiny-digest sketches.

This module defines the abstract base classes that sketches implement to
provide a consistent interface. Summaries here have value semantics: every
operation that adds data returns a new summary and leaves the receiver
untouched. It also provides the benchmarking hooks shared by all sketches.
"""

import abc
import json
import sys
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries

S = TypeVar("S", bound="StreamSummary")


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for value-semantic streaming summaries.

    Defines the common interface: folding new items in (which yields a new
    summary), querying, merging with another summary, and serialization.
    """

    def __init__(self, memory_limit_bytes: Optional[int] = None):
        """
        Initialize a new stream summary.

        Args:
            memory_limit_bytes: Optional maximum memory usage in bytes.
                                None means no explicit limit.
        """
        self._memory_limit_bytes = memory_limit_bytes
        self._items_processed = 0

    @abc.abstractmethod
    def update(self: S, item: T) -> S:
        """
        Return a new summary with the item folded in.

        Args:
            item: The new item to process.

        Returns:
            A new summary; the receiver is left unchanged.
        """
        pass

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        The parameters and return value depend on the specific algorithm.
        """
        pass

    @abc.abstractmethod
    def merge(self: S, other: S) -> S:
        """
        Merge this summary with another of the same type.

        Args:
            other: Another stream summary of the same type.

        Returns:
            A new merged stream summary.

        Raises:
            TypeError: If other is not of the same type.
        """
        pass

    def _check_same_type(self, other: Any) -> None:
        """
        Raise TypeError unless other is a summary of this class.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(f"Cannot merge with {other.__class__.__name__}")

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the summary to a dictionary for serialization.

        Returns:
            A dictionary representation of the summary.
        """
        pass

    def _base_dict(self) -> Dict[str, Any]:
        """
        Create a dictionary with base attributes common to all summaries.

        Returns:
            A dictionary with base attributes.
        """
        return {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_limit_bytes": self._memory_limit_bytes,
        }

    @classmethod
    @abc.abstractmethod
    def from_dict(cls: Type[S], data: Dict[str, Any]) -> S:
        """
        Create a summary from a dictionary representation.

        Args:
            data: The dictionary containing the summary state.

        Returns:
            A new stream summary initialized with the given state.
        """
        pass

    def serialize(self, format: str = "json") -> Union[str, bytes]:
        """
        Serialize the summary to a string or bytes.

        Args:
            format: The serialization format ('json' or 'binary').

        Returns:
            The serialized representation of the summary.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            return json.dumps(self.to_dict())
        elif format == "binary":
            return json.dumps(self.to_dict()).encode("utf-8")
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    @classmethod
    def deserialize(
        cls: Type[S], data: Union[str, bytes], format: str = "json"
    ) -> S:
        """
        Deserialize a summary from a string or bytes.

        Args:
            data: The serialized summary.
            format: The serialization format ('json' or 'binary').

        Returns:
            A new stream summary.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            return cls.from_dict(json.loads(data))
        elif format == "binary":
            if isinstance(data, str):
                data = data.encode("utf-8")
            return cls.from_dict(json.loads(data.decode("utf-8")))
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        This is a rough figure: the object, its instance dictionary, and
        whatever derived classes add for their own structures. Python's
        allocator overhead is not captured.

        Returns:
            Estimated memory usage in bytes.
        """
        size = sys.getsizeof(self)
        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)
        return size

    def check_memory_limit(self) -> bool:
        """
        Check if the current memory usage is within the configured limit.

        Returns:
            True if the memory usage is within limits, False otherwise.
        """
        if self._memory_limit_bytes is None:
            return True

        return self.estimate_size() <= self._memory_limit_bytes

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the summary.

        Derived classes extend this with algorithm-specific figures while
        calling super().get_stats() to include the base metrics.

        Returns:
            A dictionary containing various statistics about the summary state.
        """
        stats: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }

        if self._memory_limit_bytes is not None:
            stats["memory_limit_bytes"] = self._memory_limit_bytes
            stats["memory_usage_pct"] = (
                self.estimate_size() / self._memory_limit_bytes
            ) * 100

        error_bounds = self.error_bounds()
        if error_bounds:
            stats.update(error_bounds)

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Get the theoretical error bounds for this summary.

        The base implementation returns an empty dictionary.
        """
        return {}

    @property
    def items_processed(self) -> int:
        """Get the total number of items processed by this summary."""
        return self._items_processed


class QuantileEstimator(StreamSummary[float, Optional[float]], abc.ABC):
    """
    Abstract base class for rank-statistics sketches.

    Exposes the two inverse queries: percentile (rank to value) and
    quantile (value to rank).
    """

    SNAPSHOT_PERCENTILES: List[float] = [0.01, 0.05, 0.25, 0.5, 0.75, 0.95, 0.99]

    @abc.abstractmethod
    def percentile(self, p: float) -> Optional[float]:
        """
        Estimate the value at rank p.

        Args:
            p: Rank between 0.0 and 1.0.

        Returns:
            The estimated value, or None if the sketch holds no data.

        Raises:
            ValueError: If p is not between 0.0 and 1.0.
        """
        pass

    @abc.abstractmethod
    def quantile(self, value: float) -> float:
        """
        Estimate the rank (fraction of total weight) of a value.

        Args:
            value: The value to locate.

        Returns:
            A probability between 0.0 and 1.0.
        """
        pass

    def query(self, p: float) -> Optional[float]:
        """Alias for percentile()."""
        return self.percentile(p)

    def percentile_snapshot(self) -> Dict[str, Optional[float]]:
        """
        Evaluate the fixed set of snapshot percentiles.

        Returns:
            A mapping like {"p1": ..., "p50": ..., "p99": ...}.
        """
        return {
            f"p{round(p * 100)}": self.percentile(p) for p in self.SNAPSHOT_PERCENTILES
        }

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the estimator.

        Returns:
            A dictionary including the percentile snapshot.
        """
        stats = super().get_stats()
        stats.update(self.percentile_snapshot())
        return stats
