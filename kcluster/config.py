from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

# Default bounds of the coordinate domain, applied to every dimension.
DEFAULT_LOW = -5.0
DEFAULT_HIGH = 5.0
DEFAULT_DIMENSIONS = 2
DEFAULT_THREADS = 4


class ConfigurationError(ValueError):
    """Invalid run configuration, rejected before any clustering work."""


@dataclass(frozen=True)
class Domain:
    """Closed coordinate range ``[low, high]`` used for random generation."""

    low: float = DEFAULT_LOW
    high: float = DEFAULT_HIGH

    @classmethod
    def bounding(cls, points: np.ndarray) -> "Domain":
        """Smallest domain covering every coordinate of ``points`` (widened if degenerate)."""
        if points.size == 0:
            return cls()
        low = float(np.min(points))
        high = float(np.max(points))
        if np.isclose(low, high):
            low, high = low - 0.5, high + 0.5
        return cls(low=low, high=high)

    def validate(self) -> None:
        if not self.low < self.high:
            raise ConfigurationError(f"坐标范围无效：low={self.low} 必须小于 high={self.high}")


@dataclass(frozen=True)
class ClusterConfig:
    """Run configuration for a k-means clustering.

    - point_count / cluster_count / thread_count: positive integers
    - dimensions: dimensionality D shared by every point and centroid
    - domain: coordinate range for random points and centroids
    - seed: seed for ``numpy.random.default_rng`` (None = fresh entropy)
    - max_rounds: optional safety cap on assignment rounds (None = run to convergence)
    """

    point_count: int
    cluster_count: int
    thread_count: int = DEFAULT_THREADS
    dimensions: int = DEFAULT_DIMENSIONS
    domain: Domain = field(default_factory=Domain)
    seed: Optional[int] = None
    max_rounds: Optional[int] = None

    def validate(self) -> "ClusterConfig":
        _require_positive(self.cluster_count, "聚类数")
        _require_positive(self.point_count, "点数")
        _require_positive(self.thread_count, "线程数")
        _require_positive(self.dimensions, "维度")
        if self.max_rounds is not None:
            _require_positive(self.max_rounds, "最大轮数")
        self.domain.validate()
        return self


def _require_positive(value: object, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{label}必须为整数：{value!r}")
    if value < 1:
        raise ConfigurationError(f"{label}必须为正整数：{value}")
