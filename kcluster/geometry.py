from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

UNASSIGNED = -1


class DimensionMismatchError(RuntimeError):
    """Points and centroids disagree on dimensionality (internal bug, not bad input)."""


class Point:
    """A point with fixed coordinates and the cluster it currently belongs to.

    ``coords`` is read-only; ``cluster`` is ``None`` until the first
    assignment round.
    """

    __slots__ = ("_coords", "cluster")

    def __init__(self, coords: Sequence[float], cluster: Optional[int] = None) -> None:
        self._coords: tuple[float, ...] = tuple(float(v) for v in coords)
        self.cluster = cluster

    @property
    def coords(self) -> tuple[float, ...]:
        return self._coords

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self._coords == other._coords and self.cluster == other.cluster

    def __repr__(self) -> str:
        return f"Point(coords={self._coords!r}, cluster={self.cluster!r})"

    @property
    def dimensions(self) -> int:
        return len(self.coords)


@dataclass
class Cluster:
    """A cluster identified by its index; membership is derived from point labels."""

    index: int
    centroid: tuple[float, ...]

    @property
    def dimensions(self) -> int:
        return len(self.centroid)


def squared_distance(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise DimensionMismatchError(f"维度不一致：{len(a)} != {len(b)}")
    return float(sum((float(x) - float(y)) ** 2 for x, y in zip(a, b)))


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    return float(np.sqrt(squared_distance(a, b)))


def check_dimensions(points: np.ndarray, centroids: np.ndarray) -> int:
    """Return D after checking both matrices are 2-D with the same column count."""
    if points.ndim != 2 or centroids.ndim != 2:
        raise DimensionMismatchError(
            f"点矩阵与中心矩阵必须为二维：points.ndim={points.ndim}, centroids.ndim={centroids.ndim}"
        )
    if points.shape[1] != centroids.shape[1]:
        raise DimensionMismatchError(
            f"点维度 {points.shape[1]} 与聚类中心维度 {centroids.shape[1]} 不一致"
        )
    return int(points.shape[1])
