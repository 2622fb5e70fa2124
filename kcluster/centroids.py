from __future__ import annotations

import numpy as np

from kcluster.geometry import DimensionMismatchError, check_dimensions


def cluster_sizes(labels: np.ndarray, cluster_count: int) -> np.ndarray:
    """Number of points carrying each label; unassigned (-1) labels are ignored."""
    valid = labels[labels >= 0]
    return np.bincount(valid, minlength=cluster_count)[:cluster_count]


def update_centroids(points: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Recompute every centroid as the per-dimension mean of its members.

    A cluster with no members keeps its previous centroid.
    """
    check_dimensions(points, centroids)
    if labels.shape[0] != points.shape[0]:
        raise DimensionMismatchError(f"标签数 {labels.shape[0]} 与点数 {points.shape[0]} 不一致")

    cluster_count = centroids.shape[0]
    mask = labels >= 0
    sums = np.zeros_like(centroids, dtype=float)
    np.add.at(sums, labels[mask], points[mask])
    counts = cluster_sizes(labels, cluster_count)

    new_centroids = np.array(centroids, dtype=float, copy=True)
    occupied = counts > 0
    new_centroids[occupied] = sums[occupied] / counts[occupied][:, None]
    return new_centroids


def inertia(points: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> float:
    """Sum of squared distances from each assigned point to its centroid (SSE)."""
    check_dimensions(points, centroids)
    mask = labels >= 0
    diff = points[mask] - centroids[labels[mask]]
    return float(np.sum(diff * diff))
