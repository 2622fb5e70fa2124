from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from kcluster.config import DEFAULT_DIMENSIONS, DEFAULT_THREADS, ClusterConfig, ConfigurationError, Domain
from kcluster.coordinator import Coordinator, RoundStats
from kcluster.geometry import Cluster, Point, check_dimensions
from kcluster.initialization import SeedLike, make_rng, random_centroids, random_points


@dataclass(frozen=True)
class ClusteringResult:
    """Final collections of a clustering run.

    - centroids: (C, D) final centroid matrix
    - assignments: cluster index of every point
    - coordinates: (P, D) point matrix
    - rounds: number of assignment rounds executed
    - converged: False only when a round cap stopped the loop
    - history: per-round statistics
    """

    centroids: np.ndarray
    assignments: np.ndarray
    coordinates: np.ndarray
    rounds: int
    converged: bool
    history: list[RoundStats]

    @property
    def clusters(self) -> list[Cluster]:
        return [Cluster(index=i, centroid=tuple(float(v) for v in row)) for i, row in enumerate(self.centroids)]

    @property
    def points(self) -> list[Point]:
        return [
            Point(coords=tuple(float(v) for v in row), cluster=int(label))
            for row, label in zip(self.coordinates, self.assignments)
        ]

    def members(self, cluster_index: int) -> np.ndarray:
        """Indices of the points assigned to ``cluster_index``."""
        return np.flatnonzero(self.assignments == cluster_index)


def _run(
    config: ClusterConfig,
    points: np.ndarray,
    centroids: np.ndarray,
    *,
    verbose: bool,
    progress: bool,
) -> ClusteringResult:
    coordinator = Coordinator(
        points,
        centroids,
        config.thread_count,
        max_rounds=config.max_rounds,
        verbose=verbose,
        progress=progress,
    )
    coordinator.run()
    return ClusteringResult(
        centroids=coordinator.centroids,
        assignments=coordinator.labels,
        coordinates=coordinator.points,
        rounds=coordinator.rounds,
        converged=coordinator.converged,
        history=list(coordinator.history),
    )


def cluster(
    point_count: int,
    cluster_count: int,
    thread_count: int = DEFAULT_THREADS,
    *,
    dimensions: int = DEFAULT_DIMENSIONS,
    domain: Optional[Domain] = None,
    seed: SeedLike = None,
    max_rounds: Optional[int] = None,
    verbose: bool = False,
    progress: bool = False,
) -> ClusteringResult:
    """Cluster ``point_count`` random points into ``cluster_count`` clusters.

    Points and starting centroids are drawn independently and uniformly from
    ``domain``. Invalid counts raise ``ConfigurationError`` before anything
    is generated.
    """
    config = ClusterConfig(
        point_count=point_count,
        cluster_count=cluster_count,
        thread_count=thread_count,
        dimensions=dimensions,
        domain=domain or Domain(),
        seed=seed if not isinstance(seed, np.random.Generator) else None,
        max_rounds=max_rounds,
    ).validate()

    rng = make_rng(seed)
    points = random_points(config.point_count, config.dimensions, config.domain, rng)
    centroids = random_centroids(config.cluster_count, config.dimensions, config.domain, rng)
    return _run(config, points, centroids, verbose=verbose, progress=progress)


def cluster_points(
    points: np.ndarray,
    cluster_count: int,
    thread_count: int = DEFAULT_THREADS,
    *,
    initial_centroids: Optional[np.ndarray] = None,
    domain: Optional[Domain] = None,
    seed: SeedLike = None,
    max_rounds: Optional[int] = None,
    verbose: bool = False,
    progress: bool = False,
) -> ClusteringResult:
    """Cluster caller-supplied points.

    Without ``initial_centroids`` the starting centroids are drawn from
    ``domain``, which defaults to the bounding range of ``points``.
    """
    data = np.asarray(points, dtype=float)
    if data.ndim != 2:
        raise ConfigurationError(f"点数据必须为二维数组 (点数, 维度)，实际维数：{data.ndim}")

    config = ClusterConfig(
        point_count=int(data.shape[0]),
        cluster_count=cluster_count,
        thread_count=thread_count,
        dimensions=int(data.shape[1]),
        domain=domain or Domain.bounding(data),
        seed=seed if not isinstance(seed, np.random.Generator) else None,
        max_rounds=max_rounds,
    ).validate()

    if initial_centroids is None:
        centroids = random_centroids(config.cluster_count, config.dimensions, config.domain, make_rng(seed))
    else:
        centroids = np.asarray(initial_centroids, dtype=float)
        check_dimensions(data, centroids)
        if centroids.shape[0] != config.cluster_count:
            raise ConfigurationError(
                f"初始聚类中心数量 {centroids.shape[0]} 与聚类数 {config.cluster_count} 不一致"
            )
    return _run(config, data, centroids, verbose=verbose, progress=progress)
