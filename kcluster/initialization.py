from __future__ import annotations

from typing import Optional, Union

import numpy as np

from kcluster.config import Domain

SeedLike = Union[None, int, np.random.Generator]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def _uniform(count: int, dimensions: int, domain: Domain, rng: np.random.Generator) -> np.ndarray:
    return rng.uniform(domain.low, domain.high, size=(count, dimensions)).astype(float)


def random_points(
    count: int,
    dimensions: int,
    domain: Domain,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Draw ``count`` points with independent uniform coordinates in ``domain``."""
    return _uniform(count, dimensions, domain, make_rng(rng))


def random_centroids(
    count: int,
    dimensions: int,
    domain: Domain,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Draw ``count`` starting centroids, independent of any point positions."""
    return _uniform(count, dimensions, domain, make_rng(rng))
