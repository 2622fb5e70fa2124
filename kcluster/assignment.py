from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from kcluster.geometry import UNASSIGNED, check_dimensions
from kcluster.partition import chunk_bounds


def nearest_clusters(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid for every row of ``points``.

    Distances are accumulated one dimension at a time, so each point's value
    depends only on that point and never on how the rows were chunked.
    ``np.argmin`` returns the first minimum, which breaks ties toward the
    lower cluster index.
    """
    check_dimensions(points, centroids)
    n_points = points.shape[0]
    if n_points == 0:
        return np.empty(0, dtype=np.intp)

    sq_dist = np.zeros((n_points, centroids.shape[0]), dtype=float)
    for dim in range(points.shape[1]):
        diff = points[:, dim, None] - centroids[None, :, dim]
        sq_dist += diff * diff
    return np.argmin(sq_dist, axis=1).astype(np.intp)


@dataclass(frozen=True)
class AssignmentRequest:
    """One chunk of points plus the centroid snapshot for a round."""

    round_index: int
    start: int
    points: np.ndarray
    centroids: np.ndarray


@dataclass(frozen=True)
class AssignmentResult:
    """Labels for the chunk beginning at ``start``; ``error`` is set if the worker failed."""

    round_index: int
    start: int
    labels: Optional[np.ndarray]
    error: Optional[BaseException] = None


_STOP = None


class AssignmentWorker(threading.Thread):
    """Consumes requests from the dispatch queue and posts results back.

    The worker keeps nothing between requests and only reads the arrays it
    receives.
    """

    def __init__(self, name: str, requests: queue.Queue, results: queue.Queue) -> None:
        super().__init__(name=name, daemon=True)
        self._requests = requests
        self._results = results

    def run(self) -> None:
        while True:
            request = self._requests.get()
            if request is _STOP:
                break
            try:
                labels = nearest_clusters(request.points, request.centroids)
            except Exception as exc:  # noqa: BLE001 - re-raised by the pool on the caller thread
                self._results.put(AssignmentResult(request.round_index, request.start, None, error=exc))
            else:
                self._results.put(AssignmentResult(request.round_index, request.start, labels))


class WorkerPool:
    """A fixed set of assignment workers connected by a dispatch and a result queue.

    ``assign`` is round-synchronous: it returns only after a result has been
    received for every chunk it dispatched.
    """

    def __init__(self, thread_count: int) -> None:
        if thread_count < 1:
            raise ValueError(f"线程数必须为正整数：{thread_count}")
        self.thread_count = thread_count
        self._requests: queue.Queue = queue.Queue()
        self._results: queue.Queue = queue.Queue()
        self._workers: list[AssignmentWorker] = []

    def __enter__(self) -> "WorkerPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        if self._workers:
            return
        for i in range(self.thread_count):
            worker = AssignmentWorker(f"kcluster-worker-{i}", self._requests, self._results)
            worker.start()
            self._workers.append(worker)

    def close(self) -> None:
        for _ in self._workers:
            self._requests.put(_STOP)
        for worker in self._workers:
            worker.join()
        self._workers = []

    def assign(self, points: np.ndarray, centroids: np.ndarray, round_index: int = 0) -> np.ndarray:
        """Label every point with its nearest centroid, one chunk per worker."""
        self.start()
        check_dimensions(points, centroids)

        snapshot = np.array(centroids, dtype=float, copy=True)
        snapshot.setflags(write=False)

        bounds = chunk_bounds(points.shape[0], self.thread_count)
        for start, stop in bounds:
            chunk = points[start:stop]
            chunk.setflags(write=False)
            self._requests.put(AssignmentRequest(round_index, start, chunk, snapshot))

        labels = np.full(points.shape[0], UNASSIGNED, dtype=np.intp)
        errors: list[BaseException] = []
        for _ in bounds:
            result: AssignmentResult = self._results.get()
            if result.round_index != round_index:
                raise RuntimeError(f"收到第 {result.round_index} 轮的结果，当前为第 {round_index} 轮")
            if result.error is not None:
                errors.append(result.error)
                continue
            labels[result.start:result.start + len(result.labels)] = result.labels

        if errors:
            raise errors[0]
        return labels


def assign_points(points: np.ndarray, centroids: np.ndarray, thread_count: int = 1) -> np.ndarray:
    """One-off parallel assignment with a temporary pool of at most one worker per point."""
    with WorkerPool(max(1, min(thread_count, points.shape[0]))) as pool:
        return pool.assign(points, centroids)
