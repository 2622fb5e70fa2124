from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from tqdm import tqdm

from kcluster.assignment import WorkerPool
from kcluster.centroids import inertia, update_centroids
from kcluster.geometry import UNASSIGNED, check_dimensions


class LoopState(Enum):
    RUNNING = "running"
    CONVERGED = "converged"


@dataclass(frozen=True)
class RoundStats:
    """What one assignment round observed.

    ``inertia`` is measured right after the round's assignment, against the
    centroids that assignment used. ``shift`` is the summed squared distance
    the centroids moved in the update that followed (0.0 on the converging
    round); it is reported only and never decides convergence.
    """

    round_index: int
    changed: int
    inertia: float
    shift: float = 0.0


class Coordinator:
    """Owns the points, labels and centroids and drives Lloyd rounds.

    Each round dispatches the points to the worker pool, waits for every
    chunk, applies the labels and then either stops (no label changed) or
    recomputes the centroids on this thread.
    """

    def __init__(
        self,
        points: np.ndarray,
        centroids: np.ndarray,
        thread_count: int,
        *,
        max_rounds: Optional[int] = None,
        verbose: bool = False,
        progress: bool = False,
    ) -> None:
        self.points: np.ndarray = np.array(points, dtype=float, copy=True)
        self.points.setflags(write=False)
        self.centroids: np.ndarray = np.array(centroids, dtype=float, copy=True)
        check_dimensions(self.points, self.centroids)

        self.labels: np.ndarray = np.full(self.points.shape[0], UNASSIGNED, dtype=np.intp)
        self.thread_count = thread_count
        self.max_rounds = max_rounds
        self.verbose = verbose
        self.progress = progress

        self.state: LoopState = LoopState.RUNNING
        self.rounds: int = 0
        self.history: list[RoundStats] = []

    @property
    def converged(self) -> bool:
        return self.state is LoopState.CONVERGED

    def step(self, pool: WorkerPool) -> RoundStats:
        """Run one round: parallel assignment, barrier, label update, centroid update."""
        if self.state is not LoopState.RUNNING:
            raise RuntimeError("聚类已收敛，不能继续迭代。")

        self.rounds += 1
        new_labels = pool.assign(self.points, self.centroids, round_index=self.rounds)
        changed = int(np.count_nonzero(new_labels != self.labels))
        self.labels = new_labels

        sse = inertia(self.points, self.labels, self.centroids)
        shift = 0.0
        if changed == 0:
            self.state = LoopState.CONVERGED
        else:
            new_centroids = update_centroids(self.points, self.labels, self.centroids)
            moved = new_centroids - self.centroids
            shift = float(np.sum(moved * moved))
            self.centroids = new_centroids

        stats = RoundStats(round_index=self.rounds, changed=changed, inertia=sse, shift=shift)
        self.history.append(stats)
        return stats

    def run(self) -> LoopState:
        """Iterate until no label changes, or until ``max_rounds`` rounds when a cap is set."""
        if self.verbose:
            tqdm.write("初始聚类中心:")
            for i, row in enumerate(self.centroids):
                tqdm.write(f"  簇 {i}: ({', '.join(f'{v:.4f}' for v in row)})")

        # one worker per chunk; there are never more chunks than points
        worker_count = max(1, min(self.thread_count, self.points.shape[0]))
        with WorkerPool(worker_count) as pool, tqdm(
            desc="k-means 迭代", unit="轮", disable=not self.progress
        ) as bar:
            while self.state is LoopState.RUNNING:
                if self.max_rounds is not None and self.rounds >= self.max_rounds:
                    tqdm.write(f"警告：达到最大轮数 {self.max_rounds}，聚类尚未收敛。")
                    break
                stats = self.step(pool)
                bar.update(1)
                bar.set_postfix(changed=stats.changed, sse=f"{stats.inertia:.4f}")
                if self.verbose:
                    tqdm.write(
                        f"第 {stats.round_index} 轮：{stats.changed} 个点变更归属，SSE={stats.inertia:.4f}，中心移动量={stats.shift:.4f}"
                    )

        if self.verbose and self.converged:
            tqdm.write(f"聚类在第 {self.rounds} 轮收敛。")
        return self.state
