"""
End-to-end behaviour of the clustering loop (cluster / cluster_points / Coordinator).
"""

import threading

import numpy as np
import pytest

import kcluster.assignment
import kcluster.engine
from kcluster.assignment import WorkerPool
from kcluster.config import ClusterConfig, ConfigurationError, Domain
from kcluster.coordinator import Coordinator, LoopState
from kcluster.engine import cluster, cluster_points
from kcluster.geometry import DimensionMismatchError

LINE_POINTS = np.array(
    [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [10.0, 0.0], [11.0, 0.0], [12.0, 0.0]]
)


@pytest.mark.parametrize(
    "initial",
    [
        [[0.0, 0.0], [1.0, 0.0]],
        [[12.0, 0.0], [11.0, 0.0]],
        [[-3.0, 5.0], [20.0, -1.0]],
    ],
)
@pytest.mark.parametrize("thread_count", [1, 2, 4])
def test_six_points_on_a_line(initial, thread_count):
    result = cluster_points(LINE_POINTS, 2, thread_count, initial_centroids=np.array(initial))

    assert result.converged
    centroids = sorted(tuple(c) for c in result.centroids.tolist())
    assert centroids == [(1.0, 0.0), (11.0, 0.0)]

    labels = result.assignments.tolist()
    assert labels[0] == labels[1] == labels[2]
    assert labels[3] == labels[4] == labels[5]
    assert labels[0] != labels[3]
    assert result.members(labels[0]).tolist() == [0, 1, 2]


def test_six_points_round_count():
    """首轮全部点从未分配变为已分配；第三轮无变化后收敛。"""
    result = cluster_points(LINE_POINTS, 2, 2, initial_centroids=np.array([[0.0, 0.0], [1.0, 0.0]]))
    assert result.rounds == 3
    assert [s.changed for s in result.history] == [6, 2, 0]


def test_sse_never_increases():
    result = cluster(400, 6, 4, seed=7)
    sse = [s.inertia for s in result.history]
    assert result.converged
    assert len(sse) >= 2
    for before, after in zip(sse, sse[1:]):
        assert after <= before + 1e-9
    assert result.history[-1].changed == 0


def test_random_run_shapes_and_labels():
    result = cluster(120, 4, 3, dimensions=3, domain=Domain(-1.0, 1.0), seed=11)
    assert result.centroids.shape == (4, 3)
    assert result.coordinates.shape == (120, 3)
    assert result.assignments.min() >= 0
    assert result.assignments.max() < 4
    assert np.all(result.coordinates >= -1.0) and np.all(result.coordinates <= 1.0)
    assert len(result.clusters) == 4
    assert all(p.cluster is not None for p in result.points)


def test_same_seed_same_result_regardless_of_threads():
    a = cluster(300, 5, 1, seed=3)
    b = cluster(300, 5, 8, seed=3)
    np.testing.assert_array_equal(a.assignments, b.assignments)
    np.testing.assert_array_equal(a.centroids, b.centroids)
    assert a.rounds == b.rounds


def test_empty_cluster_centroid_survives_the_run():
    points = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    result = cluster_points(points, 2, 2, initial_centroids=np.array([[0.5, 0.5], [100.0, 100.0]]))
    assert result.converged
    np.testing.assert_array_equal(result.centroids[1], [100.0, 100.0])
    assert result.assignments.tolist() == [0, 0, 0]


@pytest.mark.parametrize(
    "point_count,cluster_count,thread_count",
    [(0, 3, 2), (10, 0, 2), (10, 3, 0), (-1, 3, 2)],
)
def test_zero_configuration_rejected_before_work(monkeypatch, point_count, cluster_count, thread_count):
    calls = []
    monkeypatch.setattr(kcluster.engine, "random_points", lambda *a, **k: calls.append(a))
    with pytest.raises(ConfigurationError):
        cluster(point_count, cluster_count, thread_count)
    assert calls == []


def test_cluster_points_rejects_empty_input():
    with pytest.raises(ConfigurationError):
        cluster_points(np.empty((0, 2)), 2, 2)
    with pytest.raises(ConfigurationError):
        cluster_points([], 2, 2)


def test_initial_centroid_count_must_match():
    with pytest.raises(ConfigurationError):
        cluster_points(LINE_POINTS, 3, 2, initial_centroids=np.zeros((2, 2)))


def test_initial_centroid_dimension_mismatch_is_fatal():
    with pytest.raises(DimensionMismatchError):
        cluster_points(LINE_POINTS, 2, 2, initial_centroids=np.zeros((2, 3)))


def test_config_validation():
    with pytest.raises(ConfigurationError):
        ClusterConfig(point_count=10, cluster_count=2, dimensions=0).validate()
    with pytest.raises(ConfigurationError):
        ClusterConfig(point_count=10, cluster_count=2, domain=Domain(1.0, 1.0)).validate()
    with pytest.raises(ConfigurationError):
        ClusterConfig(point_count=10, cluster_count=2, max_rounds=0).validate()
    with pytest.raises(ConfigurationError):
        ClusterConfig(point_count=2.5, cluster_count=2).validate()
    assert ClusterConfig(point_count=np.int64(10), cluster_count=2).validate().point_count == 10


def test_max_rounds_cap_stops_without_convergence(capsys):
    result = cluster_points(
        LINE_POINTS, 2, 2, initial_centroids=np.array([[0.0, 0.0], [1.0, 0.0]]), max_rounds=1
    )
    assert not result.converged
    assert result.rounds == 1
    assert "最大轮数" in capsys.readouterr().out


def test_coordinator_state_machine():
    coordinator = Coordinator(LINE_POINTS, np.array([[0.0, 0.0], [1.0, 0.0]]), thread_count=2)
    assert coordinator.state is LoopState.RUNNING
    with WorkerPool(2) as pool:
        while coordinator.state is LoopState.RUNNING:
            coordinator.step(pool)
        with pytest.raises(RuntimeError):
            coordinator.step(pool)
    assert coordinator.converged
    assert coordinator.rounds == 3


def test_coordinator_does_not_update_centroids_on_converging_round():
    coordinator = Coordinator(LINE_POINTS, np.array([[1.0, 0.0], [11.0, 0.0]]), thread_count=3)
    coordinator.run()
    # round 1 assigns everything, round 2 confirms
    assert coordinator.rounds == 2
    np.testing.assert_array_equal(coordinator.centroids, [[1.0, 0.0], [11.0, 0.0]])


def test_verbose_run_prints_rounds(capsys):
    cluster_points(LINE_POINTS, 2, 2, initial_centroids=np.array([[0.0, 0.0], [1.0, 0.0]]), verbose=True)
    out = capsys.readouterr().out
    assert "初始聚类中心" in out
    assert "第 1 轮" in out
    assert "聚类在第 3 轮收敛" in out


def test_worker_count_capped_by_point_count(monkeypatch):
    """线程数远大于点数时，只启动与分块数相同的工作线程。"""
    started = []
    original_start = kcluster.assignment.AssignmentWorker.start

    def counting_start(self):
        started.append(self.name)
        original_start(self)

    monkeypatch.setattr(kcluster.assignment.AssignmentWorker, "start", counting_start)

    result = cluster(3, 2, 500, seed=1)

    assert result.converged
    assert len(started) == 3
    assert not any(t.name.startswith("kcluster-worker-") for t in threading.enumerate())


def test_round_stats_record_centroid_shift():
    result = cluster_points(LINE_POINTS, 2, 2, initial_centroids=np.array([[0.0, 0.0], [1.0, 0.0]]))
    shifts = [s.shift for s in result.history]
    # (1,0) -> (7.2,0), then (0,0) -> (1,0) and (7.2,0) -> (11,0), then nothing
    assert shifts == pytest.approx([6.2 ** 2, 1.0 + 3.8 ** 2, 0.0])


def test_verbose_run_prints_centroid_shift(capsys):
    cluster_points(LINE_POINTS, 2, 2, initial_centroids=np.array([[1.0, 0.0], [11.0, 0.0]]), verbose=True)
    out = capsys.readouterr().out
    assert "第 1 轮：6 个点变更归属，SSE=4.0000，中心移动量=0.0000" in out
