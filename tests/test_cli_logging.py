import os
from pathlib import Path

import pandas as pd
import pytest

import common.cli_utils
from kcluster.cli import build_parser, cli


@pytest.fixture
def runs_root(tmp_path, monkeypatch):
    root = tmp_path / "runs"
    monkeypatch.setattr(common.cli_utils, "RUNS_ROOT", root)
    return root


def _only_run_dir(runs_root: Path) -> Path:
    run_dirs = [p for p in runs_root.iterdir() if p.is_dir()]
    assert len(run_dirs) == 1
    return run_dirs[0]


def test_cluster_run_writes_log_and_summary(runs_root, capsys):
    old_cwd = os.getcwd()
    exit_code = cli(["cluster", "-p", "60", "-c", "3", "-t", "2", "--seed", "5", "--no-progress"])
    assert exit_code == 0
    # run_context puts the working directory back
    assert os.getcwd() == old_cwd

    captured = capsys.readouterr()
    assert "开始聚类：点数=60，聚类数=3，线程数=2" in captured.out
    assert "聚类在第" in captured.out
    assert "各簇明细" in captured.out

    run_dir = _only_run_dir(runs_root)
    log_content = (run_dir / "run.log").read_text(encoding="utf-8-sig")
    summary_content = (run_dir / "summary.md").read_text(encoding="utf-8-sig")

    assert "初始聚类中心" in log_content
    assert "K-means 聚类结果：已收敛" in log_content

    assert "## 运行参数" in summary_content
    assert "- **聚类数**：3" in summary_content
    assert "## 运行结果" in summary_content
    assert "- **状态**：已收敛" in summary_content
    assert "`run.log`" in summary_content
    assert "[stdout]" in summary_content
    assert "返回码**：`0`" in summary_content


def test_zero_clusters_rejected_with_summary(runs_root, capsys):
    exit_code = cli(["cluster", "-p", "10", "-c", "0", "--run-dir", str(runs_root / "zero")])
    assert exit_code == 1

    captured = capsys.readouterr()
    assert "执行失败" in captured.err
    assert "聚类数必须为正整数" in captured.err
    assert "初始聚类中心" not in captured.out

    summary_content = (runs_root / "zero" / "summary.md").read_text(encoding="utf-8-sig")
    assert "## 异常/错误" in summary_content
    assert "返回码**：`1`" in summary_content


def test_missing_point_count_without_input_file(runs_root, capsys):
    assert cli(["cluster", "-c", "2", "--no-progress"]) == 1
    assert "--num-points" in capsys.readouterr().err


def test_cluster_points_from_csv(runs_root, tmp_path, capsys):
    input_file = tmp_path / "line.csv"
    pd.DataFrame(
        {
            "x": [0.0, 1.0, 2.0, 10.0, 11.0, 12.0],
            "y": [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        }
    ).to_csv(input_file, index=False)

    exit_code = cli(
        ["cluster", "--input-file", str(input_file), "-c", "2", "-t", "3", "--seed", "0", "--no-progress"]
    )
    assert exit_code == 0
    out = capsys.readouterr().out
    assert "已加载 6 个点，维度 2" in out

    summary_content = (_only_run_dir(runs_root) / "summary.md").read_text(encoding="utf-8-sig")
    assert "- **输入文件**：" in summary_content
    assert "- **点数**：6" in summary_content


def test_missing_input_file(runs_root, tmp_path, capsys):
    exit_code = cli(["cluster", "--input-file", str(tmp_path / "nope.csv"), "-c", "2"])
    assert exit_code == 1
    assert "不存在" in capsys.readouterr().err


def test_parser_defaults():
    args = build_parser().parse_args(["cluster", "-p", "100", "-c", "4"])
    assert args.num_threads == 4
    assert args.dimensions == 2
    assert args.low is None and args.high is None
    assert args.max_rounds is None
    assert args.progress is True


def test_parser_requires_cluster_count():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["cluster", "-p", "100"])
