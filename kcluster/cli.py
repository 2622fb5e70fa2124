from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from common.cli_utils import require_input_path
from common.run_context import run_context
from common.run_summary import write_run_summary
from kcluster.config import DEFAULT_DIMENSIONS, DEFAULT_HIGH, DEFAULT_LOW, DEFAULT_THREADS, ConfigurationError, Domain
from kcluster.engine import ClusteringResult, cluster, cluster_points
from kcluster.points_io import POINT_FILE_SUFFIXES, load_points
from kcluster.report import cluster_table, format_report, quality_metrics


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kcluster", description="多线程 K-means 聚类（Lloyd 算法）")
    subparsers = parser.add_subparsers(dest="command", required=True)

    cluster_parser = subparsers.add_parser(
        "cluster",
        help="对随机点或文件中的点执行 K-means 聚类",
        description=(
            "对点集执行 K-means 聚类：\n"
            "- 随机点：--num-points P --num-clusters C\n"
            "- 文件点：--input-file data.csv --num-clusters C（使用全部数值列作为坐标）\n"
            "- 最近中心分配由 --num-threads 个线程并行计算，直到没有点变更归属"
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    cluster_parser.add_argument("-p", "--num-points", type=int, default=None, help="随机生成的点数（未提供 --input-file 时必填）")
    cluster_parser.add_argument("-c", "--num-clusters", type=int, required=True, help="聚类数")
    cluster_parser.add_argument("-t", "--num-threads", type=int, default=DEFAULT_THREADS, help=f"线程数（默认: {DEFAULT_THREADS}）")
    cluster_parser.add_argument("--dimensions", type=int, default=DEFAULT_DIMENSIONS, help=f"随机点维度（默认: {DEFAULT_DIMENSIONS}）")
    cluster_parser.add_argument("--low", type=float, default=None, help=f"坐标下界（默认: {DEFAULT_LOW:g}；文件输入时默认取数据范围）")
    cluster_parser.add_argument("--high", type=float, default=None, help=f"坐标上界（默认: {DEFAULT_HIGH:g}；文件输入时默认取数据范围）")
    cluster_parser.add_argument("--seed", type=int, default=None, help="随机种子（默认: 不固定）")
    cluster_parser.add_argument("--max-rounds", type=int, default=None, help="最大迭代轮数（默认: 不限制，直到收敛）")
    cluster_parser.add_argument("--input-file", default=None, help="输入 csv 和 excel 点数据文件路径")
    cluster_parser.add_argument("--run-dir", default=None, help="运行输出目录（默认: runs/YYYYMMDD-HHMMSS_hash）")
    cluster_parser.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="是否显示迭代进度条（默认: True）",
    )

    return parser


def _domain_from_args(args: argparse.Namespace) -> Optional[Domain]:
    if args.low is None and args.high is None:
        return None
    low = DEFAULT_LOW if args.low is None else args.low
    high = DEFAULT_HIGH if args.high is None else args.high
    return Domain(low=low, high=high)


def _cluster_parameters(args: argparse.Namespace) -> dict[str, object]:
    return {
        "点数": args.num_points if not args.input_file else "（由输入文件决定）",
        "聚类数": args.num_clusters,
        "线程数": args.num_threads,
        "维度": args.dimensions if not args.input_file else "（由输入文件决定）",
        "坐标下界": args.low,
        "坐标上界": args.high,
        "随机种子": args.seed,
        "最大轮数": args.max_rounds,
        "输入文件": args.input_file,
    }


def _cluster_outcome(result: ClusteringResult) -> dict[str, object]:
    metrics = quality_metrics(result)
    return {
        "状态": "已收敛" if result.converged else "未收敛",
        "迭代轮数": result.rounds,
        "点数": len(result.assignments),
        "SSE": metrics["sse"],
    }


def _run_cluster(args: argparse.Namespace) -> int:
    started_at = datetime.now()
    error_message: Optional[str] = None
    return_code: int = 0
    outcome: dict[str, object] = {}
    final_stdout = ""
    final_stderr = ""
    invocation_dir = Path.cwd()

    with run_context(args.run_dir) as (run_dir, log_path, stdout_buffer, stderr_buffer):
        try:
            domain = _domain_from_args(args)
            if args.input_file:
                input_file = require_input_path(
                    args.input_file,
                    "输入点数据文件",
                    base_dir=invocation_dir,
                    allowed_suffixes=POINT_FILE_SUFFIXES,
                )
                points = load_points(input_file)
                print(f"开始聚类：点数={len(points)}，聚类数={args.num_clusters}，线程数={args.num_threads}")
                result = cluster_points(
                    points,
                    args.num_clusters,
                    args.num_threads,
                    domain=domain,
                    seed=args.seed,
                    max_rounds=args.max_rounds,
                    verbose=True,
                    progress=args.progress,
                )
            else:
                if args.num_points is None:
                    raise ConfigurationError("未提供 --input-file 时必须指定 --num-points")
                print(f"开始聚类：点数={args.num_points}，聚类数={args.num_clusters}，线程数={args.num_threads}")
                result = cluster(
                    args.num_points,
                    args.num_clusters,
                    args.num_threads,
                    dimensions=args.dimensions,
                    domain=domain,
                    seed=args.seed,
                    max_rounds=args.max_rounds,
                    verbose=True,
                    progress=args.progress,
                )

            print(format_report(result))
            print("\n各簇明细:")
            print(cluster_table(result).to_string(index=False))
            outcome = _cluster_outcome(result)

        except Exception as exc:  # noqa: BLE001 - reported in run.log and summary.md
            return_code = 1
            error_message = str(exc)
            print(f"执行失败: {exc}", file=sys.stderr)
        finally:
            final_stdout = "".join(stdout_buffer)
            final_stderr = "".join(stderr_buffer)

    write_run_summary(
        run_dir,
        tool_label="K-means 聚类",
        command=[sys.executable, "-m", "kcluster.cli"] + list(args.argv),
        return_code=return_code,
        started_at=started_at,
        finished_at=datetime.now(),
        parameters=_cluster_parameters(args),
        outcome=outcome,
        stdout_text=final_stdout,
        stderr_text=final_stderr,
        error_message=error_message,
    )
    return return_code


def cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    args = parser.parse_args(raw_argv)
    args.argv = raw_argv
    try:
        if args.command == "cluster":
            return _run_cluster(args)
        raise ValueError(f"未知命令：{args.command}")
    except Exception as exc:  # noqa: BLE001 - CLI should not explode with stacktrace
        print(f"执行失败: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(cli())
