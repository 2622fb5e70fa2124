from __future__ import annotations

from typing import Dict

import numpy as np
import pandas as pd
from sklearn.metrics import calinski_harabasz_score, davies_bouldin_score, silhouette_score

from kcluster.centroids import cluster_sizes, inertia
from kcluster.engine import ClusteringResult


def coordinate_columns(dimensions: int) -> list[str]:
    return [f"x{i}" for i in range(dimensions)]


def cluster_table(result: ClusteringResult) -> pd.DataFrame:
    """One row per cluster: index, centroid coordinates and member count."""
    columns = coordinate_columns(result.centroids.shape[1])
    table = pd.DataFrame(result.centroids, columns=columns)
    table.insert(0, "cluster", np.arange(len(table)))
    table["points"] = cluster_sizes(result.assignments, len(table))
    return table


def quality_metrics(result: ClusteringResult) -> Dict[str, float]:
    """SSE plus the scikit-learn quality scores where they are defined.

    Silhouette, Calinski-Harabasz and Davies-Bouldin need at least two
    distinct labels and fewer labels than points; otherwise only ``sse`` is
    reported.
    """
    metrics: Dict[str, float] = {
        "sse": inertia(result.coordinates, result.assignments, result.centroids),
    }
    n_labels = len(np.unique(result.assignments))
    n_points = len(result.assignments)
    if 2 <= n_labels <= n_points - 1:
        metrics["silhouette"] = float(silhouette_score(result.coordinates, result.assignments))
        metrics["calinski_harabasz"] = float(calinski_harabasz_score(result.coordinates, result.assignments))
        metrics["davies_bouldin"] = float(davies_bouldin_score(result.coordinates, result.assignments))
    return metrics


def format_report(result: ClusteringResult) -> str:
    """Console report of the final clusters and the run statistics."""
    lines: list[str] = []
    status = "已收敛" if result.converged else "未收敛（达到最大轮数）"
    lines.append("=" * 50)
    lines.append(f"K-means 聚类结果：{status}，共 {result.rounds} 轮")
    lines.append("=" * 50)

    sizes = cluster_sizes(result.assignments, result.centroids.shape[0])
    for cluster in result.clusters:
        centroid = ", ".join(f"{v:.4f}" for v in cluster.centroid)
        lines.append(f"簇 {cluster.index}：中心 ({centroid})，{int(sizes[cluster.index])} 个点")

    lines.append("")
    lines.append("评估指标:")
    for name, value in quality_metrics(result).items():
        lines.append(f"{name.replace('_', ' ').title()}: {value:.4f}")
    return "\n".join(lines)
