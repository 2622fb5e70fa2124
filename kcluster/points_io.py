from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

POINT_FILE_SUFFIXES = {".csv", ".xlsx"}


def load_table(file_path: Path) -> pd.DataFrame:
    """Load data from either CSV or Excel file."""
    suffix = file_path.suffix.lower()
    if suffix == ".csv":
        for encoding in ["utf-8-sig", "gbk"]:
            try:
                return pd.read_csv(file_path, encoding=encoding)
            except UnicodeDecodeError:
                continue
        return pd.read_csv(file_path)
    return pd.read_excel(file_path)


def load_points(file_path: Path) -> np.ndarray:
    """Read a point matrix from every numeric column of a CSV/Excel file.

    Rows with missing values are dropped with a warning.
    """
    df = load_table(file_path)
    df.columns = df.columns.map(lambda x: str(x).strip())

    numeric = df.select_dtypes(include=["number"])
    if numeric.shape[1] == 0:
        raise ValueError(f"文件中没有可用的数值型坐标列：{file_path}")

    non_numeric = [c for c in df.columns if c not in numeric.columns]
    if non_numeric:
        print("警告：忽略非数值型列：", non_numeric)

    missing_rows = int(numeric.isnull().any(axis=1).sum())
    if missing_rows:
        print(f"警告：{missing_rows} 行包含缺失值，已跳过。")
        numeric = numeric.dropna()

    if numeric.empty:
        raise ValueError(f"文件中没有可用的数据行：{file_path}")

    print(f"已加载 {len(numeric)} 个点，维度 {numeric.shape[1]}，坐标列: {list(numeric.columns)}")
    return numeric.to_numpy(dtype=float)
