from __future__ import annotations


def chunk_bounds(point_count: int, worker_count: int) -> list[tuple[int, int]]:
    """Split ``range(point_count)`` into contiguous half-open ``(start, stop)`` chunks.

    The number of chunks is ``min(worker_count, point_count)``; chunk sizes differ
    by at most one and together cover every index exactly once.
    """
    if point_count < 0:
        raise ValueError(f"点数不能为负：{point_count}")
    if worker_count < 1:
        raise ValueError(f"线程数必须为正整数：{worker_count}")
    if point_count == 0:
        return []

    n_chunks = min(worker_count, point_count)
    base, extra = divmod(point_count, n_chunks)
    bounds: list[tuple[int, int]] = []
    start = 0
    for i in range(n_chunks):
        stop = start + base + (1 if i < extra else 0)
        bounds.append((start, stop))
        start = stop
    return bounds
