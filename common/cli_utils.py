from __future__ import annotations

import os
import sys
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, TextIO

# Run directories land under ./runs of the invoking directory unless overridden.
RUNS_ROOT = Path(os.environ.get("KCLUSTER_RUNS_DIR", Path.cwd() / "runs")).resolve()


def create_run_dir(run_dir: Optional[str] = None) -> Path:
    RUNS_ROOT.mkdir(parents=True, exist_ok=True)
    if run_dir:
        run_path = Path(run_dir)
        if not run_path.is_absolute():
            run_path = (Path.cwd() / run_path).resolve()
        run_path.mkdir(parents=True, exist_ok=True)
        return run_path

    cwd = Path.cwd()
    try:
        cwd.relative_to(RUNS_ROOT)
        if cwd != RUNS_ROOT:
            return cwd
    except ValueError:
        pass
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    suffix = uuid.uuid4().hex[:6]
    run_path = RUNS_ROOT / f"{timestamp}_{suffix}"
    run_path.mkdir(parents=True, exist_ok=True)
    return run_path


def enter_run_dir(run_dir: Optional[str] = None) -> Path:
    run_path = create_run_dir(run_dir)
    os.chdir(run_path)
    return run_path


def resolve_input_path(path_str: str, base_dir: Optional[Path] = None) -> Path:
    path = Path(path_str)
    if path.is_absolute():
        return path
    return ((base_dir or Path.cwd()) / path).resolve()


def require_input_path(
    path_str: Optional[str],
    label: str,
    *,
    base_dir: Optional[Path] = None,
    allowed_suffixes: Optional[Iterable[str]] = None,
) -> Path:
    if not path_str:
        raise ValueError(f"{label} 不能为空，请提供有效路径。")
    resolved = resolve_input_path(path_str, base_dir)
    if not resolved.exists():
        raise FileNotFoundError(f"{label} 不存在：{resolved}")
    if not resolved.is_file():
        raise FileNotFoundError(f"{label} 不是文件：{resolved}")
    if allowed_suffixes:
        suffix = resolved.suffix.lower()
        allowed = {s.lower() for s in allowed_suffixes}
        if suffix not in allowed:
            raise ValueError(f"{label} 扩展名不匹配：{resolved}，允许：{sorted(allowed)}")
    return resolved


class _TeeWriter:
    """Writes to the original stream and the run log, keeping a copy in memory."""

    def __init__(
        self,
        stream: TextIO,
        log_fp: TextIO,
        lock: threading.Lock,
        buffer: list[str],
    ) -> None:
        self._stream = stream
        self._log_fp = log_fp
        self._lock = lock
        self._buffer = buffer

    def write(self, text: str) -> int:
        if not text:
            return 0
        with self._lock:
            self._stream.write(text)
            self._stream.flush()
            self._log_fp.write(text)
            self._log_fp.flush()
            self._buffer.append(text)
        return len(text)

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()
            self._log_fp.flush()

    def isatty(self) -> bool:
        return bool(getattr(self._stream, "isatty", lambda: False)())

    def __getattr__(self, name: str):
        return getattr(self._stream, name)


@contextmanager
def tee_console_to_log(run_dir: Path, log_name: str = "run.log"):
    """Mirror stdout and stderr into ``run_dir/log_name`` for the duration of the block."""
    log_path = run_dir / log_name
    log_path.parent.mkdir(parents=True, exist_ok=True)
    lock = threading.Lock()
    stdout_buffer: list[str] = []
    stderr_buffer: list[str] = []
    with log_path.open("w", encoding="utf-8-sig") as log_fp:
        original_stdout = sys.stdout
        original_stderr = sys.stderr
        sys.stdout = _TeeWriter(original_stdout, log_fp, lock, stdout_buffer)
        sys.stderr = _TeeWriter(original_stderr, log_fp, lock, stderr_buffer)
        try:
            yield stdout_buffer, stderr_buffer, log_path
        finally:
            sys.stdout = original_stdout
            sys.stderr = original_stderr
