from __future__ import annotations

import subprocess
from datetime import datetime
from pathlib import Path
from typing import List, Mapping, Optional


def _format_command(command: List[str]) -> str:
    if not command:
        return ""
    return subprocess.list2cmdline(command)


def collect_run_files(run_dir: Path, *, skip_names: tuple[str, ...] = ("summary.md",)) -> List[str]:
    results: List[str] = []
    for fp in sorted(run_dir.rglob("*")):
        if not fp.is_file():
            continue
        if fp.name.startswith("."):
            continue
        if fp.name in skip_names:
            continue
        if fp.suffix.lower() in {".pyc", ".pyo"}:
            continue
        results.append(str(fp.relative_to(run_dir)))
    return results


def _format_value(value: object) -> str:
    if value is None:
        return "（未设置）"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def write_run_summary(
    run_dir: Path,
    *,
    tool_label: str,
    command: List[str],
    return_code: Optional[int],
    started_at: datetime,
    finished_at: datetime,
    parameters: Optional[Mapping[str, object]] = None,
    outcome: Optional[Mapping[str, object]] = None,
    stdout_text: str = "",
    stderr_text: str = "",
    error_message: Optional[str] = None,
) -> Path:
    """Write ``summary.md`` describing one run: command, parameters, outcome and logs."""
    duration_seconds = max(0.0, (finished_at - started_at).total_seconds())
    command_text = _format_command(command)

    lines: List[str] = [
        f"# 运行总结 - {tool_label}",
        "",
        "## 运行环境",
        f"- **工具**：{tool_label}",
        f"- **运行目录**：`{run_dir}`",
        f"- **开始时间**：{started_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"- **结束时间**：{finished_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"- **耗时**：{duration_seconds:.1f} 秒",
        f"- **返回码**：`{return_code if return_code is not None else 'N/A'}`",
        "",
        "## 执行命令",
        "```bash",
        command_text,
        "```",
    ]

    if parameters:
        lines.append("")
        lines.append("## 运行参数")
        lines.extend(f"- **{name}**：{_format_value(value)}" for name, value in parameters.items())

    if outcome:
        lines.append("")
        lines.append("## 运行结果")
        lines.extend(f"- **{name}**：{_format_value(value)}" for name, value in outcome.items())

    run_files = collect_run_files(run_dir)
    lines.append("")
    lines.append("## 文件列表")
    if run_files:
        lines.extend([f"- `{path}`" for path in run_files])
    else:
        lines.append("- （无）")

    if error_message:
        lines.append("")
        lines.append("## 异常/错误")
        lines.append(f"> ❌ {error_message}")

    if stdout_text or stderr_text:
        lines.append("")
        lines.append("## 运行日志")
        if stdout_text:
            lines.append("### [stdout]")
            lines.append("```text")
            lines.append(stdout_text)
            lines.append("```")
        if stderr_text:
            lines.append("### [stderr]")
            lines.append("```text")
            lines.append(stderr_text)
            lines.append("```")

    summary_path = run_dir / "summary.md"
    summary_path.write_text("\n".join(lines), encoding="utf-8-sig")
    return summary_path
