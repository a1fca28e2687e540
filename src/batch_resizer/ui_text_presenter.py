"""Pure text builders for status lines, outcome logs and failure reports."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from batch_resizer.errors import ERROR_KIND_LABELS
from batch_resizer.models import ResizeFailure, ResizeOutcome, ResizeTarget
from batch_resizer.presets import Preset
from batch_resizer.progress import ProgressSnapshot, format_timedelta


def build_preset_label(preset: Preset) -> str:
    """Build a dropdown label such as `Thumbnail (150x150)`."""
    return f"{preset.name} ({preset.width}x{preset.height})"


def build_target_summary_text(target: ResizeTarget) -> str:
    aspect = "維持" if target.maintain_aspect_ratio else "無視"
    return f"サイズ: {target.width}x{target.height} (アスペクト比: {aspect})"


def build_progress_text(snapshot: ProgressSnapshot) -> str:
    """Build the one-line progress status."""
    if snapshot.total == 0:
        return "待機中"
    parts = [
        f"進捗: {snapshot.processed}/{snapshot.total} ({snapshot.percentage:.1f}%)",
        f"成功: {snapshot.succeeded}",
        f"失敗: {snapshot.failed}",
    ]
    if snapshot.elapsed:
        parts.append(f"経過: {format_timedelta(snapshot.elapsed)}")
    remaining = snapshot.estimated_remaining
    if remaining and not snapshot.cancelled:
        parts.append(f"残り: {format_timedelta(remaining)}")
    if snapshot.cancelled:
        parts.append("キャンセル中")
    return " | ".join(parts)


def build_outcome_line(outcome: ResizeOutcome) -> str:
    """Build one log line for a finished job."""
    name = outcome.job.source_path.name
    result = outcome.result
    if isinstance(result, ResizeFailure):
        return f"✖ {name}: [{result.error_kind.value}] {result.message}"
    mark = "(ドライラン) " if result.dry_run else ""
    return f"✔ {mark}{name} → {result.output_path.name} ({result.width}x{result.height})"


def build_completion_text(*, succeeded: int, failed: int, skipped: int = 0, cancelled: bool = False) -> str:
    text = f"処理完了: 成功 {succeeded}件 / 失敗 {failed}件"
    if cancelled:
        text = f"キャンセルしました: 成功 {succeeded}件 / 失敗 {failed}件 / 未処理 {skipped}件"
    return text


def group_failures(outcomes: Iterable[ResizeOutcome]) -> Dict[str, int]:
    """Count failures per error-kind label, most frequent first."""
    grouped: Dict[str, int] = {}
    for outcome in outcomes:
        if not isinstance(outcome.result, ResizeFailure):
            continue
        key = ERROR_KIND_LABELS.get(outcome.result.error_kind, outcome.result.error_kind.value)
        grouped[key] = grouped.get(key, 0) + 1
    return dict(sorted(grouped.items(), key=lambda item: (-item[1], item[0])))


def build_failure_report_text(
    *,
    title: str,
    summary_text: str,
    outcomes: Iterable[ResizeOutcome],
    preview_limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> str:
    timestamp = (now or datetime.now()).isoformat(timespec="seconds")
    failures = [o for o in sorted(outcomes, key=lambda o: o.job.index) if not o.ok]
    lines: List[str] = [f"[{timestamp}] {title}", summary_text]
    if not failures:
        return "\n".join(lines)

    lines.append("")
    lines.append("原因別サマリー:")
    for group_name, count in group_failures(failures).items():
        lines.append(f"- {group_name}: {count}件")
    lines.append("")
    lines.append(f"失敗一覧 ({len(failures)}件):")
    shown = failures if preview_limit is None else failures[:preview_limit]
    lines.extend(f"- {build_outcome_line(outcome)}" for outcome in shown)
    remaining = len(failures) - len(shown)
    if remaining > 0:
        lines.append(f"...ほか {remaining} 件")
    return "\n".join(lines)
