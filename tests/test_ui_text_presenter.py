from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

from batch_resizer.errors import ErrorKind
from batch_resizer.models import CustomSpec, ResizeFailure, ResizeJob, ResizeOutcome, ResizeSuccess, ResizeTarget
from batch_resizer.presets import default_catalog
from batch_resizer.progress import ProgressSnapshot
from batch_resizer.ui_text_presenter import (
    build_completion_text,
    build_failure_report_text,
    build_outcome_line,
    build_preset_label,
    build_progress_text,
    build_target_summary_text,
    group_failures,
)

_TARGET = ResizeTarget(200, 200, True)


def _outcome(index: int, name: str, kind=None, message: str = "") -> ResizeOutcome:
    job = ResizeJob(
        index=index,
        source_path=Path("in") / name,
        output_path=Path("out") / f"{Path(name).stem}_resized_200x100.jpg",
        spec=CustomSpec(200, 200),
        target=_TARGET,
    )
    if kind is None:
        result = ResizeSuccess(output_path=job.output_path, width=200, height=100)
    else:
        result = ResizeFailure(error_kind=kind, message=message)
    return ResizeOutcome(job=job, result=result)


def test_build_preset_label() -> None:
    assert build_preset_label(default_catalog()["Thumbnail"]) == "Thumbnail (150x150)"


def test_build_target_summary_text() -> None:
    assert build_target_summary_text(ResizeTarget(820, 312, False)) == "サイズ: 820x312 (アスペクト比: 無視)"


def test_build_progress_text() -> None:
    idle = ProgressSnapshot(total=0, succeeded=0, failed=0, skipped=0, cancelled=False, elapsed=None)
    assert build_progress_text(idle) == "待機中"

    running = ProgressSnapshot(
        total=4, succeeded=1, failed=1, skipped=0, cancelled=False, elapsed=timedelta(seconds=4)
    )
    assert build_progress_text(running) == "進捗: 2/4 (50.0%) | 成功: 1 | 失敗: 1 | 経過: 4秒 | 残り: 4秒"

    cancelling = ProgressSnapshot(
        total=4, succeeded=1, failed=0, skipped=0, cancelled=True, elapsed=timedelta(seconds=2)
    )
    assert build_progress_text(cancelling).endswith("キャンセル中")


def test_build_outcome_line() -> None:
    assert build_outcome_line(_outcome(0, "a.jpg")) == "✔ a.jpg → a_resized_200x100.jpg (200x100)"
    failed = _outcome(1, "b.jpg", ErrorKind.SOURCE_READ_ERROR, "画像を読み込めません")
    assert build_outcome_line(failed) == "✖ b.jpg: [SourceReadError] 画像を読み込めません"


def test_build_completion_text() -> None:
    assert build_completion_text(succeeded=3, failed=1) == "処理完了: 成功 3件 / 失敗 1件"
    assert "未処理 2件" in build_completion_text(succeeded=1, failed=0, skipped=2, cancelled=True)


def test_group_failures_counts_by_kind() -> None:
    outcomes = [
        _outcome(0, "a.jpg"),
        _outcome(1, "b.jpg", ErrorKind.SOURCE_READ_ERROR, "x"),
        _outcome(2, "c.jpg", ErrorKind.UNSUPPORTED_FORMAT, "y"),
        _outcome(3, "d.jpg", ErrorKind.SOURCE_READ_ERROR, "z"),
    ]

    assert group_failures(outcomes) == {"読み込み失敗": 2, "形式/破損": 1}


def test_build_failure_report_text() -> None:
    outcomes = [
        _outcome(2, "c.jpg", ErrorKind.UNSUPPORTED_FORMAT, "壊れています"),
        _outcome(0, "a.jpg"),
        _outcome(1, "b.jpg", ErrorKind.OUTPUT_WRITE_ERROR, "保存に失敗しました"),
    ]

    text = build_failure_report_text(
        title="一括リサイズ",
        summary_text="処理完了: 成功 1件 / 失敗 2件",
        outcomes=outcomes,
        preview_limit=1,
        now=datetime(2026, 2, 12, 9, 30, 45),
    )

    lines = text.splitlines()
    assert lines[0] == "[2026-02-12T09:30:45] 一括リサイズ"
    assert "原因別サマリー:" in lines
    assert "- 書き込み失敗: 1件" in lines
    assert "失敗一覧 (2件):" in lines
    assert "- ✖ b.jpg: [OutputWriteError] 保存に失敗しました" in lines
    assert lines[-1] == "...ほか 1 件"


def test_build_failure_report_text_without_failures() -> None:
    text = build_failure_report_text(title="t", summary_text="s", outcomes=[_outcome(0, "a.jpg")])
    assert text.splitlines()[1:] == ["s"]
