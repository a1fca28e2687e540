from __future__ import annotations

from datetime import timedelta

from batch_resizer.progress import BatchProgress, ProgressSnapshot, format_timedelta


def test_counts_and_percentage() -> None:
    progress = BatchProgress()
    progress.start(4)
    progress.record(True)
    progress.record(False)

    snapshot = progress.snapshot()
    assert snapshot.total == 4
    assert snapshot.succeeded == 1
    assert snapshot.failed == 1
    assert snapshot.processed == 2
    assert snapshot.percentage == 50.0
    assert snapshot.fraction == 0.5
    assert not progress.is_finished

    progress.finish()
    assert progress.is_finished


def test_start_resets_previous_run() -> None:
    progress = BatchProgress()
    progress.start(2)
    progress.record(True)
    progress.mark_cancelled()
    progress.record_skipped()

    progress.start(3)

    snapshot = progress.snapshot()
    assert snapshot.processed == 0
    assert snapshot.skipped == 0
    assert snapshot.cancelled is False


def test_estimated_remaining() -> None:
    snapshot = ProgressSnapshot(
        total=10, succeeded=4, failed=1, skipped=0, cancelled=False, elapsed=timedelta(seconds=10)
    )
    assert snapshot.estimated_remaining == timedelta(seconds=10)

    idle = ProgressSnapshot(total=10, succeeded=0, failed=0, skipped=0, cancelled=False, elapsed=None)
    assert idle.estimated_remaining is None
    assert idle.percentage == 0.0


def test_format_timedelta() -> None:
    assert format_timedelta(timedelta(seconds=5)) == "5秒"
    assert format_timedelta(timedelta(seconds=65)) == "1分5秒"
    assert format_timedelta(timedelta(seconds=3700)) == "1時間1分"
