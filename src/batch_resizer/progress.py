"""
バッチ処理の進捗を保持するユーティリティモジュール

ワーカースレッドから更新され、GUI/CLI 側からポーリングされる。
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


@dataclass(frozen=True)
class ProgressSnapshot:
    """ある時点の進捗"""
    total: int
    succeeded: int
    failed: int
    skipped: int
    cancelled: bool
    elapsed: Optional[timedelta]

    @property
    def processed(self) -> int:
        """処理済み件数（成功＋失敗）"""
        return self.succeeded + self.failed

    @property
    def percentage(self) -> float:
        """全体の進捗率"""
        if self.total == 0:
            return 0.0
        return min(100.0, (self.processed / self.total) * 100)

    @property
    def fraction(self) -> float:
        return self.percentage / 100

    @property
    def estimated_remaining(self) -> Optional[timedelta]:
        """残り時間の推定"""
        if not self.elapsed or self.processed == 0:
            return None
        seconds = self.elapsed.total_seconds()
        if seconds <= 0:
            return None
        rate = self.processed / seconds
        remaining = max(0, self.total - self.processed - self.skipped)
        return timedelta(seconds=remaining / rate)


class BatchProgress:
    """スレッドセーフな進捗カウンタ"""

    def __init__(self, total: int = 0) -> None:
        self._lock = threading.Lock()
        self._total = total
        self._succeeded = 0
        self._failed = 0
        self._skipped = 0
        self._cancelled = False
        self._start_time: Optional[datetime] = None
        self._end_time: Optional[datetime] = None

    def start(self, total: int) -> None:
        with self._lock:
            self._total = total
            self._succeeded = 0
            self._failed = 0
            self._skipped = 0
            self._cancelled = False
            self._start_time = datetime.now()
            self._end_time = None

    def record(self, ok: bool) -> None:
        with self._lock:
            if ok:
                self._succeeded += 1
            else:
                self._failed += 1

    def record_skipped(self, count: int = 1) -> None:
        with self._lock:
            self._skipped += count

    def mark_cancelled(self) -> None:
        with self._lock:
            self._cancelled = True

    def finish(self) -> None:
        with self._lock:
            self._end_time = datetime.now()

    @property
    def processed(self) -> int:
        with self._lock:
            return self._succeeded + self._failed

    @property
    def total(self) -> int:
        with self._lock:
            return self._total

    @property
    def is_finished(self) -> bool:
        with self._lock:
            return self._end_time is not None

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            elapsed = None
            if self._start_time is not None:
                end = self._end_time or datetime.now()
                elapsed = end - self._start_time
            return ProgressSnapshot(
                total=self._total,
                succeeded=self._succeeded,
                failed=self._failed,
                skipped=self._skipped,
                cancelled=self._cancelled,
                elapsed=elapsed,
            )


def format_timedelta(td: timedelta) -> str:
    """timedelta を読みやすい形式に変換"""
    total_seconds = int(td.total_seconds())
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60

    if hours > 0:
        return f"{hours}時間{minutes}分"
    elif minutes > 0:
        return f"{minutes}分{seconds}秒"
    else:
        return f"{seconds}秒"
