"""ジョブ一覧をスレッドプールで処理し、結果を集計する。"""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Tuple

from loguru import logger

from batch_resizer.models import EncodeOptions, ResizeJob, ResizeOutcome
from batch_resizer.progress import BatchProgress
from batch_resizer.worker import resize_one

ProgressCallback = Callable[[int, int], None]


def default_worker_count() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class BatchReport:
    """バッチ全体の結果。outcomes は完了順。"""
    outcomes: Tuple[ResizeOutcome, ...]
    total: int
    cancelled: bool = False
    skipped_jobs: Tuple[ResizeJob, ...] = ()
    elapsed_seconds: float = 0.0

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    def outcomes_in_input_order(self) -> list[ResizeOutcome]:
        return sort_by_input_order(self.outcomes)

    def failures(self) -> list[ResizeOutcome]:
        return [outcome for outcome in self.outcomes_in_input_order() if not outcome.ok]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "skipped": [str(job.source_path) for job in self.skipped_jobs],
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes_in_input_order()],
        }


def sort_by_input_order(outcomes: Iterable[ResizeOutcome]) -> list[ResizeOutcome]:
    return sorted(outcomes, key=lambda outcome: outcome.job.index)


class BatchRunner:
    """リサイズジョブをワーカースレッドへ振り分けるオーケストレーター。

    各ジョブは独立しており、1件の失敗がバッチを止めることはない。
    `cancel()` 後は未着手のジョブだけを飛ばし、実行中のジョブは最後まで処理する。
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        options: Optional[EncodeOptions] = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"ワーカー数は1以上で指定してください: {max_workers}")
        self.max_workers = max_workers or default_worker_count()
        self.options = options or EncodeOptions()
        self.progress = BatchProgress()
        self._cancel_event = threading.Event()
        self._skipped: list[ResizeJob] = []

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def reset(self) -> None:
        """キャンセル状態を解除して、同じランナーで次のバッチを流せるようにする。"""
        self._cancel_event.clear()
        self._skipped = []

    def cancel(self) -> None:
        """未着手のジョブを中止する。実行前に呼ばれた場合は全ジョブを飛ばす。"""
        if not self._cancel_event.is_set():
            logger.info("バッチのキャンセルが要求されました")
        self._cancel_event.set()
        self.progress.mark_cancelled()

    def iter_outcomes(
        self,
        jobs: Iterable[ResizeJob],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Iterator[ResizeOutcome]:
        """完了したジョブから順に結果を返すストリーム。

        progress_callback(processed_count, total_count) は結果を1件受け取るたびに
        呼び出し側のスレッドで実行される。
        """
        job_list = list(jobs)
        total = len(job_list)
        self._skipped = []
        self.progress.start(total)
        if self._cancel_event.is_set():
            self.progress.mark_cancelled()
        if not job_list:
            self.progress.finish()
            return

        workers = min(self.max_workers, total)
        logger.debug(f"バッチ開始: {total}件 / ワーカー{workers}")
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="batch-resizer")
        try:
            futures = {executor.submit(self._run_job, job): job for job in job_list}
            for future in as_completed(futures):
                outcome = future.result()
                if outcome is None:
                    self._skipped.append(futures[future])
                    self.progress.record_skipped()
                    continue
                self.progress.record(outcome.ok)
                if progress_callback is not None:
                    progress_callback(self.progress.processed, total)
                yield outcome
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
            self.progress.finish()

    def run(
        self,
        jobs: Iterable[ResizeJob],
        progress_callback: Optional[ProgressCallback] = None,
        on_outcome: Optional[Callable[[ResizeOutcome], None]] = None,
    ) -> BatchReport:
        """全ジョブを処理して BatchReport を返す。

        on_outcome は結果を1件受け取るたびに完了順で呼ばれる。
        """
        job_list = list(jobs)
        started = time.perf_counter()
        collected: list[ResizeOutcome] = []
        for outcome in self.iter_outcomes(job_list, progress_callback):
            collected.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)
        outcomes = tuple(collected)
        report = BatchReport(
            outcomes=outcomes,
            total=len(job_list),
            cancelled=self.cancelled,
            skipped_jobs=tuple(sorted(self._skipped, key=lambda job: job.index)),
            elapsed_seconds=time.perf_counter() - started,
        )
        logger.info(
            f"バッチ完了: 成功 {report.succeeded} / 失敗 {report.failed} / 全{report.total}件"
            + (f" (キャンセル: {len(report.skipped_jobs)}件未処理)" if report.cancelled else "")
        )
        return report

    def _run_job(self, job: ResizeJob) -> Optional[ResizeOutcome]:
        if self._cancel_event.is_set():
            return None
        return resize_one(job, self.options)


def run_batch(
    jobs: Iterable[ResizeJob],
    *,
    max_workers: Optional[int] = None,
    options: Optional[EncodeOptions] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> BatchReport:
    """BatchRunner を1回だけ使う場合のショートカット。"""
    return BatchRunner(max_workers=max_workers, options=options).run(jobs, progress_callback)

