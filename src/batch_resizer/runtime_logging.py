"""loguru のシンク構成と、バッチ実行履歴の記録。

ログディレクトリには2種類のファイルを置く。

- ``batch_resizer.log``: 通常の診断ログ（10 MB でローテーション、7日保持）
- ``runs.jsonl``: 1バッチ1行の実行履歴（1 MB でローテーション、5世代保持）

履歴は ``logger.bind(run_history=True)`` 付きのレコードとして流し、
シンク側のフィルターで振り分ける。保持期間の管理は loguru に任せる。
"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Optional

from loguru import logger

from batch_resizer.app_dirs import LOGS, user_dir

if TYPE_CHECKING:
    from batch_resizer.batch import BatchReport

LOG_DIR_ENV = "BATCH_RESIZER_LOG_DIR"
LOG_FILENAME = "batch_resizer.log"
HISTORY_FILENAME = "runs.jsonl"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{function}</cyan>: <white>{message}</white>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {module}:{function}:{line} - {message}"


def _is_history(record) -> bool:
    return bool(record["extra"].get("run_history"))


def _is_diagnostic(record) -> bool:
    return not _is_history(record)


def resolve_log_dir(env: Optional[Mapping[str, str]] = None, **dir_kwargs) -> Path:
    """ログディレクトリを返す。環境変数 BATCH_RESIZER_LOG_DIR があればそちらを優先する。"""
    env = os.environ if env is None else env
    override = env.get(LOG_DIR_ENV)
    if override:
        return Path(override)
    return user_dir(LOGS, env=env, **dir_kwargs)


def setup_logging(
    console_level: str = "INFO",
    log_dir: Optional[Path] = None,
    file_level: str = "DEBUG",
) -> None:
    """loguru のシンクを設定する。

    log_dir が None のときは標準エラーだけに出力し、実行履歴も残さない。
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, colorize=True, level=console_level, filter=_is_diagnostic)
    if log_dir is None:
        return

    logger.add(
        str(log_dir / LOG_FILENAME),
        format=FILE_FORMAT,
        level=file_level,
        filter=_is_diagnostic,
        rotation="10 MB",
        retention="7 days",
        encoding="utf-8",
    )
    logger.add(
        str(log_dir / HISTORY_FILENAME),
        format="{message}",
        level="INFO",
        filter=_is_history,
        rotation="1 MB",
        retention=5,
        encoding="utf-8",
    )


def build_run_record(report: "BatchReport", *, now: Optional[datetime] = None, **context: Any) -> dict[str, Any]:
    """BatchReport から実行履歴1行分の辞書を作る。

    成功したファイルの一覧は持たず、件数と失敗の内訳だけを残す。
    context には frontend や出力先など呼び出し側の情報を入れる。
    """
    return {
        "run_at": (now or datetime.now()).isoformat(timespec="seconds"),
        **{key: str(value) if isinstance(value, Path) else value for key, value in context.items()},
        "total": report.total,
        "succeeded": report.succeeded,
        "failed": report.failed,
        "cancelled": report.cancelled,
        "skipped": len(report.skipped_jobs),
        "elapsed_seconds": round(report.elapsed_seconds, 3),
        "failures": [
            {
                "index": outcome.job.index,
                "file": str(outcome.job.source_path),
                "error_kind": outcome.result.error_kind.value,
            }
            for outcome in report.failures()
        ],
    }


def record_run_summary(report: "BatchReport", *, now: Optional[datetime] = None, **context: Any) -> dict[str, Any]:
    """実行履歴を runs.jsonl へ1行追記し、その内容を返す。"""
    record = build_run_record(report, now=now, **context)
    logger.bind(run_history=True).info(json.dumps(record, ensure_ascii=False))
    return record
