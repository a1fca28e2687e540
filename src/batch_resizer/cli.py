"""コマンドラインからの一括リサイズ。"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Optional, Sequence

from loguru import logger
from tqdm import tqdm

from batch_resizer.batch import BatchReport, BatchRunner
from batch_resizer.errors import InvalidResizeSpec, ResizeError, describe_error
from batch_resizer.jobs import discover_image_paths, enumerate_jobs
from batch_resizer.models import CustomSpec, EncodeOptions, PresetSpec, ResizeOutcome, ResizeSpec, ResizeTarget
from batch_resizer.presets import default_catalog
from batch_resizer.runtime_logging import record_run_summary, resolve_log_dir, setup_logging
from batch_resizer.ui_text_presenter import build_failure_report_text, build_outcome_line, build_preset_label
from batch_resizer.validators import ValueValidator

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2


def _build_arg_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI use."""
    p = argparse.ArgumentParser(
        prog="batch-resizer",
        description="画像をプリセットまたは指定サイズへ一括リサイズするコマンドラインツール",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("inputs", nargs="*", metavar="INPUT", help="入力画像またはフォルダー")
    p.add_argument("-o", "--output", help="出力フォルダー (無ければ作成)")
    size_group = p.add_mutually_exclusive_group()
    size_group.add_argument("-p", "--preset", help="プリセット名 (--list-presets で一覧)")
    size_group.add_argument("-s", "--size", help="目標サイズ 幅x高さ (例: 800x600)")
    p.add_argument("--ignore-aspect", action="store_true", help="--size 指定時にアスペクト比を無視して引き伸ばす")
    p.add_argument("-j", "--workers", type=int, default=None, help="並列ワーカー数 (既定: CPUコア数)")
    p.add_argument("-q", "--quality", type=int, default=90, help="JPEG/WebP 品質 (1-100)")
    p.add_argument("--strip-exif", action="store_true", help="EXIFを保存しない")
    p.add_argument("-r", "--recursive", action="store_true", help="フォルダー入力をサブフォルダーまで探索")
    p.add_argument("--dry-run", action="store_true", help="ファイルを出力せずに処理をシミュレート")
    p.add_argument("--json", action="store_true", help="結果サマリーをJSONで標準出力へ出す")
    p.add_argument("--failures-file", default="", help="失敗一覧JSONの出力先")
    p.add_argument("--list-presets", action="store_true", help="プリセット一覧を表示して終了")
    p.add_argument("--verbose", "-v", action="count", default=0, help="詳細ログを増やす (重ね掛け可)")
    return p


def _console_level(verbose: int) -> str:
    if verbose >= 2:
        return "TRACE"
    if verbose == 1:
        return "DEBUG"
    return "INFO"


def _build_spec(args: argparse.Namespace) -> ResizeSpec:
    if args.preset:
        return PresetSpec(args.preset)
    try:
        width, height = ValueValidator.parse_size(args.size)
    except ValueError as e:
        raise InvalidResizeSpec(str(e)) from e
    return CustomSpec(width=width, height=height, maintain_aspect_ratio=not args.ignore_aspect)


def _failure_entry(outcome: ResizeOutcome) -> dict[str, Any]:
    data = outcome.to_dict()
    return {
        "index": data["index"],
        "file": data["source_path"],
        "error_kind": data["error_kind"],
        "error": data["error"],
    }


def _build_cli_summary(
    *,
    status: str,
    inputs: Sequence[Path],
    output_dir: Path,
    target: Optional[ResizeTarget],
    options: EncodeOptions,
    workers: int,
    recursive: bool,
    report: Optional[BatchReport],
    failures_file: str,
    message: str,
) -> dict[str, Any]:
    """CLI実行結果のJSONサマリーを作る。"""
    return {
        "status": status,
        "inputs": [str(path) for path in inputs],
        "output": str(output_dir),
        "options": {
            "target": target.label if target else "",
            "width": target.width if target else None,
            "height": target.height if target else None,
            "maintain_aspect_ratio": target.maintain_aspect_ratio if target else None,
            "quality": options.quality,
            "keep_exif": options.keep_exif,
            "dry_run": options.dry_run,
            "workers": workers,
            "recursive": recursive,
        },
        "total_files": report.total if report else 0,
        "processed_count": report.succeeded if report else 0,
        "failed_count": report.failed if report else 0,
        "cancelled": report.cancelled if report else False,
        "skipped_files": [str(job.source_path) for job in report.skipped_jobs] if report else [],
        "elapsed_seconds": round(report.elapsed_seconds, 3) if report else 0.0,
        "failed_files": [_failure_entry(outcome) for outcome in report.failures()] if report else [],
        "failures_file": failures_file,
        "message": message,
    }


def _write_failures_file(
    path: Path,
    *,
    output_dir: Path,
    failed_files: list[dict[str, Any]],
) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "output": str(output_dir),
        "failed_count": len(failed_files),
        "failed_files": failed_files,
    }
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)


def _print_presets() -> None:
    for preset in default_catalog().values():
        aspect = "維持" if preset.maintain_aspect_ratio else "無視"
        print(f"{build_preset_label(preset)}  アスペクト比: {aspect}")


def _prepare_log_dir() -> Optional[Path]:
    log_dir = resolve_log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"ログの保存先を用意できません: {describe_error(e)}")
        return None
    return log_dir


def _collect_source_paths(inputs: Sequence[Path], *, recursive: bool) -> list[Path]:
    """入力を指定順のまま画像パスへ展開する。存在しない入力も失敗として残すため含める。"""
    source_paths: list[Path] = []
    for path in inputs:
        found, missing = discover_image_paths([path], recursive=recursive)
        for missing_path in missing:
            logger.warning(f"入力が見つかりません: {missing_path}")
        source_paths.extend(found or missing)
    return source_paths


def _run_jobs(runner: BatchRunner, jobs: list, *, show_progress: bool) -> BatchReport:
    outcomes: list[ResizeOutcome] = []
    started = time.perf_counter()
    with tqdm(total=len(jobs), unit="枚", desc="リサイズ", disable=not show_progress) as bar:
        stream = runner.iter_outcomes(jobs)
        try:
            for outcome in stream:
                outcomes.append(outcome)
                bar.update(1)
                if outcome.ok:
                    logger.debug(build_outcome_line(outcome))
                else:
                    logger.error(build_outcome_line(outcome))
        except KeyboardInterrupt:
            runner.cancel()
            logger.warning("中断しました。実行中のジョブの完了を待っています")
        finally:
            stream.close()

    done = {outcome.job.index for outcome in outcomes}
    return BatchReport(
        outcomes=tuple(outcomes),
        total=len(jobs),
        cancelled=runner.cancelled,
        skipped_jobs=tuple(job for job in jobs if job.index not in done),
        elapsed_seconds=time.perf_counter() - started,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLIを実行して終了コードを返す。"""
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    if args.list_presets:
        _print_presets()
        return EXIT_OK
    if not args.inputs:
        parser.error("入力画像またはフォルダーを指定してください")
    if not args.output:
        parser.error("-o/--output で出力フォルダーを指定してください")
    if not (args.preset or args.size):
        parser.error("--preset か --size のどちらかを指定してください")
    if args.preset and args.ignore_aspect:
        parser.error("--ignore-aspect は --size と一緒に指定してください（プリセットのアスペクト比は固定です）")

    setup_logging(console_level=_console_level(args.verbose), log_dir=_prepare_log_dir())

    inputs = [Path(raw) for raw in args.inputs]
    output_dir = Path(args.output)
    try:
        spec = _build_spec(args)
        options = EncodeOptions(quality=args.quality, keep_exif=not args.strip_exif, dry_run=args.dry_run)
        runner = BatchRunner(max_workers=args.workers, options=options)
    except ValueError as e:
        logger.error(describe_error(e))
        return EXIT_USAGE

    source_paths = _collect_source_paths(inputs, recursive=args.recursive)
    if not source_paths:
        logger.warning("画像が見つかりませんでした")
        summary = _build_cli_summary(
            status="no_images",
            inputs=inputs,
            output_dir=output_dir,
            target=None,
            options=options,
            workers=runner.max_workers,
            recursive=args.recursive,
            report=None,
            failures_file="",
            message="画像が見つかりませんでした",
        )
        if args.json:
            print(json.dumps(summary, ensure_ascii=False, indent=2))
        return EXIT_OK

    try:
        jobs = enumerate_jobs(source_paths, output_dir, spec)
    except (ResizeError, ValueError) as e:
        logger.error(describe_error(e))
        return EXIT_USAGE

    target = jobs[0].target
    logger.info(
        f"{len(jobs)}件を処理します: {target.label} {target.width}x{target.height}"
        f" / ワーカー{min(runner.max_workers, len(jobs))}"
        + (" (ドライラン)" if options.dry_run else "")
    )
    report = _run_jobs(runner, jobs, show_progress=not args.json)

    failed_files = [_failure_entry(outcome) for outcome in report.failures()]
    failures_file = ""
    if args.failures_file and failed_files:
        failures_path = Path(args.failures_file)
        _write_failures_file(failures_path, output_dir=output_dir, failed_files=failed_files)
        failures_file = str(failures_path)

    if report.cancelled:
        status, message = "cancelled", f"キャンセルしました ({len(report.skipped_jobs)}件未処理)"
    elif report.failed:
        status, message = "partial_failure", f"{report.failed} 件の画像が失敗しました"
    else:
        status, message = "success", "すべての画像を処理しました"

    summary = _build_cli_summary(
        status=status,
        inputs=inputs,
        output_dir=output_dir,
        target=target,
        options=options,
        workers=runner.max_workers,
        recursive=args.recursive,
        report=report,
        failures_file=failures_file,
        message=message,
    )
    record_run_summary(report, frontend="cli", status=status, output=output_dir, dry_run=options.dry_run)

    if args.json:
        print(json.dumps(summary, ensure_ascii=False, indent=2))
    elif report.failed:
        logger.warning(
            build_failure_report_text(title="一括リサイズ", summary_text=message, outcomes=report.outcomes)
        )
    else:
        logger.success(message)

    if report.failed or report.cancelled:
        return EXIT_FAILURES
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
