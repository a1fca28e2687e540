from __future__ import annotations

import json
from pathlib import Path

import pytest
from loguru import logger
from PIL import Image

from batch_resizer.cli import _build_arg_parser, _build_cli_summary, _write_failures_file, main
from batch_resizer.models import EncodeOptions, ResizeTarget
from batch_resizer.runtime_logging import HISTORY_FILENAME, LOG_DIR_ENV


@pytest.fixture(autouse=True)
def log_dir(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "logs"
    monkeypatch.setenv(LOG_DIR_ENV, str(path))
    return path


def test_cli_parser_accepts_options() -> None:
    args = _build_arg_parser().parse_args(
        ["a.jpg", "b", "-o", "out", "--size", "800x600", "--ignore-aspect", "-j", "2", "--json", "-vv"]
    )
    assert args.inputs == ["a.jpg", "b"]
    assert args.size == "800x600"
    assert args.ignore_aspect is True
    assert args.workers == 2
    assert args.json is True
    assert args.verbose == 2
    assert args.recursive is False


def test_preset_and_size_are_mutually_exclusive() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["a.jpg", "-o", "out", "--preset", "Thumbnail", "--size", "10x10"])
    assert exc_info.value.code == 2


def test_missing_output_is_usage_error() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["a.jpg", "--preset", "Thumbnail"])
    assert exc_info.value.code == 2


def test_list_presets(capsys) -> None:
    assert main(["--list-presets"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 11
    assert lines[2].startswith("Instagram Square (1080x1080)")


def test_json_summary_reports_failures(make_image, input_dir: Path, output_dir: Path, log_dir: Path, capsys) -> None:
    make_image("a.jpg", (400, 200), fmt="JPEG")
    make_image("b.png", (200, 400), fmt="PNG")
    missing = input_dir / "missing.jpg"

    code = main(
        [
            str(input_dir / "a.jpg"),
            str(input_dir / "b.png"),
            str(missing),
            "-o",
            str(output_dir),
            "--size",
            "100x100",
            "--json",
        ]
    )

    assert code == 1
    summary = json.loads(capsys.readouterr().out)
    assert summary["status"] == "partial_failure"
    assert summary["total_files"] == 3
    assert summary["processed_count"] == 2
    assert summary["failed_count"] == 1
    assert summary["failed_files"] == [
        {
            "index": 2,
            "file": str(missing),
            "error_kind": "SourceReadError",
            "error": summary["failed_files"][0]["error"],
        }
    ]
    assert summary["options"]["width"] == 100
    assert summary["options"]["maintain_aspect_ratio"] is True
    assert (output_dir / "a_resized_100x50.jpg").exists()
    assert (output_dir / "b_resized_50x100.png").exists()
    logger.remove()
    history = (log_dir / HISTORY_FILENAME).read_text(encoding="utf-8").splitlines()
    assert len(history) == 1
    record = json.loads(history[0])
    assert record["frontend"] == "cli"
    assert record["status"] == "partial_failure"
    assert record["failures"] == [{"index": 2, "file": str(missing), "error_kind": "SourceReadError"}]


def test_missing_input_keeps_its_argument_position(make_image, input_dir: Path, output_dir: Path, capsys) -> None:
    make_image("a.jpg", (400, 200), fmt="JPEG")
    make_image("b.jpg", (200, 400), fmt="JPEG")
    missing = input_dir / "missing.jpg"

    code = main(
        [
            str(input_dir / "a.jpg"),
            str(missing),
            str(input_dir / "b.jpg"),
            "-o",
            str(output_dir),
            "--size",
            "100x100",
            "--json",
        ]
    )

    assert code == 1
    summary = json.loads(capsys.readouterr().out)
    assert summary["total_files"] == 3
    assert [(entry["index"], entry["file"]) for entry in summary["failed_files"]] == [(1, str(missing))]


def test_ignore_aspect_with_preset_is_usage_error() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["a.jpg", "-o", "out", "--preset", "Thumbnail", "--ignore-aspect"])
    assert exc_info.value.code == 2


def test_folder_input_with_preset_succeeds(make_image, input_dir: Path, output_dir: Path, capsys) -> None:
    make_image("a.jpg", (1600, 1600), fmt="JPEG")
    make_image("sub/b.webp", (1600, 800), fmt="WEBP")

    code = main([str(input_dir), "-o", str(output_dir), "--preset", "Thumbnail", "--recursive", "--json"])

    assert code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["status"] == "success"
    assert summary["options"]["target"] == "Thumbnail"
    with Image.open(output_dir / "b_resized_150x75.webp") as img:
        assert img.size == (150, 75)
    assert (output_dir / "a_resized_150x150.jpg").exists()


def test_dry_run_writes_no_images(make_image, input_dir: Path, output_dir: Path) -> None:
    make_image("a.jpg", fmt="JPEG")

    code = main([str(input_dir), "-o", str(output_dir), "--size", "50x50", "--dry-run"])

    assert code == 0
    assert list(output_dir.iterdir()) == []


def test_unknown_preset_exits_before_any_work(make_image, input_dir: Path, output_dir: Path) -> None:
    make_image("a.jpg", fmt="JPEG")

    assert main([str(input_dir), "-o", str(output_dir), "--preset", "Poster"]) == 2
    assert not output_dir.exists()


@pytest.mark.parametrize("extra", [["--size", "abc"], ["--size", "0x10"], ["--size", "10x10", "-q", "0"], ["--size", "10x10", "-j", "0"]])
def test_invalid_options_exit_with_usage_code(make_image, input_dir: Path, output_dir: Path, extra) -> None:
    make_image("a.jpg", fmt="JPEG")

    assert main([str(input_dir), "-o", str(output_dir), *extra]) == 2


def test_empty_folder_is_not_an_error(input_dir: Path, output_dir: Path, capsys) -> None:
    assert main([str(input_dir), "-o", str(output_dir), "--size", "10x10", "--json"]) == 0
    assert json.loads(capsys.readouterr().out)["status"] == "no_images"


def test_failures_file_is_written(make_image, input_dir: Path, output_dir: Path, tmp_path: Path) -> None:
    broken = input_dir / "broken.jpg"
    broken.write_bytes(b"not an image")
    failures = tmp_path / "reports" / "failures.json"

    code = main([str(broken), "-o", str(output_dir), "--size", "10x10", "--failures-file", str(failures)])

    assert code == 1
    payload = json.loads(failures.read_text(encoding="utf-8"))
    assert payload["failed_count"] == 1
    assert payload["failed_files"][0]["error_kind"] == "UnsupportedFormat"


def test_build_cli_summary_shape() -> None:
    summary = _build_cli_summary(
        status="success",
        inputs=[Path("input")],
        output_dir=Path("output"),
        target=ResizeTarget(800, 600, True, label="Small Web"),
        options=EncodeOptions(quality=80),
        workers=4,
        recursive=True,
        report=None,
        failures_file="",
        message="ok",
    )

    assert summary["status"] == "success"
    assert summary["inputs"] == ["input"]
    assert summary["output"] == "output"
    assert summary["options"]["target"] == "Small Web"
    assert summary["options"]["quality"] == 80
    assert summary["options"]["workers"] == 4
    assert summary["total_files"] == 0
    assert summary["failed_files"] == []


def test_write_failures_file(tmp_path: Path) -> None:
    out = tmp_path / "logs" / "failures.json"
    _write_failures_file(
        out,
        output_dir=tmp_path / "output",
        failed_files=[{"index": 0, "file": "a.jpg", "error_kind": "UnsupportedFormat", "error": "broken"}],
    )

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["failed_count"] == 1
    assert payload["failed_files"][0]["file"] == "a.jpg"
