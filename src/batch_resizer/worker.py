"""1ジョブ分のリサイズ処理。

読み込み → サイズ計算 → リサンプリング → メモリ上でエンコード → 一時ファイル経由で保存、
の順に処理し、結果を ResizeOutcome として返す。1ファイルの失敗は例外にせず
ResizeFailure として返すので、バッチ側は個々のエラーを気にせず集計できる。
"""

from __future__ import annotations

import io
import os
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from loguru import logger
from PIL import Image, UnidentifiedImageError

from batch_resizer.dimensions import calculate_output_size
from batch_resizer.errors import (
    OutputWriteError,
    ResizeError,
    SourceReadError,
    UnsupportedFormat,
    describe_error,
)
from batch_resizer.formats import SUPPORTED_FORMATS, format_for_path
from batch_resizer.models import EncodeOptions, ResizeFailure, ResizeJob, ResizeOutcome, ResizeSuccess

RESAMPLE_FILTER = Image.Resampling.LANCZOS

_EXIF_FORMATS = {"JPEG", "PNG", "WEBP", "TIFF"}


def resize_one(job: ResizeJob, options: Optional[EncodeOptions] = None) -> ResizeOutcome:
    """ジョブを1件処理する。ファイル単位のエラーは例外ではなく結果で返す。"""
    opts = options or EncodeOptions()
    started = time.perf_counter()
    try:
        result = _process(job, opts)
    except ResizeError as e:
        logger.warning(f"{job.source_path.name}: [{e.kind.value}] {describe_error(e)}")
        result = ResizeFailure(error_kind=e.kind, message=describe_error(e))
    except Exception as e:
        # デコーダ/エンコーダ内部の想定外エラーもこのジョブだけの失敗として扱う
        logger.exception(f"{job.source_path.name}: 想定外のエラー")
        result = ResizeFailure(error_kind=UnsupportedFormat.kind, message=describe_error(e))
    elapsed = time.perf_counter() - started
    return ResizeOutcome(job=job, result=result, elapsed_seconds=elapsed)


def _process(job: ResizeJob, options: EncodeOptions) -> ResizeSuccess:
    img, fmt = _open_source(job.source_path)
    with img:
        source_size = img.size
        new_size = calculate_output_size(source_size, job.target.size, job.target.maintain_aspect_ratio)
        exif = img.info.get("exif") if options.keep_exif and fmt in _EXIF_FORMATS else None
        resized = resize_image(img, new_size)

    data = encode_image(resized, fmt, quality=options.quality, exif=exif)
    if options.dry_run:
        logger.debug(f"ドライラン: {job.output_path.name} ({new_size[0]}x{new_size[1]})")
    else:
        write_atomically(data, job.output_path)
        logger.debug(f"保存しました: {job.output_path} ({new_size[0]}x{new_size[1]}, {len(data)} bytes)")

    return ResizeSuccess(
        output_path=job.output_path,
        width=new_size[0],
        height=new_size[1],
        source_size=source_size,
        output_bytes=len(data),
        dry_run=options.dry_run,
    )


def _open_source(path: Path) -> Tuple[Image.Image, str]:
    """画像を開いて画素を読み込み、保存に使う形式名と一緒に返す。"""
    try:
        img = Image.open(path)
    except UnidentifiedImageError as e:
        raise UnsupportedFormat(f"画像形式を判別できません: {path.name}", cause=e) from e
    except Image.DecompressionBombError as e:
        raise SourceReadError(f"画像が大きすぎます: {path.name}", cause=e) from e
    except OSError as e:
        raise SourceReadError(f"画像を読み込めません: {path}", cause=e) from e

    detected = img.format or ""
    fmt = format_for_path(path) or detected.upper()
    if fmt not in SUPPORTED_FORMATS:
        img.close()
        raise UnsupportedFormat(f"未対応の画像形式です: {path.name} ({detected or '不明'})")

    try:
        img.load()
    except Image.DecompressionBombError as e:
        img.close()
        raise SourceReadError(f"画像が大きすぎます: {path.name}", cause=e) from e
    except (OSError, ValueError, SyntaxError) as e:
        # 切り詰められたファイルや壊れたデータ
        img.close()
        raise UnsupportedFormat(f"画像をデコードできません: {path.name}", cause=e) from e
    return img, fmt


def resize_image(img: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Lanczos でリサンプリングした新しい画像を返す。"""
    source = img
    if source.mode in ("P", "1"):
        # パレット画像のままだと最近傍補間になるため展開してから縮小する
        has_alpha = source.mode == "P" and "transparency" in source.info
        source = source.convert("RGBA" if has_alpha else "RGB")
    elif source.mode == "CMYK":
        source = source.convert("RGB")
    if source.size == size:
        return source.copy()
    return source.resize(size, RESAMPLE_FILTER)


def build_encoder_save_kwargs(fmt: str, quality: int) -> Dict[str, Any]:
    """出力形式に応じたエンコーダ設定を返す。"""
    if fmt == "JPEG":
        return {
            "format": "JPEG",
            "quality": min(quality, 95),
            "optimize": True,
            "progressive": True,
        }
    if fmt == "PNG":
        # PNGはロスレス。quality指定を圧縮レベルへ変換する。
        compress_level = int(round((100 - quality) / 100 * 9))
        return {"format": "PNG", "optimize": True, "compress_level": max(0, min(9, compress_level))}
    if fmt == "WEBP":
        return {"format": "WEBP", "quality": quality, "method": 6}
    return {"format": fmt}


def _prepare_for_format(img: Image.Image, fmt: str) -> Image.Image:
    if fmt == "JPEG" and img.mode in ("RGBA", "LA", "P"):
        # 透過を持つ画像は白背景へ合成して保存する
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        background.alpha_composite(rgba)
        return background.convert("RGB")
    if fmt == "JPEG" and img.mode not in ("RGB", "L"):
        return img.convert("RGB")
    if fmt == "BMP" and img.mode not in ("1", "L", "P", "RGB", "RGBA"):
        return img.convert("RGB")
    if fmt == "GIF" and img.mode not in ("L", "P", "RGB", "RGBA"):
        return img.convert("RGB")
    return img


def encode_image(
    img: Image.Image,
    fmt: str,
    *,
    quality: int = 90,
    exif: Optional[bytes] = None,
) -> bytes:
    """画像をメモリ上でエンコードしてバイト列を返す。

    EXIF付きで失敗した場合はメタデータなしで再試行する。
    """
    save_img = _prepare_for_format(img, fmt)
    save_kwargs = build_encoder_save_kwargs(fmt, quality)
    if exif:
        try:
            return _encode(save_img, {**save_kwargs, "exif": exif})
        except (OSError, ValueError, TypeError) as e:
            logger.debug(f"EXIF付き保存に失敗したためメタデータなしで再試行します: {e}")
    try:
        return _encode(save_img, save_kwargs)
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise UnsupportedFormat(f"{fmt}形式でエンコードできません", cause=e) from e


def _encode(img: Image.Image, save_kwargs: Dict[str, Any]) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, **save_kwargs)
    return buffer.getvalue()


def _build_temp_save_path(target_path: Path) -> Path:
    """同一ディレクトリ内の一時保存パスを作る。"""
    token = f"{os.getpid()}_{time.time_ns()}_{uuid.uuid4().hex[:10]}"
    return target_path.with_name(f".{target_path.name}.{token}.tmp")


def write_atomically(data: bytes, final_path: Path) -> None:
    """一時ファイルへ書いてから置換し、壊れた最終ファイルを残さない。"""
    tmp_path = _build_temp_save_path(final_path)
    try:
        final_path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("wb") as fh:
            fh.write(data)
        os.replace(tmp_path, final_path)
    except OSError as e:
        raise OutputWriteError(f"保存に失敗しました: {final_path}", cause=e) from e
    finally:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                logger.warning(f"一時保存ファイルの削除に失敗: {tmp_path}")
