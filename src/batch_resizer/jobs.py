"""選択された画像パスからリサイズジョブを組み立てる。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple, Union

from loguru import logger
from PIL import Image

from batch_resizer.dimensions import Size, calculate_output_size, resolve_target
from batch_resizer.errors import InvalidImageDimensions, OutputWriteError
from batch_resizer.formats import EXTENSION_FORMATS
from batch_resizer.models import ResizeJob, ResizeSpec
from batch_resizer.presets import PresetCatalog

OUTPUT_INFIX = "_resized_"

PathLike = Union[str, Path]


def build_output_path(source_path: PathLike, output_dir: PathLike, size: Size) -> Path:
    """`{stem}_resized_{w}x{h}.{ext}` 形式の出力パスを返す。

    拡張子の大文字・小文字は元ファイルのまま残す。
    """
    source = Path(source_path)
    width, height = size
    return Path(output_dir) / f"{source.stem}{OUTPUT_INFIX}{width}x{height}{source.suffix}"


def read_native_size(path: PathLike) -> Optional[Size]:
    """画像ヘッダーだけを読んで元サイズを返す。読めなければ None。"""
    try:
        with Image.open(path) as img:
            return img.size
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug(f"ヘッダーを読めませんでした: {path} ({e})")
        return None


def ensure_output_dir(output_dir: PathLike) -> Path:
    """出力先ディレクトリを用意する。作れなければ OutputWriteError。"""
    directory = Path(output_dir)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(f"出力先フォルダを作成できません: {directory}", cause=e) from e
    if not directory.is_dir():
        raise OutputWriteError(f"出力先がフォルダではありません: {directory}")
    return directory


def enumerate_jobs(
    source_paths: Sequence[PathLike],
    output_dir: PathLike,
    spec: ResizeSpec,
    catalog: Optional[PresetCatalog] = None,
) -> list[ResizeJob]:
    """入力パス列・出力先・サイズ指定からジョブ一覧を作る。

    サイズ指定の解決（不明プリセット等）はジョブを1件も作る前に行い、
    失敗すればバッチ全体を中止する。重複パスはそれぞれ別ジョブになり、
    出力パスが衝突した場合は後から実行されたジョブが上書きする。

    Args:
        source_paths: 入力画像パス（空は不可）
        output_dir: 出力先ディレクトリ（無ければ作成する）
        spec: プリセットまたはカスタムのサイズ指定
        catalog: プリセットカタログ（省略時は組み込み）

    Returns:
        list[ResizeJob]: 入力順のジョブ
    """
    paths = [Path(p) for p in source_paths]
    if not paths:
        raise ValueError("入力画像が選択されていません")

    target = resolve_target(spec, catalog)
    directory = ensure_output_dir(output_dir)

    jobs: list[ResizeJob] = []
    for index, source_path in enumerate(paths):
        size = target.size
        native = read_native_size(source_path)
        if native is not None:
            try:
                size = calculate_output_size(native, target.size, target.maintain_aspect_ratio)
            except InvalidImageDimensions:
                logger.debug(f"元サイズが不正なため目標サイズで命名します: {source_path}")
        jobs.append(
            ResizeJob(
                index=index,
                source_path=source_path,
                output_path=build_output_path(source_path, directory, size),
                spec=spec,
                target=target,
            )
        )

    logger.debug(f"{len(jobs)}件のジョブを作成しました ({target.label} {target.width}x{target.height})")
    return jobs


def normalize_extensions(extensions: Union[str, Iterable[str], None]) -> list[str]:
    """`"jpg, .PNG"` のような指定を `[".jpg", ".png"]` へ正規化する。"""
    if extensions is None:
        return sorted(EXTENSION_FORMATS)
    if isinstance(extensions, str):
        extensions = extensions.split(",")
    normalized = set()
    for raw in extensions:
        ext = raw.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext}"
        normalized.add(ext)
    return sorted(normalized)


def discover_image_paths(
    inputs: Iterable[PathLike],
    *,
    recursive: bool = False,
    extensions: Optional[Iterable[str]] = None,
) -> Tuple[list[Path], list[Path]]:
    """ファイル・フォルダ混在の入力を画像パス列に展開する。

    ファイルはそのまま（拡張子を問わず）採用し、フォルダは対象拡張子の
    画像だけを名前順で展開する。

    Returns:
        (画像パス一覧, 存在しなかった入力の一覧)
    """
    allowed = set(normalize_extensions(extensions))
    found: list[Path] = []
    missing: list[Path] = []
    for raw in inputs:
        path = Path(raw)
        if path.is_dir():
            found.extend(_scan_directory(path, recursive=recursive, allowed=allowed))
        elif path.exists():
            found.append(path)
        else:
            missing.append(path)
    return found, missing


def _scan_directory(root: Path, *, recursive: bool, allowed: set[str]) -> list[Path]:
    candidates: list[Path] = []
    if recursive:
        for dirpath, _dirnames, filenames in os.walk(root):
            base = Path(dirpath)
            candidates.extend(base / name for name in filenames if Path(name).suffix.lower() in allowed)
    else:
        candidates.extend(
            child for child in root.iterdir() if child.is_file() and child.suffix.lower() in allowed
        )
    candidates.sort(key=lambda p: str(p).lower())
    return candidates
