"""対応する画像形式と拡張子の対応表。"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

# 拡張子（小文字）→ Pillow のフォーマット名
EXTENSION_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".gif": "GIF",
    ".bmp": "BMP",
    ".tif": "TIFF",
    ".tiff": "TIFF",
    ".webp": "WEBP",
}

SUPPORTED_FORMATS = frozenset(EXTENSION_FORMATS.values())


def supported_extensions() -> list[str]:
    return list(EXTENSION_FORMATS)


def format_for_path(path: Union[str, Path]) -> Optional[str]:
    """拡張子から保存形式を返す。未対応なら None。"""
    return EXTENSION_FORMATS.get(Path(path).suffix.lower())
