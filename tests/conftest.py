"""
pytest設定ファイル
共通のフィクスチャやテスト設定を定義
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Tuple

import pytest
from loguru import logger
from PIL import Image


@pytest.fixture(autouse=True)
def _reset_loguru_sinks():
    """テスト中に追加されたログシンク（ファイル含む）を後片付けする"""
    yield
    logger.remove()


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    path = tmp_path / "input"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture
def make_image(input_dir: Path) -> Callable[..., Path]:
    """指定サイズ・形式の画像を入力フォルダーに作るファクトリ"""

    def _make(
        name: str,
        size: Tuple[int, int] = (400, 300),
        *,
        mode: str = "RGB",
        color=(200, 40, 40),
        fmt: Optional[str] = None,
        **save_kwargs,
    ) -> Path:
        path = input_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        img = Image.new(mode, size, color=color)
        img.save(path, fmt, **save_kwargs)
        return path

    return _make


@pytest.fixture
def sample_images(make_image) -> dict:
    """様々なフォーマットのサンプル画像を作成するフィクスチャ"""
    return {
        "jpeg": make_image("sample.jpg", (1920, 1080), fmt="JPEG", quality=95),
        "png": make_image("sample.png", (1920, 1080), mode="RGBA", color=(0, 255, 0, 128), fmt="PNG"),
        "webp": make_image("sample.webp", (1920, 1080), color=(0, 0, 255), fmt="WEBP", quality=90),
        "gif": make_image("sample.gif", (800, 600), mode="P", color=0, fmt="GIF"),
        "bmp": make_image("sample.bmp", (640, 480), fmt="BMP"),
        "tiff": make_image("sample.tiff", (640, 480), fmt="TIFF"),
        "portrait": make_image("portrait.jpg", (1080, 1920), color=(255, 255, 0), fmt="JPEG"),
    }
