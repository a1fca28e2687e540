"""
入力値検証のためのユーティリティモジュール
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Tuple, Union

from batch_resizer.errors import InvalidResizeSpec
from batch_resizer.models import CustomSpec


class PathValidator:
    """パス検証クラス"""

    @classmethod
    def validate_output_dir(cls, path_str: str) -> Path:
        """出力先として使えるパスかを検証（存在しなければ作成対象）"""
        if not path_str or not path_str.strip():
            raise ValueError("出力先フォルダが指定されていません")
        path = Path(path_str.strip()).expanduser()
        if path.exists() and not path.is_dir():
            raise ValueError(f"出力先がフォルダではありません: {path}")
        return path


class ValueValidator:
    """数値検証クラス"""

    LIMITS = {
        "width": (1, 20000),
        "height": (1, 20000),
        "quality": (1, 100),
        "workers": (1, 64),
    }

    _SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*[x×X*]\s*(\d+)\s*$")

    @classmethod
    def validate_int(cls, value: Union[int, float, str], mode: str, name: str = "値") -> int:
        """整数値を検証"""
        if isinstance(value, bool):
            raise ValueError(f"{name}は整数を入力してください")
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError(f"{name}が入力されていません")
            try:
                value = int(value)
            except ValueError:
                raise ValueError(f"{name}は整数を入力してください") from None

        if isinstance(value, float):
            if value != value or not value.is_integer():  # NaN check
                raise ValueError(f"{name}は整数を入力してください")
            value = int(value)

        if not isinstance(value, int):
            raise ValueError(f"{name}は整数を入力してください")

        min_val, max_val = cls.LIMITS.get(mode, (1, 20000))
        if not min_val <= value <= max_val:
            raise ValueError(f"{name}は{min_val}から{max_val}の範囲で入力してください")
        return value

    @classmethod
    def validate_quality(cls, value: Union[int, str]) -> int:
        """品質値を検証"""
        return cls.validate_int(value, "quality", "品質")

    @classmethod
    def validate_workers(cls, value: Union[int, str]) -> int:
        return cls.validate_int(value, "workers", "ワーカー数")

    @classmethod
    def parse_size(cls, text: str) -> Tuple[int, int]:
        """`800x600` 形式の文字列を (幅, 高さ) に変換"""
        match = cls._SIZE_PATTERN.match(text or "")
        if not match:
            raise ValueError(f"サイズは 幅x高さ の形式で入力してください: {text!r}")
        width = cls.validate_int(match.group(1), "width", "幅")
        height = cls.validate_int(match.group(2), "height", "高さ")
        return width, height

    @classmethod
    def build_custom_spec(
        cls,
        width: Union[int, str],
        height: Union[int, str],
        maintain_aspect_ratio: bool,
    ) -> CustomSpec:
        """入力欄の値からカスタム指定を作る。不正なら InvalidResizeSpec。"""
        try:
            w = cls.validate_int(width, "width", "幅")
            h = cls.validate_int(height, "height", "高さ")
        except ValueError as e:
            raise InvalidResizeSpec(str(e)) from e
        return CustomSpec(width=w, height=h, maintain_aspect_ratio=maintain_aspect_ratio)
