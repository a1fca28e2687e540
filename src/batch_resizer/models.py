"""
リサイズ処理のデータモデル
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from batch_resizer.errors import ErrorKind, InvalidResizeSpec


@dataclass(frozen=True)
class PresetSpec:
    """名前でプリセットを指定するサイズ指定"""
    name: str


@dataclass(frozen=True)
class CustomSpec:
    """幅・高さを直接指定するサイズ指定"""
    width: int
    height: int
    maintain_aspect_ratio: bool = True

    def __post_init__(self) -> None:
        for label, value in (("幅", self.width), ("高さ", self.height)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidResizeSpec(f"{label}は整数で指定してください: {value!r}")
            if value <= 0:
                raise InvalidResizeSpec(f"{label}は1以上で指定してください: {value}")


ResizeSpec = Union[PresetSpec, CustomSpec]


@dataclass(frozen=True)
class ResizeTarget:
    """サイズ指定を解決した結果（目標サイズとアスペクト比の扱い）"""
    width: int
    height: int
    maintain_aspect_ratio: bool
    label: str = "Custom"

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class EncodeOptions:
    """バッチ内の全ジョブで共通の保存設定"""
    quality: int = 90
    keep_exif: bool = True
    dry_run: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.quality <= 100:
            raise ValueError(f"品質は1から100の範囲で指定してください: {self.quality}")


@dataclass(frozen=True)
class ResizeJob:
    """1枚の画像を1つの出力ファイルへ変換するジョブ"""
    index: int
    source_path: Path
    output_path: Path
    spec: ResizeSpec
    target: ResizeTarget


@dataclass(frozen=True)
class ResizeSuccess:
    output_path: Path
    width: int
    height: int
    source_size: Optional[Tuple[int, int]] = None
    output_bytes: int = 0
    dry_run: bool = False


@dataclass(frozen=True)
class ResizeFailure:
    error_kind: ErrorKind
    message: str


@dataclass(frozen=True)
class ResizeOutcome:
    """ジョブ1件の処理結果"""
    job: ResizeJob
    result: Union[ResizeSuccess, ResizeFailure]
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return isinstance(self.result, ResizeSuccess)

    def to_dict(self) -> dict:
        """辞書形式に変換"""
        payload = {
            "index": self.job.index,
            "source_path": str(self.job.source_path),
            "output_path": str(self.job.output_path),
            "success": self.ok,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }
        if isinstance(self.result, ResizeSuccess):
            payload["width"] = self.result.width
            payload["height"] = self.result.height
            payload["dry_run"] = self.result.dry_run
        else:
            payload["error_kind"] = self.result.error_kind.value
            payload["error"] = self.result.message
        return payload
