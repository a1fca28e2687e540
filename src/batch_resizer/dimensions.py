"""出力サイズの計算。

元画像のサイズと目標サイズ、アスペクト比の扱いから最終的な出力サイズを求める。
ここは純粋関数のみで、画像の読み込みは行わない。
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from batch_resizer.errors import InvalidImageDimensions, InvalidResizeSpec
from batch_resizer.models import CustomSpec, PresetSpec, ResizeSpec, ResizeTarget
from batch_resizer.presets import PresetCatalog, default_catalog

Size = Tuple[int, int]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_output_size(
    source_size: Size,
    target_size: Size,
    maintain_aspect_ratio: bool,
) -> Size:
    """元サイズと目標サイズから出力サイズを返す。

    Args:
        source_size: 元画像の (幅, 高さ)
        target_size: 目標の (幅, 高さ)。アスペクト比維持時は外接枠として扱う
        maintain_aspect_ratio: True なら枠に収まるよう等倍率で拡縮する

    Returns:
        Size: 出力の (幅, 高さ)。どちらも1以上

    Raises:
        InvalidImageDimensions: 元画像の幅または高さが0以下の場合
    """
    source_width, source_height = source_size
    target_width, target_height = target_size
    if source_width <= 0 or source_height <= 0:
        raise InvalidImageDimensions(
            f"画像サイズが不正です: {source_width}x{source_height}"
        )
    if target_width <= 0 or target_height <= 0:
        raise InvalidImageDimensions(
            f"目標サイズが不正です: {target_width}x{target_height}"
        )

    if not maintain_aspect_ratio:
        return target_width, target_height

    factor = min(target_width / source_width, target_height / source_height)
    width = _round_half_up(source_width * factor)
    height = _round_half_up(source_height * factor)
    # 極端に細長い画像でも0pxにはしない
    width = max(1, min(target_width, width))
    height = max(1, min(target_height, height))
    return width, height


def resolve_target(spec: ResizeSpec, catalog: Optional[PresetCatalog] = None) -> ResizeTarget:
    """サイズ指定を目標サイズへ解決する。

    プリセット名が見つからない場合は UnknownPreset を送出する。
    """
    if isinstance(spec, CustomSpec):
        return ResizeTarget(
            width=spec.width,
            height=spec.height,
            maintain_aspect_ratio=spec.maintain_aspect_ratio,
        )
    if isinstance(spec, PresetSpec):
        preset = (catalog if catalog is not None else default_catalog())[spec.name]
        return ResizeTarget(
            width=preset.width,
            height=preset.height,
            maintain_aspect_ratio=preset.maintain_aspect_ratio,
            label=preset.name,
        )
    raise InvalidResizeSpec(f"不明なサイズ指定です: {spec!r}")
