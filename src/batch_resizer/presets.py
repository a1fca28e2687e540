"""組み込みサイズプリセットと読み取り専用カタログ。"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Tuple

from batch_resizer.errors import UnknownPreset


@dataclass(frozen=True)
class Preset:
    name: str
    width: int
    height: int
    maintain_aspect_ratio: bool

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("プリセット名が空です")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"プリセットのサイズが不正です: {self.name} {self.width}x{self.height}")

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


BUILTIN_PRESETS: Tuple[Preset, ...] = (
    Preset("340×570", 340, 570, True),
    Preset("1040×570", 1040, 570, True),
    Preset("Instagram Square", 1080, 1080, True),
    Preset("Instagram Story", 1080, 1920, False),
    Preset("Facebook Cover", 820, 312, False),
    Preset("Twitter Header", 1500, 500, False),
    Preset("YouTube Thumbnail", 1280, 720, False),
    Preset("HD 1080p", 1920, 1080, True),
    Preset("HD 720p", 1280, 720, True),
    Preset("Small Web", 800, 600, True),
    Preset("Thumbnail", 150, 150, True),
)


class PresetCatalog(Mapping[str, Preset]):
    """名前でプリセットを引く読み取り専用マッピング。

    生成後は変更できない。起動時に一度作り、列挙処理へ参照で渡す。
    """

    def __init__(self, presets: Iterable[Preset]) -> None:
        table: dict[str, Preset] = {}
        for preset in presets:
            if preset.name in table:
                raise ValueError(f"プリセット名が重複しています: {preset.name}")
            table[preset.name] = preset
        self._table = MappingProxyType(table)

    def __getitem__(self, name: str) -> Preset:
        try:
            return self._table[name]
        except KeyError:
            raise UnknownPreset(name) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def get(self, name: str, default: Optional[Preset] = None) -> Optional[Preset]:
        return self._table.get(name, default)

    def names(self) -> list[str]:
        """定義順のプリセット名一覧。"""
        return list(self._table)

    @property
    def default(self) -> Preset:
        return next(iter(self._table.values()))


def default_catalog() -> PresetCatalog:
    """組み込みプリセットのカタログを作る。"""
    return PresetCatalog(BUILTIN_PRESETS)
