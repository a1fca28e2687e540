"""GUI設定の永続化ストア。"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from loguru import logger

from batch_resizer.app_dirs import CONFIG, user_dir
from batch_resizer.worker import write_atomically

SCHEMA_VERSION = 1
SETTINGS_FILENAME = "settings.json"

MODE_PRESET = "preset"
MODE_CUSTOM = "custom"


@dataclass
class GuiSettings:
    """ウィンドウを閉じても残したい入力値。

    エントリーの値は入力途中の文字列のまま持ち、検証は実行時に行う。
    """
    mode: str = MODE_PRESET
    preset_name: str = ""
    custom_width: str = "800"
    custom_height: str = "600"
    maintain_aspect_ratio: bool = True
    quality: str = "90"
    workers: str = ""
    keep_exif: bool = True
    dry_run: bool = False
    window_geometry: str = "900x640"
    last_input_dir: str = ""
    last_output_dir: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GuiSettings":
        """保存済みの辞書から復元する。未知のキーは捨て、型の合わない値は既定値に戻す。"""
        defaults = cls()
        values: dict[str, Any] = {}
        for field in fields(cls):
            if field.name not in data:
                continue
            value = data[field.name]
            default = getattr(defaults, field.name)
            if isinstance(default, bool):
                if isinstance(value, bool):
                    values[field.name] = value
            elif isinstance(value, (str, int)) and not isinstance(value, bool):
                values[field.name] = str(value)
        settings = cls(**values)
        if settings.mode not in (MODE_PRESET, MODE_CUSTOM):
            settings.mode = MODE_PRESET
        return settings

    def to_dict(self) -> dict[str, Any]:
        return {"schema_version": SCHEMA_VERSION, **asdict(self)}


def default_settings_path() -> Path:
    return user_dir(CONFIG) / SETTINGS_FILENAME


class GuiSettingsStore:
    """GuiSettings を JSON ファイルとして読み書きする。"""

    def __init__(self, settings_path: Optional[Path] = None) -> None:
        self.settings_path = settings_path or default_settings_path()

    def load(self) -> GuiSettings:
        """設定を読み込む。ファイルが無い・壊れている場合は既定値を返す。"""
        if not self.settings_path.exists():
            return GuiSettings()
        try:
            data = json.loads(self.settings_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"設定ファイルを読み込めないため既定値を使います: {self.settings_path} ({e})")
            return GuiSettings()
        if not isinstance(data, dict):
            logger.warning(f"設定ファイルの形式が不正なため既定値を使います: {self.settings_path}")
            return GuiSettings()
        return GuiSettings.from_mapping(data)

    def save(self, settings: GuiSettings) -> None:
        """設定をアトミックに保存する。失敗時は OutputWriteError を送出する。"""
        payload = json.dumps(settings.to_dict(), ensure_ascii=False, indent=2)
        write_atomically(payload.encode("utf-8"), self.settings_path)
