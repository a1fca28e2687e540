"""設定ファイルやログを置くユーザーディレクトリの解決。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

LOGS = "logs"
CONFIG = "config"

_WINDOWS_DIR_NAME = "BatchResizer"
_POSIX_DIR_NAME = "batchresizer"

# 種別ごとの (Windows の環境変数候補, XDG 環境変数, XDG 未設定時のホーム相対パス)
_LOCATIONS = {
    LOGS: (("LOCALAPPDATA", "APPDATA"), "XDG_STATE_HOME", (".local", "state")),
    CONFIG: (("APPDATA",), "XDG_CONFIG_HOME", (".config",)),
}


def user_dir(
    kind: str,
    *,
    os_name: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """アプリ用ディレクトリのパスを返す（作成はしない）。

    Windows では %LOCALAPPDATA% / %APPDATA% 配下、それ以外では XDG Base Directory に従う。
    ログは常に ``logs`` サブディレクトリへまとめる。
    """
    if kind not in _LOCATIONS:
        raise ValueError(f"不明なディレクトリ種別です: {kind}")
    env = os.environ if env is None else env
    home = home or Path.home()
    windows_vars, xdg_var, fallback = _LOCATIONS[kind]

    if (os_name or os.name) == "nt":
        base = next((Path(env[name]) for name in windows_vars if env.get(name)), None)
        root = base / _WINDOWS_DIR_NAME if base else home / f".{_POSIX_DIR_NAME}"
    else:
        xdg = env.get(xdg_var)
        root = (Path(xdg) if xdg else home.joinpath(*fallback)) / _POSIX_DIR_NAME

    return root / LOGS if kind == LOGS else root
