"""リサイズ処理のエラー種別と表示用メッセージ。"""

from __future__ import annotations

import errno
from enum import Enum
from typing import Optional

from PIL import Image, UnidentifiedImageError


class ErrorKind(str, Enum):
    INVALID_IMAGE_DIMENSIONS = "InvalidImageDimensions"
    UNKNOWN_PRESET = "UnknownPreset"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    SOURCE_READ_ERROR = "SourceReadError"
    OUTPUT_WRITE_ERROR = "OutputWriteError"


class ResizeError(Exception):
    """1ジョブ（またはバッチ全体）の処理失敗を表す基底例外。"""

    kind: ErrorKind

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidImageDimensions(ResizeError):
    kind = ErrorKind.INVALID_IMAGE_DIMENSIONS


class UnknownPreset(ResizeError):
    kind = ErrorKind.UNKNOWN_PRESET

    def __init__(self, name: str) -> None:
        super().__init__(f"プリセットが見つかりません: {name}")
        self.name = name


class UnsupportedFormat(ResizeError):
    kind = ErrorKind.UNSUPPORTED_FORMAT


class SourceReadError(ResizeError):
    kind = ErrorKind.SOURCE_READ_ERROR


class OutputWriteError(ResizeError):
    kind = ErrorKind.OUTPUT_WRITE_ERROR


class InvalidResizeSpec(ValueError):
    """サイズ指定そのものが不正（呼び出し側の誤り）。バッチ開始前に送出する。"""


ERROR_KIND_LABELS = {
    ErrorKind.INVALID_IMAGE_DIMENSIONS: "画像サイズ不正",
    ErrorKind.UNKNOWN_PRESET: "プリセット不明",
    ErrorKind.UNSUPPORTED_FORMAT: "形式/破損",
    ErrorKind.SOURCE_READ_ERROR: "読み込み失敗",
    ErrorKind.OUTPUT_WRITE_ERROR: "書き込み失敗",
}

_NO_SPACE_CODES = {errno.ENOSPC, 112}
_PERMISSION_CODES = {errno.EACCES, errno.EPERM, errno.EROFS}


def describe_error(error: BaseException) -> str:
    """例外から利用者向けの短いメッセージを作る。

    Args:
        error: 例外オブジェクト

    Returns:
        str: 日本語エラーメッセージ
    """
    if isinstance(error, ResizeError):
        if error.cause is not None:
            return f"{error.message} ({describe_error(error.cause)})"
        return error.message

    error_msg = str(error)
    if isinstance(error, FileNotFoundError):
        return f"ファイルが見つかりません: {error_msg}"
    if isinstance(error, IsADirectoryError):
        return f"ディレクトリが指定されました（ファイルを指定してください）: {error_msg}"
    if isinstance(error, PermissionError):
        return f"アクセス権限がありません: {error_msg}"
    if isinstance(error, UnidentifiedImageError):
        return f"画像ファイルとして認識できません: {error_msg}"
    if isinstance(error, Image.DecompressionBombError):
        return f"画像が大きすぎます（圧縮爆弾の可能性）: {error_msg}"
    if isinstance(error, OSError):
        if error.errno in _NO_SPACE_CODES:
            return "ディスク容量が不足しています"
        if error.errno == errno.ENAMETOOLONG:
            return "ファイル名が長すぎます"
        if error.errno in _PERMISSION_CODES:
            return f"アクセス権限がありません: {error_msg}"
        return f"システムエラー: {error_msg}"
    if isinstance(error, MemoryError):
        return "メモリ不足エラー: 画像が大きすぎるか、使用可能なメモリが不足しています"
    if isinstance(error, ValueError):
        return f"無効な値: {error_msg}"
    return f"{type(error).__name__}: {error_msg}"
