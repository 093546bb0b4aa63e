"""エンジンが送出する例外をまとめたモジュール"""

from __future__ import annotations

from typing import Any


class DescriptionError(ValueError):
    """パズル記述文字列の文法や長さが不正なときに送出する"""


class MoveRejected(ValueError):
    """手の文字列が不正なときに送出する。元の状態は変更されない"""


class PuzzleInvalid(ValueError):
    """ソルバーが INVALID に到達したときに送出する"""

    def __init__(self, message: str = "Puzzle is invalid.") -> None:
        super().__init__(message)


class ParamsError(ValueError):
    """盤面パラメータが不正なときに送出する"""


class GenerationFailed(RuntimeError):
    """試行上限までに解ける盤面を作れなかったときに送出する

    ホスト側はパラメータを緩めて再試行できる。
    """

    def __init__(
        self,
        message: str = "Puzzle generation failed",
        *,
        attempts: int = 0,
        params: Any = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.params = params


__all__ = [
    "DescriptionError",
    "MoveRejected",
    "PuzzleInvalid",
    "ParamsError",
    "GenerationFailed",
]
