"""盤面パラメータと、その文字列表現を扱うモジュール"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import IntEnum

from .errors import ParamsError


class Symmetry(IntEnum):
    """ブロック配置の対称性"""

    NONE = 0
    REF2 = 1  # 2 方向鏡映
    ROT2 = 2  # 2 回回転
    REF4 = 3  # 4 方向鏡映
    ROT4 = 4  # 4 回回転


SYMMETRY_NAMES = {
    "none": Symmetry.NONE,
    "mirror2": Symmetry.REF2,
    "rotate2": Symmetry.ROT2,
    "mirror4": Symmetry.REF4,
    "rotate4": Symmetry.ROT4,
}


@dataclass(frozen=True)
class PuzzleParams:
    """パズル種別と盤面サイズなどの生成パラメータ

    :param kind: ``"clusters"`` または ``"sticks"``
    :param blackpc: Sticks のブロック率 (%)
    :param symm: Sticks のブロック配置の対称性
    """

    kind: str
    w: int
    h: int
    blackpc: int = 20
    symm: Symmetry = Symmetry.ROT2

    @property
    def size(self) -> int:
        return self.w * self.h


_NUM = re.compile(r"[0-9]*")


def _eat_number(string: str, pos: int) -> tuple[int, int]:
    """``pos`` から続く数字を読み取り、(値, 次の位置) を返す"""
    match = _NUM.match(string, pos)
    assert match is not None
    digits = match.group()
    return (int(digits) if digits else 0), match.end()


def encode_params(params: PuzzleParams, full: bool = True) -> str:
    """パラメータを ``7x7b20s2`` 形式の文字列にする

    ``full`` が False のときや Clusters の場合はサイズだけを出力する。
    """

    if full and params.kind == "sticks":
        return f"{params.w}x{params.h}b{params.blackpc}s{int(params.symm)}"
    return f"{params.w}x{params.h}"


def decode_params(kind: str, string: str, base: PuzzleParams | None = None) -> PuzzleParams:
    """``encode_params`` の逆変換

    省略された項目は ``base`` (無ければ既定値) を引き継ぐ。
    高さが省略された場合は幅と同じ値を使う。
    """

    params = base if base is not None else PuzzleParams(kind, 0, 0)
    w, pos = _eat_number(string, 0)
    h = w
    if pos < len(string) and string[pos] == "x":
        h, pos = _eat_number(string, pos + 1)
    blackpc = params.blackpc
    if pos < len(string) and string[pos] == "b":
        blackpc, pos = _eat_number(string, pos + 1)
    symm = params.symm
    if pos < len(string) and string[pos] == "s":
        raw, pos = _eat_number(string, pos + 1)
        try:
            symm = Symmetry(raw)
        except ValueError as exc:
            raise ParamsError("Unknown symmetry type") from exc
    elif symm == Symmetry.ROT4 and w != h:
        # "18x10" のような入力で既定の 4 回対称が使えない場合は 2 回に落とす
        symm = Symmetry.ROT2
    return replace(params, kind=kind, w=w, h=h, blackpc=blackpc, symm=symm)


__all__ = [
    "Symmetry",
    "SYMMETRY_NAMES",
    "PuzzleParams",
    "encode_params",
    "decode_params",
]
