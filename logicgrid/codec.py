"""記述文字列と手の文字列を扱うホスト向けモジュール

手の文字列は ``;`` 区切りのトークン列で、各トークンは次のどちらか。

- ``A<index>`` / ``B<index>`` / ``C<index>``: セルに 1 つ目の値 / 2 つ目の値 / 空白を置く
- ``S`` + ``w*h`` 文字の ``0`` / ``1`` / ``-``: 盤面全体の解答
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from .errors import DescriptionError, MoveRejected
from .grid import Grid, PuzzleState
from .params import PuzzleParams
from .rules import get_rules
from .validator import annotate_errors

logger = logging.getLogger(__name__)

_CELL_TOKEN = re.compile(r"([ABC])([0-9]+)")


@dataclass(frozen=True)
class CellMove:
    """1 セルへの書き込み。``op`` は 'A' / 'B' / 'C'"""

    op: str
    index: int


@dataclass(frozen=True)
class SolutionMove:
    """盤面全体の解答 (``S`` 手)"""

    cells: str


Move = Union[CellMove, SolutionMove]


def encode_description(grid: Grid, kind: str) -> str:
    return get_rules(kind).encode_description(grid)


def decode_description(params: PuzzleParams, desc: str) -> Grid:
    """記述文字列から初期盤面を作る。不正なら ``DescriptionError``"""
    return get_rules(params.kind).decode_description(params, desc)


def validate_description(params: PuzzleParams, desc: str) -> Optional[str]:
    """記述文字列を検証し、誤りがあればホストに表示する文字列を返す"""

    try:
        decode_description(params, desc)
    except DescriptionError as exc:
        return str(exc)
    return None


def new_game(params: PuzzleParams, desc: str) -> PuzzleState:
    """記述文字列から新しいパズル状態を作る"""

    grid = decode_description(params, desc)
    return PuzzleState(kind=params.kind, grid=grid)


def parse_move(move: str, size: int) -> List[Move]:
    """手の文字列をトークンの一覧へ変換する

    :param size: 盤面のセル数。インデックスと ``S`` 手の長さの検査に使う
    :raises MoveRejected: 空の手・不正なトークン・範囲外のインデックス・
        長さの合わない ``S`` 手
    """

    if not move:
        raise MoveRejected("empty move")
    tokens = move.split(";")
    # 末尾の ';' による空トークンだけは許す
    if tokens[-1] == "":
        tokens.pop()
    if not tokens:
        raise MoveRejected("empty move")

    result: List[Move] = []
    for token in tokens:
        if token.startswith("S"):
            cells = token[1:]
            if len(cells) != size:
                raise MoveRejected(
                    f"solution move has {len(cells)} cells, expected {size}"
                )
            if any(ch not in "01-" for ch in cells):
                raise MoveRejected("solution move contains invalid characters")
            result.append(SolutionMove(cells))
            continue
        match = _CELL_TOKEN.fullmatch(token)
        if match is None:
            raise MoveRejected(f"malformed move token {token!r}")
        index = int(match.group(2))
        if index >= size:
            raise MoveRejected(f"cell index {index} out of range")
        result.append(CellMove(match.group(1), index))
    return result


def encode_assignments(changes: Iterable[Tuple[int, Optional[int]]]) -> str:
    """(インデックス, 値) の列を ``A``/``B``/``C`` 手の文字列にする

    値は 0 (1 つ目の値)、1 (2 つ目の値)、None (空白)。
    """

    parts = []
    for index, value in changes:
        op = "C" if value is None else "AB"[value]
        parts.append(f"{op}{index};")
    return "".join(parts)


def encode_solution(cells: str) -> str:
    """'0' / '1' / '-' の文字列を ``S`` 手にする"""
    return "S" + cells


def apply_move(state: PuzzleState, move: str) -> PuzzleState:
    """手を適用した新しい状態を返す

    固定セルへの書き込みは無視する。手が不正な場合は ``MoveRejected`` を
    送出し、元の状態は変更しない。
    """

    rules = get_rules(state.kind)
    grid = state.grid
    parsed = parse_move(move, grid.size)

    new_state = state.copy()
    new_state.cheated = False
    for token in parsed:
        if isinstance(token, SolutionMove):
            rules.fill_solution(new_state.grid, token.cells)
            new_state.cheated = True
            continue
        if rules.is_fixed(new_state.grid, token.index):
            continue
        value = 0 if token.op == "C" else rules.values["AB".index(token.op)]
        rules.assign(new_state.grid, token.index, value)

    annotate_errors(new_state)
    logger.debug("手を適用: %s completed=%s", move[:16], new_state.completed)
    return new_state


__all__ = [
    "CellMove",
    "SolutionMove",
    "Move",
    "encode_description",
    "decode_description",
    "validate_description",
    "new_game",
    "parse_move",
    "encode_assignments",
    "encode_solution",
    "apply_move",
]
