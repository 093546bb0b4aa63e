"""盤面とパズル状態を表すデータクラスをまとめたモジュール"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .dsf import DSF

# セルに数字ヒントが無いことを表す値
NO_CLUE = -1


@dataclass
class Grid:
    """幅 ``w`` 高さ ``h`` の盤面

    ``cells`` は各セルのフラグ (1 バイト)、``clues`` は数字ヒントで
    ``-1`` はヒント無しを表す。どちらも ``y * w + x`` の行優先順に並ぶ。
    """

    w: int
    h: int
    cells: np.ndarray
    clues: np.ndarray

    @classmethod
    def empty(cls, w: int, h: int) -> "Grid":
        """全セル空白・ヒント無しの盤面を作る"""
        cells = np.zeros(w * h, dtype=np.uint8)
        clues = np.full(w * h, NO_CLUE, dtype=np.int32)
        return cls(w, h, cells, clues)

    @property
    def size(self) -> int:
        return self.w * self.h

    def copy(self) -> "Grid":
        return Grid(self.w, self.h, self.cells.copy(), self.clues.copy())

    def index(self, x: int, y: int) -> int:
        return y * self.w + x

    def coords(self, i: int) -> Tuple[int, int]:
        return i % self.w, i // self.w

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.w and 0 <= y < self.h

    def neighbors(self, i: int) -> List[int]:
        """上下左右の隣接セル。盤外は含めない (折り返しなし)"""
        x, y = self.coords(i)
        result = []
        for dx, dy in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            nx, ny = x + dx, y + dy
            if self.in_bounds(nx, ny):
                result.append(self.index(nx, ny))
        return result

    def clue(self, i: int) -> Optional[int]:
        value = int(self.clues[i])
        return None if value == NO_CLUE else value

    def clue_indices(self) -> Iterator[int]:
        """ヒントを持つセルのインデックスを順に返す"""
        for i in np.flatnonzero(self.clues != NO_CLUE):
            yield int(i)

    def clue_layout(self) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        """比較用にヒント配置を不変なタプルで返す"""
        return tuple(int(v) for v in self.clues), tuple(int(v) for v in self.cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return (
            self.w == other.w
            and self.h == other.h
            and np.array_equal(self.cells, other.cells)
            and np.array_equal(self.clues, other.clues)
        )


@dataclass
class ValidationScratch:
    """検証関数が使い回す作業領域

    ソルバーや生成処理の呼び出しごとに確保し、呼び出しをまたいで保持しない。
    中身は検証のたびにカーネル側で初期化される。
    """

    dsf: DSF
    lengths: np.ndarray
    errors: np.ndarray

    @classmethod
    def for_size(cls, n: int) -> "ValidationScratch":
        return cls(
            dsf=DSF(n),
            lengths=np.full(n, -1, dtype=np.int64),
            errors=np.zeros(n, dtype=np.bool_),
        )

    @classmethod
    def for_grid(cls, grid: Grid) -> "ValidationScratch":
        return cls.for_size(grid.size)


@dataclass
class PuzzleState:
    """ホストに渡すパズル状態

    ``cheated`` は直前の手に自動解答 (``S`` 手) が含まれていたかを表す。
    """

    kind: str
    grid: Grid
    completed: bool = False
    cheated: bool = False
    # 表示用にエラー判定を行った結果のキャッシュ
    error_cells: List[int] = field(default_factory=list)

    def copy(self) -> "PuzzleState":
        return PuzzleState(
            kind=self.kind,
            grid=self.grid.copy(),
            completed=self.completed,
            cheated=self.cheated,
            error_cells=list(self.error_cells),
        )


__all__ = ["NO_CLUE", "Grid", "ValidationScratch", "PuzzleState"]
