"""Clusters (2 色塗り分け) のルール実装

盤面を 2 色で塗る。同じ色の隣接セルがちょうど 1 つのセルは点 (SINGLE)
として全て与えられ、それ以外のセルは同色の隣接セルを 2 つ以上持つ。
"""

from __future__ import annotations

import random
from enum import IntFlag
from typing import List, Optional

import numpy as np
from numba import njit

from .constants import MAX_ATTEMPTS, STATUS_COMPLETE, STATUS_INVALID, STATUS_UNFINISHED, Status
from .errors import DescriptionError
from .grid import Grid, ValidationScratch
from .params import PuzzleParams
from .rules import RuleSet


class ClustersFlag(IntFlag):
    """Clusters のセルフラグ"""

    COLOR_0 = 0x01
    COLOR_1 = 0x02
    SINGLE = 0x04
    ERROR = 0x08


# カーネル内で使う素の整数値
F_COLOR_0 = int(ClustersFlag.COLOR_0)
F_COLOR_1 = int(ClustersFlag.COLOR_1)
F_SINGLE = int(ClustersFlag.SINGLE)
F_ERROR = int(ClustersFlag.ERROR)
COLMASK = F_COLOR_0 | F_COLOR_1


@njit
def _neighbor(x: int, y: int, w: int, h: int, d: int) -> int:
    """方向 ``d`` (0:左 1:右 2:上 3:下) の隣接セル。盤外なら -1"""
    if d == 0:
        return y * w + x - 1 if x > 0 else -1
    if d == 1:
        return y * w + x + 1 if x < w - 1 else -1
    if d == 2:
        return (y - 1) * w + x if y > 0 else -1
    return (y + 1) * w + x if y < h - 1 else -1


@njit
def _clusters_status(cells: np.ndarray, w: int, h: int, errors: np.ndarray) -> int:
    """盤面の状態を判定し、誤りのあるセルを ``errors`` に記録する"""

    ret = STATUS_COMPLETE
    for y in range(h):
        for x in range(w):
            i = y * w + x
            errors[i] = False
            col = cells[i] & COLMASK
            if col == 0:
                if ret == STATUS_COMPLETE:
                    ret = STATUS_UNFINISHED
                continue

            count = 0
            other = 0
            maxcount = 0
            for d in range(4):
                j = _neighbor(x, y, w, h, d)
                if j < 0:
                    continue
                maxcount += 1
                ncol = cells[j] & COLMASK
                if ncol == col:
                    count += 1
                elif ncol != 0:
                    other += 1

            single = (cells[i] & F_SINGLE) != 0
            error = False
            if other == maxcount:
                # 同色の隣接セルを持てない
                error = True
            elif single and count > 1:
                error = True
            elif not single and other == maxcount - 1:
                # 点の無いセルは同色 2 つ以上が必要
                error = True

            if error:
                errors[i] = True
                ret = STATUS_INVALID
    return ret


class ClustersRules(RuleSet):
    """Clusters のルールセット"""

    name = "clusters"
    values = (F_COLOR_0, F_COLOR_1)
    fixed_mask = F_SINGLE
    error_flag = F_ERROR
    state_mask = COLMASK
    max_depth = 1
    # 点はルール上すべて与える必要があるため削らない
    minimize = False
    keep_partial = True
    presets = [
        PuzzleParams("clusters", 5, 5),
        PuzzleParams("clusters", 7, 7),
        PuzzleParams("clusters", 8, 8),
        PuzzleParams("clusters", 9, 9),
        PuzzleParams("clusters", 10, 10),
    ]

    def default_params(self) -> PuzzleParams:
        return self.presets[1]

    def clue_count(self, grid: Grid) -> int:
        return int(np.count_nonzero(grid.cells & F_SINGLE))

    def compute_status(self, grid: Grid, scratch: ValidationScratch) -> Status:
        return Status(_clusters_status(grid.cells, grid.w, grid.h, scratch.errors))

    # --- 記述文字列 ---

    def encode_description(self, grid: Grid) -> str:
        """点の位置と色を連長圧縮した文字列を返す

        ``a``-``y`` は 0-24 個の空白を飛ばした後に色 0 の点、大文字は色 1 の点、
        ``z`` / ``Z`` は点無しで 25 個飛ばす。最後に終端の文字を 1 つ置く。
        """

        s = grid.size
        out: List[str] = []
        run = 0
        for i in range(s + 1):
            cell = int(grid.cells[i]) & (COLMASK | F_SINGLE) if i < s else 0
            if i == s or cell == F_COLOR_0 | F_SINGLE:
                base, skip = "a", "z"
            elif cell == F_COLOR_1 | F_SINGLE:
                base, skip = "A", "Z"
            else:
                run += 1
                continue
            while run > 24:
                out.append(skip)
                run -= 25
            out.append(chr(ord(base) + run))
            run = 0
        return "".join(out)

    def decode_description(self, params: PuzzleParams, desc: str) -> Grid:
        s = params.size
        grid = Grid.empty(params.w, params.h)
        pos = 0
        for ch in desc:
            if "a" <= ch < "z":
                pos += ord(ch) - ord("a")
                if pos < s:
                    grid.cells[pos] = F_COLOR_0 | F_SINGLE
                pos += 1
            elif "A" <= ch < "Z":
                pos += ord(ch) - ord("A")
                if pos < s:
                    grid.cells[pos] = F_COLOR_1 | F_SINGLE
                pos += 1
            elif ch in "zZ":
                pos += 25
            else:
                raise DescriptionError("Description contains invalid characters")
        if pos < s + 1:
            raise DescriptionError("Description is too short")
        if pos > s + 1:
            raise DescriptionError("Description is too long")
        return grid

    # --- 生成 ---

    def fill_random(self, grid: Grid, rng: random.Random, attempt: int) -> None:
        """空白セルを乱数で塗る。一定回数ごとに盤面全体を塗り直す"""

        force = attempt % MAX_ATTEMPTS == 0
        for i in range(grid.size):
            if force or not grid.cells[i] & COLMASK:
                grid.cells[i] = F_COLOR_0 if rng.randrange(2) else F_COLOR_1

    def _same_count(self, grid: Grid, i: int) -> int:
        col = grid.cells[i] & COLMASK
        return sum(1 for j in grid.neighbors(i) if grid.cells[j] & COLMASK == col)

    def derive_clues(
        self, grid: Grid, rng: random.Random, scratch: ValidationScratch
    ) -> None:
        """孤立セルを解消し、同色隣接がちょうど 1 つのセルを点にする"""

        s = grid.size
        while True:
            counts = [self._same_count(grid, i) for i in range(s)]
            isolated = next((i for i in range(s) if counts[i] == 0), None)
            if isolated is None:
                break
            # 孤立セルは色を反転させれば必ず同色の隣接を得る
            grid.cells[isolated] ^= COLMASK

        for i in range(s):
            if counts[i] == 1:
                grid.cells[i] = (grid.cells[i] & COLMASK) | F_SINGLE
            else:
                grid.cells[i] = 0

        w = grid.w
        for i in range(s):
            x, y = grid.coords(i)
            if x > 0 and grid.cells[i] & F_SINGLE and grid.cells[i] == grid.cells[i - 1]:
                grid.cells[i] = 0
                grid.cells[i - 1] = 0
            elif y > 0 and grid.cells[i] & F_SINGLE and grid.cells[i] == grid.cells[i - w]:
                grid.cells[i] = 0
                grid.cells[i - w] = 0

    # --- パラメータ ---

    def validate_params(self, params: PuzzleParams, full: bool = True) -> Optional[str]:
        if params.w < 1 or params.h < 1:
            return "Width and height must be at least 1"
        if params.w * params.h > 150:
            return "Puzzle is too large"
        if params.w * params.h < 2:
            return "Puzzle is too small"
        return None

    def cell_text(self, grid: Grid, i: int) -> str:
        cell = int(grid.cells[i])
        if cell & F_COLOR_0:
            return "O" if cell & F_SINGLE else "o"
        if cell & F_COLOR_1:
            return "X" if cell & F_SINGLE else "x"
        return "."


__all__ = [
    "ClustersFlag",
    "ClustersRules",
    "F_COLOR_0",
    "F_COLOR_1",
    "F_SINGLE",
    "F_ERROR",
    "COLMASK",
]
