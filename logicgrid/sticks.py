"""Sticks (縦棒横棒) のルール実装

白いセルそれぞれに縦線か横線を引く。

- 線に重なる数字はその線の長さを表す
- 1 本の線が 2 つ以上の数字に重なってはならない
- 黒いセルの数字は、そのセルにつながる線の本数を表す
"""

from __future__ import annotations

import random
from enum import IntFlag
from typing import List, Optional

import numpy as np
from numba import njit

from .constants import STATUS_COMPLETE, STATUS_INVALID, STATUS_UNFINISHED, Status
from .dsf import _dsf_canonify, _dsf_merge, _dsf_reset
from .errors import DescriptionError
from .grid import NO_CLUE, Grid, ValidationScratch
from .params import PuzzleParams, Symmetry
from .rules import RuleSet


class SticksFlag(IntFlag):
    """Sticks のセルフラグ"""

    HOR = 0x01
    VER = 0x02
    BLOCK = 0x04
    ERROR = 0x08


F_HOR = int(SticksFlag.HOR)
F_VER = int(SticksFlag.VER)
F_BLOCK = int(SticksFlag.BLOCK)
F_ERROR = int(SticksFlag.ERROR)
F_FILLED = F_HOR | F_VER | F_BLOCK


@njit
def _sticks_make_dsf(
    cells: np.ndarray,
    clues: np.ndarray,
    w: int,
    h: int,
    parent: np.ndarray,
    sizes: np.ndarray,
    mins: np.ndarray,
    lengths: np.ndarray,
) -> None:
    """同じ向きで隣り合う線を併合し、成分ごとのヒント位置を求める

    ``lengths[root]`` はその成分にあるヒントのインデックス。
    ヒントが無ければ -1、複数あれば -2 になる。
    """

    _dsf_reset(parent, sizes, mins)
    for y in range(h):
        for x in range(w):
            i = y * w + x
            if x < w - 1 and (cells[i] & F_HOR) != 0 and (cells[i + 1] & F_HOR) != 0:
                _dsf_merge(parent, sizes, mins, i, i + 1)
            if y < h - 1 and (cells[i] & F_VER) != 0 and (cells[i + w] & F_VER) != 0:
                _dsf_merge(parent, sizes, mins, i, i + w)

    n = w * h
    for i in range(n):
        lengths[i] = -1
    for i in range(n):
        if clues[i] != -1:
            c = _dsf_canonify(parent, i)
            if lengths[c] != -1:
                lengths[c] = -2
            else:
                lengths[c] = i


@njit
def _foreign_line(parent: np.ndarray, lengths: np.ndarray, j: int, idx: int) -> bool:
    """セル ``j`` の成分が ``idx`` 以外のヒントを持つか"""
    other = lengths[_dsf_canonify(parent, j)]
    return other != -1 and other != idx


@njit
def _max_size_horizontal(
    cells: np.ndarray, parent: np.ndarray, lengths: np.ndarray, w: int, idx: int
) -> int:
    """``idx`` の横線が伸ばせる最大の長さ

    左右とも盤面の端 (0 列目と w-1 列目) まで調べ、先読みも端のセルを含める。
    この範囲がどのヒントの組を最小とみなすかを決める。
    """

    y = idx // w
    ret = 1
    for k in range(2):
        step = -1 if k == 0 else 1
        x = idx % w + step
        while x >= 0 and x < w:
            j = y * w + x
            if (cells[j] & (F_BLOCK | F_VER)) != 0:
                break
            if _foreign_line(parent, lengths, j, idx):
                break
            # 次のセルが別の数字の横線なら、ここまで伸ばすと合流してしまう
            nx = x + step
            if nx >= 0 and nx < w and (cells[y * w + nx] & F_HOR) != 0:
                if _foreign_line(parent, lengths, y * w + nx, idx):
                    break
            ret += 1
            x += step
    return ret


@njit
def _max_size_vertical(
    cells: np.ndarray, parent: np.ndarray, lengths: np.ndarray, w: int, h: int, idx: int
) -> int:
    """``idx`` の縦線が伸ばせる最大の長さ

    上下とも盤面の端 (0 行目と h-1 行目) まで調べる。横線と同じ範囲で判定する。
    """

    x = idx % w
    ret = 1
    for k in range(2):
        step = -1 if k == 0 else 1
        y = idx // w + step
        while y >= 0 and y < h:
            j = y * w + x
            if (cells[j] & (F_BLOCK | F_HOR)) != 0:
                break
            if _foreign_line(parent, lengths, j, idx):
                break
            ny = y + step
            if ny >= 0 and ny < h and (cells[ny * w + x] & F_VER) != 0:
                if _foreign_line(parent, lengths, ny * w + x, idx):
                    break
            ret += 1
            y += step
    return ret


@njit
def _sticks_status(
    cells: np.ndarray,
    clues: np.ndarray,
    w: int,
    h: int,
    parent: np.ndarray,
    sizes: np.ndarray,
    mins: np.ndarray,
    lengths: np.ndarray,
    errors: np.ndarray,
) -> int:
    """盤面の状態を判定し、誤りのあるセルを ``errors`` に記録する"""

    _sticks_make_dsf(cells, clues, w, h, parent, sizes, mins, lengths)

    ret = STATUS_COMPLETE
    for y in range(h):
        for x in range(w):
            i = y * w + x
            errors[i] = False
            cell = cells[i]
            if (cell & F_FILLED) == 0:
                if ret == STATUS_COMPLETE:
                    ret = STATUS_UNFINISHED
                continue

            n = clues[i]
            if n == -1:
                continue

            error = False
            if (cell & F_BLOCK) != 0:
                conn = 0
                other = 0
                if x == 0 or (cells[i - 1] & (F_VER | F_BLOCK)) != 0:
                    other += 1
                if x == w - 1 or (cells[i + 1] & (F_VER | F_BLOCK)) != 0:
                    other += 1
                if y == 0 or (cells[i - w] & (F_HOR | F_BLOCK)) != 0:
                    other += 1
                if y == h - 1 or (cells[i + w] & (F_HOR | F_BLOCK)) != 0:
                    other += 1

                if x != 0 and (cells[i - 1] & F_HOR) != 0:
                    conn += 1
                if x != w - 1 and (cells[i + 1] & F_HOR) != 0:
                    conn += 1
                if y != 0 and (cells[i - w] & F_VER) != 0:
                    conn += 1
                if y != h - 1 and (cells[i + w] & F_VER) != 0:
                    conn += 1

                if conn > n or other > 4 - n:
                    error = True
            else:
                c = _dsf_canonify(parent, i)
                if lengths[c] < 0:
                    # 1 本の線に数字が 2 つ以上ある
                    error = True
                else:
                    s = sizes[c]
                    length = clues[lengths[c]]
                    if s > length:
                        error = True
                    elif s < length and (cell & F_HOR) != 0:
                        if _max_size_horizontal(cells, parent, lengths, w, i) < length:
                            error = True
                    elif s < length and (cell & F_VER) != 0:
                        if _max_size_vertical(cells, parent, lengths, w, h, i) < length:
                            error = True

            if error:
                errors[i] = True
                ret = STATUS_INVALID
    return ret


def _set_blacks(grid: Grid, params: PuzzleParams, rng: random.Random) -> None:
    """対称性を保ちながらブロックを配置する

    対称性に応じた部分領域をランダムに埋め、それを盤面全体へ写す。
    """

    w, h = grid.w, grid.h
    wodd = w % 2
    hodd = h % 2
    symm = Symmetry(params.symm)
    degree, rotate = {
        Symmetry.NONE: (1, False),
        Symmetry.ROT2: (2, True),
        Symmetry.REF2: (2, False),
        Symmetry.ROT4: (4, True),
        Symmetry.REF4: (4, False),
    }[symm]
    assert not (symm == Symmetry.ROT4 and w != h), "4 回回転対称は正方形のみ"

    if degree == 4:
        rw = w // 2
        rh = h // 2 + hodd
        if not rotate:
            rw += wodd
    elif degree == 2:
        rw = w
        rh = h // 2 + hodd
    else:
        rw = w
        rh = h

    grid.cells[:] = 0
    nblack = (rw * rh * params.blackpc) // 100
    for _ in range(nblack):
        while True:
            x = rng.randrange(rw)
            y = rng.randrange(rh)
            if not grid.cells[y * w + x] & F_BLOCK:
                break
        grid.cells[y * w + x] |= F_BLOCK

    if symm == Symmetry.NONE:
        return

    for x in range(rw):
        for y in range(rh):
            if degree == 4:
                xs = [
                    x,
                    w - 1 - (y if rotate else x),
                    (w - 1 - x) if rotate else x,
                    y if rotate else (w - 1 - x),
                ]
                ys = [
                    y,
                    x if rotate else y,
                    h - 1 - y,
                    h - 1 - (x if rotate else y),
                ]
            else:
                xs = [x, (w - 1 - x) if rotate else x]
                ys = [y, h - 1 - y]
            for k in range(1, degree):
                grid.cells[ys[k] * w + xs[k]] = grid.cells[ys[0] * w + xs[0]]

    # 4 回回転対称では中央のセルが写されないのでここで決める
    if degree == 4 and rotate and wodd and rng.randrange(100) <= params.blackpc:
        grid.cells[w * (h // 2 + hodd - 1) + (w // 2 + wodd - 1)] |= F_BLOCK


class SticksRules(RuleSet):
    """Sticks のルールセット"""

    name = "sticks"
    values = (F_HOR, F_VER)
    fixed_mask = F_BLOCK
    error_flag = F_ERROR
    state_mask = F_FILLED
    max_depth = 0
    minimize = True
    keep_partial = False
    presets = [
        PuzzleParams("sticks", 5, 5, 20, Symmetry.ROT2),
        PuzzleParams("sticks", 7, 7, 20, Symmetry.ROT2),
        PuzzleParams("sticks", 10, 10, 20, Symmetry.ROT2),
    ]

    def default_params(self) -> PuzzleParams:
        return self.presets[1]

    def build_dsf(self, grid: Grid, scratch: ValidationScratch) -> None:
        """線の連結成分を ``scratch.dsf`` に作る"""
        dsf = scratch.dsf
        _sticks_make_dsf(
            grid.cells,
            grid.clues,
            grid.w,
            grid.h,
            dsf.parent,
            dsf.sizes,
            dsf.mins,
            scratch.lengths,
        )

    def compute_status(self, grid: Grid, scratch: ValidationScratch) -> Status:
        dsf = scratch.dsf
        return Status(
            _sticks_status(
                grid.cells,
                grid.clues,
                grid.w,
                grid.h,
                dsf.parent,
                dsf.sizes,
                dsf.mins,
                scratch.lengths,
                scratch.errors,
            )
        )

    # --- 記述文字列 ---

    def encode_description(self, grid: Grid) -> str:
        """ブロックと数字の配置を文字列にする

        ``a``-``z`` は 1-26 個の空きセル、``B`` はブロック (直後に数字が続けば
        そのブロックのヒント)、数字は線のヒント、``_`` は連続する数字の区切り。
        """

        out: List[str] = []
        run = 0

        def flush() -> None:
            nonlocal run
            while run > 26:
                out.append("z")
                run -= 26
            out.append(chr(ord("a") + run - 1))
            run = 0

        for i in range(grid.size):
            block = bool(grid.cells[i] & F_BLOCK)
            clue = int(grid.clues[i])
            if clue == NO_CLUE and not block:
                run += 1
                continue
            if run:
                flush()
            elif i != 0 and not block:
                out.append("_")
            if block:
                out.append("B")
            if clue != NO_CLUE:
                out.append(str(clue))
        if run:
            flush()
        return "".join(out)

    def decode_description(self, params: PuzzleParams, desc: str) -> Grid:
        s = params.size
        grid = Grid.empty(params.w, params.h)
        pos = 0
        p = 0
        n = len(desc)
        while p < n:
            ch = desc[p]
            if "a" <= ch <= "z":
                pos += ord(ch) - ord("a") + 1
                p += 1
            elif ch == "B":
                if pos >= s:
                    raise DescriptionError("Description is too long")
                grid.cells[pos] = F_BLOCK
                p += 1
                # 数字が続く場合は数字側で位置を進める
                if p >= n or not "0" <= desc[p] <= "9":
                    pos += 1
            elif "0" <= ch <= "9":
                start = p
                while p < n and "0" <= desc[p] <= "9":
                    p += 1
                if pos >= s:
                    raise DescriptionError("Description is too long")
                clue = int(desc[start:p])
                # ブロックの数字は接続数 (最大 4)、線の数字は盤面の一辺以下
                limit = 4 if grid.cells[pos] & F_BLOCK else max(params.w, params.h)
                if clue > limit:
                    raise DescriptionError("Description contains an invalid clue")
                grid.clues[pos] = clue
                pos += 1
            elif ch == "_":
                p += 1
            else:
                raise DescriptionError("Description contains invalid characters")
        if pos < s:
            raise DescriptionError("Description is too short")
        if pos > s:
            raise DescriptionError("Description is too long")
        return grid

    # --- 生成 ---

    def place_fixed(self, grid: Grid, params: PuzzleParams, rng: random.Random) -> None:
        _set_blacks(grid, params, rng)

    def fill_random(self, grid: Grid, rng: random.Random, attempt: int) -> None:
        for i in range(grid.size):
            if grid.cells[i] & F_BLOCK:
                grid.cells[i] = F_BLOCK
            else:
                grid.cells[i] = F_HOR if rng.randrange(2) else F_VER

    def connections(self, grid: Grid, i: int) -> int:
        """ブロック ``i`` につながる線の本数"""
        w, h = grid.w, grid.h
        x, y = grid.coords(i)
        n = 0
        if x > 0 and grid.cells[i - 1] & F_HOR:
            n += 1
        if x < w - 1 and grid.cells[i + 1] & F_HOR:
            n += 1
        if y > 0 and grid.cells[i - w] & F_VER:
            n += 1
        if y < h - 1 and grid.cells[i + w] & F_VER:
            n += 1
        return n

    def derive_clues(
        self, grid: Grid, rng: random.Random, scratch: ValidationScratch
    ) -> None:
        """ブロックには接続数、線の各成分には長さをランダムな位置に置く"""

        grid.clues[:] = NO_CLUE
        self.build_dsf(grid, scratch)
        dsf = scratch.dsf
        w = grid.w
        for i in range(grid.size):
            if grid.cells[i] & F_BLOCK:
                grid.clues[i] = self.connections(grid, i)
            elif dsf.minimal(i) == i:
                n = dsf.size(i)
                if n == 1:
                    grid.clues[i] = 1
                elif grid.cells[i] & F_HOR:
                    grid.clues[i + rng.randrange(n)] = n
                elif grid.cells[i] & F_VER:
                    grid.clues[i + w * rng.randrange(n)] = n

    # --- パラメータ ---

    def validate_params(self, params: PuzzleParams, full: bool = True) -> Optional[str]:
        if params.w < 2 or params.h < 2:
            return "Width and height must be at least 2"
        if params.w > 12 or params.h > 12:
            return "Width and height must be at most 12"
        if full:
            if params.blackpc < 10 or params.blackpc > 80:
                return "Percentage of black squares must be between 10% and 80%"
            if params.w != params.h and params.symm == Symmetry.ROT4:
                return "4-fold symmetry is only available with square grids"
        return None

    def cell_text(self, grid: Grid, i: int) -> str:
        cell = int(grid.cells[i])
        clue = grid.clue(i)
        if clue is not None and clue < 10:
            return str(clue)
        if cell & F_BLOCK:
            return "#"
        if cell & F_HOR:
            return "-"
        if cell & F_VER:
            return "|"
        return "."


__all__ = [
    "SticksFlag",
    "SticksRules",
    "F_HOR",
    "F_VER",
    "F_BLOCK",
    "F_ERROR",
]
