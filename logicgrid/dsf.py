"""盤面セルを連結成分にまとめる Union-Find (DSF) モジュール

親配列・成分サイズ・成分内最小インデックスを NumPy 配列で保持し、
探索と併合の本体は Numba でコンパイルする。検証関数の numba カーネルからも
同じ関数を直接呼び出せるよう、配列を引数に取る形にしている。
"""

from __future__ import annotations

import numpy as np
from numba import njit


@njit
def _dsf_reset(parent: np.ndarray, sizes: np.ndarray, mins: np.ndarray) -> None:
    """全要素を単独集合に戻す"""
    for i in range(parent.shape[0]):
        parent[i] = i
        sizes[i] = 1
        mins[i] = i


@njit
def _dsf_canonify(parent: np.ndarray, i: int) -> int:
    """代表元を返す。途中の親リンクは経路圧縮する"""
    root = i
    while parent[root] != root:
        root = parent[root]
    while parent[i] != root:
        nxt = parent[i]
        parent[i] = root
        i = nxt
    return root


@njit
def _dsf_merge(
    parent: np.ndarray, sizes: np.ndarray, mins: np.ndarray, a: int, b: int
) -> int:
    """2 要素の集合を併合して新しい代表元を返す"""
    ra = _dsf_canonify(parent, a)
    rb = _dsf_canonify(parent, b)
    if ra == rb:
        return ra
    # サイズの大きい方を根にする
    if sizes[ra] < sizes[rb]:
        ra, rb = rb, ra
    parent[rb] = ra
    sizes[ra] += sizes[rb]
    if mins[rb] < mins[ra]:
        mins[ra] = mins[rb]
    return ra


class DSF:
    """``n`` 個のセルに対する素集合森"""

    def __init__(self, n: int) -> None:
        self.parent = np.arange(n, dtype=np.int64)
        self.sizes = np.ones(n, dtype=np.int64)
        self.mins = np.arange(n, dtype=np.int64)

    def __len__(self) -> int:
        return int(self.parent.shape[0])

    def reinit(self) -> None:
        """使い回す前に全要素を単独集合へ戻す"""
        _dsf_reset(self.parent, self.sizes, self.mins)

    def canonify(self, i: int) -> int:
        return int(_dsf_canonify(self.parent, i))

    def merge(self, a: int, b: int) -> int:
        return int(_dsf_merge(self.parent, self.sizes, self.mins, a, b))

    def equivalent(self, a: int, b: int) -> bool:
        return self.canonify(a) == self.canonify(b)

    def size(self, i: int) -> int:
        """``i`` を含む成分のセル数"""
        return int(self.sizes[self.canonify(i)])

    def minimal(self, i: int) -> int:
        """``i`` を含む成分で最も小さいインデックス"""
        return int(self.mins[self.canonify(i)])


__all__ = ["DSF", "_dsf_reset", "_dsf_canonify", "_dsf_merge"]
