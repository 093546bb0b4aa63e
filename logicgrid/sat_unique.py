"""PySAT を使った一意解チェックモジュール

ソルバーとは独立に盤面を CNF へ変換し、解が 1 つだけか確かめる。
"""

from __future__ import annotations

from typing import Callable, Dict, List

from pysat.formula import CNF, IDPool

# EncType は PySAT で定義されている列挙型で、
# エンコーディング方式を数値で表現します
from pysat.card import CardEnc, EncType
from pysat.solvers import Minisat22

from .grid import NO_CLUE, Grid
from .rules import RuleSet


class _Formula:
    """節と充足不能フラグをまとめて持つ補助クラス"""

    def __init__(self) -> None:
        self.pool = IDPool()
        self.cnf = CNF()
        self.unsat = False
        # 一意性判定の対象となる主変数
        self.primary: List[int] = []

    def var(self, name: str) -> int:
        return self.pool.id(name)

    def equals(self, lits: List[int], bound: int) -> None:
        self.atleast(lits, bound)
        self.atmost(lits, bound)

    def atmost(self, lits: List[int], bound: int) -> None:
        if bound < 0:
            self.unsat = True
        elif bound == 0:
            for lit in lits:
                self.cnf.append([-lit])
        elif bound < len(lits):
            self.cnf.extend(
                CardEnc.atmost(
                    lits, bound, vpool=self.pool, encoding=EncType.seqcounter
                ).clauses
            )

    def atleast(self, lits: List[int], bound: int) -> None:
        if bound > len(lits):
            self.unsat = True
        elif bound == len(lits):
            for lit in lits:
                self.cnf.append([lit])
        elif bound == 1:
            self.cnf.append(list(lits))
        elif bound > 1:
            self.cnf.extend(
                CardEnc.atleast(
                    lits, bound, vpool=self.pool, encoding=EncType.seqcounter
                ).clauses
            )


def _clusters_formula(grid: Grid, rules: RuleSet) -> _Formula:
    """Clusters の制約。``c_i`` が真なら色 1、偽なら色 0"""

    f = _Formula()
    colour = [f.var(f"c_{i}") for i in range(grid.size)]
    f.primary = colour

    def same(i: int, j: int) -> int:
        a, b = min(i, j), max(i, j)
        e = f.var(f"e_{a}_{b}")
        ca, cb = colour[a], colour[b]
        f.cnf.extend([[-e, -ca, cb], [-e, ca, -cb], [e, ca, cb], [e, -ca, -cb]])
        return e

    for i in range(grid.size):
        cell = int(grid.cells[i])
        single = rules.is_fixed(grid, i)
        if single:
            # 色 1 の点なら c_i は真
            f.cnf.append([colour[i] if cell & rules.values[1] else -colour[i]])
        lits = [same(i, j) for j in grid.neighbors(i)]
        if single:
            f.equals(lits, 1)
        else:
            f.atleast(lits, 2)
    return f


def _sticks_formula(grid: Grid, rules: RuleSet) -> _Formula:
    """Sticks の制約。``h_i`` が真なら横線、偽なら縦線"""

    f = _Formula()
    w, h = grid.w, grid.h
    block = [rules.is_fixed(grid, i) for i in range(grid.size)]
    hor: Dict[int, int] = {
        i: f.var(f"h_{i}") for i in range(grid.size) if not block[i]
    }
    f.primary = list(hor.values())

    def line_cell(x: int, y: int) -> int | None:
        if not grid.in_bounds(x, y):
            return None
        i = grid.index(x, y)
        return None if block[i] else i

    for i in grid.clue_indices():
        n = int(grid.clues[i])
        x, y = grid.coords(i)
        if block[i]:
            lits = []
            for dx, dy, horizontal in ((-1, 0, True), (1, 0, True), (0, -1, False), (0, 1, False)):
                j = line_cell(x + dx, y + dy)
                if j is not None:
                    lits.append(hor[j] if horizontal else -hor[j])
            f.equals(lits, n)
            continue

        options = {True: [], False: []}
        for horizontal in (True, False):
            dx, dy = (1, 0) if horizontal else (0, 1)
            sign = 1 if horizontal else -1
            for start in range(n):
                # 線分はヒントのセルから start 個戻った位置から n セル
                sx, sy = x - dx * start, y - dy * start
                segment = []
                for k in range(n):
                    j = line_cell(sx + dx * k, sy + dy * k)
                    if j is None or (j != i and grid.clues[j] != NO_CLUE):
                        segment = []
                        break
                    segment.append(j)
                if not segment:
                    continue
                p = f.var(f"p_{i}_{int(horizontal)}_{start}")
                for j in segment:
                    f.cnf.append([-p, sign * hor[j]])
                # 線分の両端の外側は同じ向きの線であってはならない
                for ex, ey in ((sx - dx, sy - dy), (sx + dx * n, sy + dy * n)):
                    j = line_cell(ex, ey)
                    if j is not None:
                        f.cnf.append([-p, -sign * hor[j]])
                options[horizontal].append(p)
        f.cnf.append([-hor[i]] + options[True])
        f.cnf.append([hor[i]] + options[False])
    return f


_BUILDERS: Dict[str, Callable[[Grid, RuleSet], _Formula]] = {
    "clusters": _clusters_formula,
    "sticks": _sticks_formula,
}


def count_solutions(grid: Grid, rules: RuleSet, limit: int = 2) -> int:
    """出題盤面の解を ``limit`` 個まで数える

    ``grid`` の固定セルとヒントだけを制約として使い、解答用のセルは無視する。
    """

    formula = _BUILDERS[rules.name](grid, rules)
    if formula.unsat:
        return 0
    if not formula.primary:
        return 1

    count = 0
    with Minisat22(bootstrap_with=formula.cnf.clauses) as solver:
        while count < limit and solver.solve():
            count += 1
            # 節に現れない変数はモデルに含まれないので偽として扱う
            true_vars = {lit for lit in solver.get_model() if lit > 0}
            # 主変数だけを対象に同じ割り当てを禁止する
            blocking = [
                -var if var in true_vars else var for var in formula.primary
            ]
            solver.add_clause(blocking)
    return count


def is_unique(grid: Grid, rules: RuleSet) -> bool:
    """与えられたヒントから解が一意か確認する"""
    return count_solutions(grid, rules, limit=2) == 1


__all__ = ["count_solutions", "is_unique"]
