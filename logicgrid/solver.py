# 強制手の演繹とバックトラックを組み合わせたソルバーモジュール

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .constants import Status
from .errors import PuzzleInvalid
from .grid import Grid, PuzzleState, ValidationScratch
from .rules import RuleSet, get_rules

logger = logging.getLogger(__name__)


@dataclass
class SolverStats:
    """ソルバーが行った処理の統計"""

    steps: int = 0  # 検証関数を呼んだ回数
    forced: int = 0  # 1 セルの試し置きで確定したセル数
    guessed: int = 0  # バックトラックで確定したセル数
    max_depth: int = 0  # 到達したバックトラックの深さ

    def as_dict(self) -> dict[str, int]:
        return {
            "steps": self.steps,
            "forced": self.forced,
            "guessed": self.guessed,
            "max_depth": self.max_depth,
        }


def _status(
    grid: Grid, rules: RuleSet, scratch: ValidationScratch, stats: Optional[SolverStats]
) -> Status:
    if stats is not None:
        stats.steps += 1
    return rules.compute_status(grid, scratch)


def solver_try(
    grid: Grid,
    rules: RuleSet,
    scratch: ValidationScratch,
    stats: Optional[SolverStats] = None,
) -> int:
    """空白セルに 2 通りの値を試し、片方が矛盾するなら他方を確定する

    両方とも矛盾する場合は片方を置いたままにし、次の検証で INVALID になる。
    確定したセル数を返す。
    """

    first, second = rules.values
    forced = 0
    for i in range(grid.size):
        if not rules.is_blank(grid, i):
            continue
        original = grid.cells[i]
        for value, other in ((first, second), (second, first)):
            rules.assign(grid, i, value)
            if _status(grid, rules, scratch, stats) == Status.INVALID:
                rules.assign(grid, i, other)
                forced += 1
                break
            grid.cells[i] = original
    if stats is not None:
        stats.forced += forced
    return forced


def solver_recurse(
    grid: Grid,
    rules: RuleSet,
    scratch: ValidationScratch,
    *,
    max_depth: Optional[int],
    depth: int = 0,
    stats: Optional[SolverStats] = None,
) -> int:
    """演繹が止まったときに仮置きして再帰的に解き、矛盾した値の逆を確定する

    仮置きは毎回コピーした盤面で行うため、元の盤面は確定したセル以外
    変化しない。確定したセル数を返す。
    """

    first, second = rules.values
    forced = 0
    for i in range(grid.size):
        if not rules.is_blank(grid, i):
            continue
        for value, other in ((first, second), (second, first)):
            trial = grid.copy()
            rules.assign(trial, i, value)
            result = solve_grid(
                trial,
                rules,
                max_depth=max_depth,
                scratch=scratch,
                stats=stats,
                _depth=depth + 1,
            )
            if result == Status.INVALID:
                rules.assign(grid, i, other)
                forced += 1
                break
    if stats is not None:
        stats.guessed += forced
    return forced


def solve_grid(
    grid: Grid,
    rules: RuleSet,
    *,
    max_depth: Optional[int] = None,
    scratch: Optional[ValidationScratch] = None,
    stats: Optional[SolverStats] = None,
    _depth: int = 0,
) -> Status:
    """演繹を不動点まで進め、止まったらバックトラックを 1 段行う処理を繰り返す

    :param max_depth: バックトラックの最大深さ。``None`` なら無制限、0 なら演繹のみ
    :return: 最後に検証した盤面の状態。COMPLETE でも INVALID でもなければ
        このソルバーでは解き切れない
    """

    if scratch is None:
        scratch = ValidationScratch.for_grid(grid)
    if stats is not None and _depth > stats.max_depth:
        stats.max_depth = _depth

    while True:
        status = _status(grid, rules, scratch, stats)
        if status != Status.UNFINISHED:
            return status
        if solver_try(grid, rules, scratch, stats):
            continue
        if max_depth is not None and _depth >= max_depth:
            break
        if solver_recurse(
            grid, rules, scratch, max_depth=max_depth, depth=_depth, stats=stats
        ):
            continue
        break
    return status


def solution_string(grid: Grid, rules: RuleSet) -> str:
    """各セルを '0' / '1' / '-' で表した文字列"""

    first, second = rules.values
    chars = []
    for i in range(grid.size):
        value = rules.value_of(grid, i)
        chars.append("0" if value == first else "1" if value == second else "-")
    return "".join(chars)


def solve(state: PuzzleState, *, max_depth: Optional[int] = None) -> str:
    """現在の状態から解き、``S`` で始まる解答手を返す

    プレイヤーの盤面は変更しない。INVALID に達した場合は
    ``PuzzleInvalid`` を送出する。

    :param max_depth: 省略時はルールの既定値 (最低 1 段) を使う
    """

    rules = get_rules(state.kind)
    if max_depth is None:
        max_depth = max(1, rules.max_depth or 0)
    solved = state.grid.copy()
    rules.strip_errors(solved)
    result = solve_grid(solved, rules, max_depth=max_depth)
    if result == Status.INVALID:
        logger.info("解答不能な盤面です")
        raise PuzzleInvalid()
    return "S" + solution_string(solved, rules)


__all__ = [
    "SolverStats",
    "solver_try",
    "solver_recurse",
    "solve_grid",
    "solution_string",
    "solve",
]
