"""パズル構築用のヘルパー関数をまとめたモジュール"""

from __future__ import annotations

# datetime モジュールから UTC 定数も合わせてインポート
from datetime import datetime, UTC
import logging
import random
from typing import Any, Dict, Optional

import numpy as np
from numba import njit

from .constants import Status, _evaluate_difficulty
from .grid import NO_CLUE, Grid, ValidationScratch
from .params import PuzzleParams
from .puzzle_types import Puzzle
from .rules import RuleSet
from .solver import SolverStats, solution_string, solve_grid

logger = logging.getLogger(__name__)

# JSON スキーマのバージョン
SCHEMA_VERSION = "1.0"


def _solvable(
    grid: Grid,
    rules: RuleSet,
    *,
    max_depth: Optional[int],
    scratch: ValidationScratch,
    stats: Optional[SolverStats] = None,
) -> bool:
    """固定セルとヒントだけの盤面から解き切れるか"""

    trial = grid.copy()
    rules.clear_solution(trial)
    return solve_grid(
        trial, rules, max_depth=max_depth, scratch=scratch, stats=stats
    ) == Status.COMPLETE


def minimize_clues(
    grid: Grid,
    rules: RuleSet,
    rng: random.Random,
    *,
    max_depth: Optional[int] = None,
    scratch: Optional[ValidationScratch] = None,
) -> int:
    """ヒントをランダムな順に 1 つずつ外し、解けなくなるものだけ戻す

    盤面全体のインデックスを一度だけシャッフルして走査する。
    外したヒントの個数を返す。
    """

    if scratch is None:
        scratch = ValidationScratch.for_grid(grid)
    order = list(range(grid.size))
    rng.shuffle(order)

    removed = 0
    for i in order:
        clue = int(grid.clues[i])
        if clue == NO_CLUE:
            continue
        grid.clues[i] = NO_CLUE
        if _solvable(grid, rules, max_depth=max_depth, scratch=scratch):
            removed += 1
        else:
            grid.clues[i] = clue
    logger.debug("ヒント削減: %d 個削除", removed)
    return removed


def is_minimal(
    grid: Grid, rules: RuleSet, *, max_depth: Optional[int] = None
) -> bool:
    """どのヒントを 1 つ外しても解けなくなるか確認する"""

    scratch = ValidationScratch.for_grid(grid)
    for i in list(grid.clue_indices()):
        clue = int(grid.clues[i])
        grid.clues[i] = NO_CLUE
        try:
            if _solvable(grid, rules, max_depth=max_depth, scratch=scratch):
                return False
        finally:
            grid.clues[i] = clue
    return True


@njit
def _dispersion_core(mask: np.ndarray, w: int, h: int) -> float:
    """3x3 ブロックのうちヒントを含むものの割合"""

    block_rows = (h + 2) // 3
    block_cols = (w + 2) // 3
    total = block_rows * block_cols
    if total == 0:
        return 0.0
    filled = 0
    for br in range(block_rows):
        for bc in range(block_cols):
            found = False
            for r in range(br * 3, min((br + 1) * 3, h)):
                for c in range(bc * 3, min((bc + 1) * 3, w)):
                    if mask[r * w + c]:
                        found = True
                        break
                if found:
                    break
            if found:
                filled += 1
    return filled / total


def _calculate_hint_dispersion(grid: Grid, rules: RuleSet) -> float:
    """ヒントが盤面に均等に散らばっている度合いを返す

    盤面を 3x3 のブロックに分け、各ブロックに少なくとも1つヒントが存在する
    割合を計算することでヒントの偏りを数値化する。
    """

    mask = np.array(
        [
            grid.clues[i] != NO_CLUE or rules.is_fixed(grid, i)
            for i in range(grid.size)
        ],
        dtype=np.bool_,
    )
    return round(float(_dispersion_core(mask, grid.w, grid.h)), 3)


def _build_puzzle_dict(
    *,
    rules: RuleSet,
    params: PuzzleParams,
    puzzle_grid: Grid,
    solved_grid: Grid,
    solver_stats: SolverStats,
    attempts: int,
    generation_params: Dict[str, Any],
    seed_hash: str,
) -> Puzzle:
    """出力用のパズル辞書を組み立てる

    ``puzzle_grid`` は出題盤面 (固定セルとヒントのみ)、``solved_grid`` は
    その完成形。
    """

    created_at = datetime.now(UTC).date().isoformat()
    timestamp = int(datetime.now(UTC).timestamp() * 1000)
    return {
        "schemaVersion": SCHEMA_VERSION,
        "id": f"{rules.name}_{params.w}x{params.h}_{timestamp}",
        "kind": rules.name,
        "size": {"rows": params.h, "cols": params.w},
        "params": {"blackpc": params.blackpc, "symm": int(params.symm)},
        "desc": rules.encode_description(puzzle_grid),
        "solution": solution_string(solved_grid, rules),
        "clueCount": rules.clue_count(puzzle_grid),
        "hintDispersion": _calculate_hint_dispersion(puzzle_grid, rules),
        "attempts": attempts,
        "solverStats": {
            "steps": solver_stats.steps,
            "maxDepth": solver_stats.max_depth,
            "forced": solver_stats.forced,
            "guessed": solver_stats.guessed,
        },
        "difficultyEval": _evaluate_difficulty(
            solver_stats.steps, solver_stats.max_depth
        ),
        "generationParams": generation_params,
        "seedHash": seed_hash,
        "createdBy": "logicgrid",
        "createdAt": created_at,
    }


__all__ = [
    "SCHEMA_VERSION",
    "minimize_clues",
    "is_minimal",
    "_build_puzzle_dict",
]
