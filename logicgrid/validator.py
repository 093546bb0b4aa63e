"""盤面の状態判定と、パズルデータの整合性確認を行うモジュール"""

from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

from .constants import Status
from .errors import DescriptionError
from .grid import Grid, PuzzleState, ValidationScratch
from .params import PuzzleParams, Symmetry
from .rules import RuleSet, get_rules
from .solver import solution_string, solve_grid

if TYPE_CHECKING:
    from .puzzle_types import Puzzle


def compute_status(
    grid: Grid, rules: RuleSet, scratch: Optional[ValidationScratch] = None
) -> Status:
    """盤面の状態を COMPLETE / UNFINISHED / INVALID で返す

    盤面そのものは変更しない。ソルバーから繰り返し呼ぶ場合は
    ``scratch`` を渡して作業領域の再確保を避ける。
    """

    if scratch is None:
        scratch = ValidationScratch.for_grid(grid)
    return rules.compute_status(grid, scratch)


def find_errors(grid: Grid, rules: RuleSet) -> tuple[Status, List[int]]:
    """状態と誤りのあるセルの一覧を返す"""

    scratch = ValidationScratch.for_grid(grid)
    status = rules.compute_status(grid, scratch)
    return status, [int(i) for i in scratch.errors.nonzero()[0]]


def annotate_errors(state: PuzzleState) -> Status:
    """表示用に各セルのエラーフラグを付け直す

    ソルバーはこの関数を使わない。結果の状態も ``state`` に書き戻す。
    """

    rules = get_rules(state.kind)
    status, error_cells = find_errors(state.grid, rules)
    rules.strip_errors(state.grid)
    for i in error_cells:
        state.grid.cells[i] |= rules.error_flag
    state.error_cells = error_cells
    state.completed = status == Status.COMPLETE
    return status


def validate_puzzle(puzzle: Puzzle) -> None:
    """保存用のパズルデータが整合しているか確認する

    記述文字列が盤面サイズと一致し、解答がルールを満たしソルバーの結果と一致
    することを確かめる。問題があれば ``ValueError`` を送出する。
    """

    kind = puzzle.get("kind")
    try:
        rules = get_rules(str(kind))
    except ValueError as exc:
        raise ValueError("kind フィールドが不正です") from exc

    size_dict = puzzle.get("size")
    if not isinstance(size_dict, dict):
        raise ValueError("size フィールドが存在しません")
    params_dict = puzzle.get("params", {})
    params = PuzzleParams(
        kind=rules.name,
        w=size_dict["cols"],
        h=size_dict["rows"],
        blackpc=params_dict.get("blackpc", 20),
        symm=Symmetry(params_dict.get("symm", 2)),
    )
    message = rules.validate_params(params, full=False)
    if message is not None:
        raise ValueError(f"size が不正です: {message}")

    desc = puzzle.get("desc")
    if not isinstance(desc, str):
        raise ValueError("desc フィールドが存在しません")
    try:
        grid = rules.decode_description(params, desc)
    except DescriptionError as exc:
        raise ValueError(f"desc が不正です: {exc}") from exc

    solution = puzzle.get("solution")
    if not isinstance(solution, str) or len(solution) != grid.size:
        raise ValueError("solution の長さが盤面サイズと一致しません")

    solved = grid.copy()
    try:
        rules.fill_solution(solved, solution)
    except ValueError as exc:
        raise ValueError(f"solution が不正です: {exc}") from exc
    if compute_status(solved, rules) != Status.COMPLETE:
        raise ValueError("solution が盤面のルールを満たしていません")

    # 出題盤面から同じ完成形へ解き切れることを確かめる
    generation_params = puzzle.get("generationParams") or {}
    max_depth = generation_params.get("maxDepth", rules.max_depth)
    replay = grid.copy()
    if solve_grid(replay, rules, max_depth=max_depth) != Status.COMPLETE:
        raise ValueError("desc からソルバーで解き切れません")
    if solution_string(replay, rules) != solution_string(solved, rules):
        raise ValueError("solution がソルバーの解と一致しません")

    clue_count = puzzle.get("clueCount")
    if clue_count is not None and clue_count != rules.clue_count(grid):
        raise ValueError("clueCount が desc と一致しません")


__all__ = [
    "compute_status",
    "find_errors",
    "annotate_errors",
    "validate_puzzle",
]
