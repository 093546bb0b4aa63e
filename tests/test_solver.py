from pathlib import Path
import random
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))
from logicgrid import codec, generator, solver  # noqa: E402
from logicgrid.constants import Status  # noqa: E402
from logicgrid.errors import PuzzleInvalid  # noqa: E402
from logicgrid.grid import Grid, ValidationScratch  # noqa: E402
from logicgrid.params import PuzzleParams  # noqa: E402
from logicgrid.rules import get_rules  # noqa: E402
from logicgrid.sticks import F_HOR  # noqa: E402


def test_solver_try_forces_both_cells() -> None:
    rules = get_rules("sticks")
    grid = Grid.empty(2, 1)
    grid.clues[0] = 2
    scratch = ValidationScratch.for_grid(grid)
    stats = solver.SolverStats()
    assert solver.solver_try(grid, rules, scratch, stats) == 2
    assert list(grid.cells) == [F_HOR, F_HOR]
    assert stats.forced == 2
    assert stats.steps > 0


def test_solve_grid_deduction_only() -> None:
    rules = get_rules("sticks")
    grid = Grid.empty(2, 1)
    grid.clues[0] = 2
    assert solver.solve_grid(grid, rules, max_depth=0) == Status.COMPLETE


def test_ambiguous_grid_is_left_untouched() -> None:
    rules = get_rules("sticks")
    grid = Grid.empty(2, 1)
    stats = solver.SolverStats()
    status = solver.solve_grid(grid, rules, max_depth=1, stats=stats)
    assert status == Status.UNFINISHED
    # 仮置きは盤面のコピー上で行われる
    assert not grid.cells.any()
    assert stats.max_depth == 1
    assert stats.guessed == 0


def test_host_solve_returns_solution_move() -> None:
    state = codec.new_game(PuzzleParams("sticks", 2, 1), "2a")
    move = solver.solve(state)
    assert move == "S00"
    # プレイヤーの盤面は変更されない
    assert not state.grid.cells.any()
    solved = codec.apply_move(state, move)
    assert solved.completed
    assert solved.cheated


def test_host_solve_clusters_keeps_fixed_cells() -> None:
    state = codec.new_game(PuzzleParams("clusters", 4, 1), "aaAAa")
    assert solver.solve(state) == "S0011"


def test_host_solve_invalid_puzzle() -> None:
    # 長さ 2 の線がブロックで塞がれている
    state = codec.new_game(PuzzleParams("sticks", 2, 1), "2B")
    with pytest.raises(PuzzleInvalid, match="Puzzle is invalid."):
        solver.solve(state)


def test_solve_continues_from_current_state() -> None:
    state = codec.new_game(PuzzleParams("sticks", 3, 1), "c")
    # 手がかりが無くても、置かれた手はそのまま解答に残る
    state = codec.apply_move(state, "A0;B2;")
    assert solver.solve(state) == "S0-1"


def test_backtracking_completes_where_deduction_stalls() -> None:
    rules = get_rules("clusters")
    params = PuzzleParams("clusters", 7, 7)
    guessed_seeds = []
    for seed in range(6):
        puzzle = generator.generate_grid(params, random.Random(seed)).puzzle
        stats = solver.SolverStats()
        assert solver.solve_grid(puzzle.copy(), rules, max_depth=1, stats=stats) == Status.COMPLETE
        if stats.guessed == 0:
            continue
        guessed_seeds.append(seed)
        # 仮置きで確定したセルがある盤面は演繹だけでは解き切れない
        assert solver.solve_grid(puzzle.copy(), rules, max_depth=0) == Status.UNFINISHED
    assert guessed_seeds
