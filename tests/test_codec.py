from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))
from logicgrid import codec  # noqa: E402
from logicgrid.clusters import F_COLOR_0, F_COLOR_1, F_SINGLE  # noqa: E402
from logicgrid.errors import DescriptionError, MoveRejected  # noqa: E402
from logicgrid.grid import Grid  # noqa: E402
from logicgrid.params import PuzzleParams  # noqa: E402
from logicgrid.sticks import F_BLOCK, F_HOR, F_VER  # noqa: E402


def _sticks(w: int, h: int = 1) -> PuzzleParams:
    return PuzzleParams("sticks", w, h)


def _clusters(w: int, h: int = 1) -> PuzzleParams:
    return PuzzleParams("clusters", w, h)


def test_clusters_description_round_trip() -> None:
    grid = Grid.empty(4, 1)
    grid.cells[:] = [
        F_COLOR_0 | F_SINGLE,
        F_COLOR_0 | F_SINGLE,
        F_COLOR_1 | F_SINGLE,
        F_COLOR_1 | F_SINGLE,
    ]
    desc = codec.encode_description(grid, "clusters")
    assert desc == "aaAAa"
    assert codec.decode_description(_clusters(4), desc) == grid


def test_clusters_long_runs_use_z() -> None:
    grid = Grid.empty(6, 5)
    grid.cells[27] = F_COLOR_1 | F_SINGLE
    desc = codec.encode_description(grid, "clusters")
    assert desc == "ZCc"
    assert codec.decode_description(_clusters(6, 5), desc) == grid
    # 点の無い 5x5 盤面は z と終端文字だけになる
    assert codec.validate_description(_clusters(5, 5), "za") is None


def test_sticks_description_tokens() -> None:
    grid = Grid.empty(12, 1)
    grid.cells[0] = F_BLOCK
    grid.clues[0] = 2
    grid.clues[1] = 1
    grid.cells[2] = F_BLOCK
    grid.clues[3] = 12
    desc = codec.encode_description(grid, "sticks")
    assert desc == "B2_1B_12h"
    assert codec.decode_description(_sticks(12), desc) == grid


def test_sticks_long_run_uses_z() -> None:
    grid = Grid.empty(12, 3)
    grid.clues[35] = 3
    desc = codec.encode_description(grid, "sticks")
    assert desc == "zi3"
    assert codec.decode_description(_sticks(12, 3), desc) == grid


@pytest.mark.parametrize(
    "params, desc, message",
    [
        (_clusters(2), "b", "Description is too short"),
        (_clusters(2), "d", "Description is too long"),
        (_clusters(2), "a!b", "Description contains invalid characters"),
        (_sticks(2), "a", "Description is too short"),
        (_sticks(2), "c", "Description is too long"),
        (_sticks(2), "BBB", "Description is too long"),
        (_sticks(2), "1_2_3", "Description is too long"),
        (_sticks(2), "a?", "Description contains invalid characters"),
        (_sticks(2), "99999999999a", "Description contains an invalid clue"),
        (_sticks(2), "3a", "Description contains an invalid clue"),
        (_sticks(3), "aB5", "Description contains an invalid clue"),
    ],
)
def test_validate_description_errors(params: PuzzleParams, desc: str, message: str) -> None:
    assert codec.validate_description(params, desc) == message
    with pytest.raises(DescriptionError):
        codec.new_game(params, desc)


def test_validate_description_accepts_valid() -> None:
    assert codec.validate_description(_clusters(2), "c") is None
    assert codec.validate_description(_sticks(2), "BB") is None
    assert codec.validate_description(_sticks(2), "2a") is None


def test_apply_move_sets_cells() -> None:
    state = codec.new_game(_sticks(2), "2a")
    new_state = codec.apply_move(state, "A0;A1;")
    assert list(new_state.grid.cells) == [F_HOR, F_HOR]
    assert new_state.completed
    assert not new_state.cheated
    # 元の状態は変わらない
    assert not state.grid.cells.any()


def test_apply_move_marks_errors() -> None:
    state = codec.new_game(_sticks(2), "2a")
    new_state = codec.apply_move(state, "A0;B1")
    assert not new_state.completed
    assert new_state.error_cells == [0]
    cleared = codec.apply_move(new_state, "C1;")
    assert cleared.error_cells == []
    assert cleared.grid.cells[1] == 0


def test_apply_move_skips_fixed_cells() -> None:
    state = codec.new_game(_clusters(4), "aaAAa")
    new_state = codec.apply_move(state, "B0;C3;")
    assert new_state.grid == state.grid
    state = codec.new_game(_sticks(2), "Ba")
    new_state = codec.apply_move(state, "A0;B1;")
    assert new_state.grid.cells[0] == F_BLOCK
    assert new_state.grid.cells[1] == F_VER


def test_cheated_only_for_solution_move() -> None:
    state = codec.new_game(_sticks(2), "2a")
    cheated = codec.apply_move(state, codec.encode_solution("00"))
    assert cheated.cheated and cheated.completed
    after = codec.apply_move(cheated, "C1;")
    assert not after.cheated
    assert not after.completed


@pytest.mark.parametrize(
    "move",
    ["", ";", "A2;", "A-1;", "D0;", "A;", "A0;;B1;", "S0", "S000", "S0x", "A0 ;", "A١;"],
)
def test_apply_move_rejects_malformed(move: str) -> None:
    state = codec.new_game(_sticks(2), "2a")
    before = state.grid.copy()
    with pytest.raises(MoveRejected):
        codec.apply_move(state, move)
    assert state.grid == before


def test_encode_assignments() -> None:
    assert codec.encode_assignments([(0, 0), (3, 1), (5, None)]) == "A0;B3;C5;"
    moves = codec.parse_move("A0;B3;C5;", 6)
    assert moves == [
        codec.CellMove("A", 0),
        codec.CellMove("B", 3),
        codec.CellMove("C", 5),
    ]
