import json
import hashlib
from pathlib import Path
import sys
from typing import Any, Dict, cast
import random

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))
from logicgrid import codec  # noqa: E402
from logicgrid import generator  # noqa: E402
from logicgrid import puzzle_builder  # noqa: E402
from logicgrid import puzzle_io  # noqa: E402
from logicgrid import solver  # noqa: E402
from logicgrid import validator  # noqa: E402
from logicgrid.constants import (  # noqa: E402
    ATTEMPT_LIMIT_ENV,
    DEFAULT_ATTEMPT_LIMIT,
    Status,
    resolve_attempt_limit,
)
from logicgrid.errors import GenerationFailed, ParamsError  # noqa: E402
from logicgrid.grid import Grid  # noqa: E402
from logicgrid.params import PuzzleParams, Symmetry  # noqa: E402
from logicgrid.rules import get_rules  # noqa: E402
from logicgrid.clusters import COLMASK  # noqa: E402
from logicgrid.sticks import F_BLOCK, _set_blacks  # noqa: E402


def test_generate_puzzle_structure(tmp_path: Path) -> None:
    puzzle = cast(Dict[str, Any], generator.generate_puzzle("sticks", 5, seed=0))
    # JSON に変換できるか確認
    data = json.dumps(puzzle)
    assert puzzle["schemaVersion"] == puzzle_builder.SCHEMA_VERSION
    assert puzzle["kind"] == "sticks"
    assert puzzle["size"] == {"rows": 5, "cols": 5}
    assert len(puzzle["solution"]) == 25
    assert puzzle["id"].startswith("sticks_5x5_")
    assert puzzle["solverStats"]["steps"] > 0
    assert puzzle["solverStats"]["maxDepth"] == 0
    assert puzzle["difficultyEval"] in {"easy", "normal", "hard", "expert"}
    assert puzzle["generationParams"]["params"] == "5x5b20s2"
    assert puzzle["generationParams"]["seed"] == 0
    assert puzzle["seedHash"] == hashlib.sha256(b"0").hexdigest()
    # 一時ファイルに保存し読み込んでみる
    file = tmp_path / "puzzle.json"
    file.write_text(data, encoding="utf-8")
    loaded = json.loads(file.read_text(encoding="utf-8"))
    validator.validate_puzzle(loaded)


def test_generate_puzzle_is_reproducible() -> None:
    first = cast(Dict[str, Any], generator.generate_puzzle("sticks", 5, seed=3))
    second = cast(Dict[str, Any], generator.generate_puzzle("sticks", 5, seed=3))
    assert first["desc"] == second["desc"]
    assert first["solution"] == second["solution"]


@pytest.mark.parametrize("kind", ["clusters", "sticks"])
def test_new_game_desc_solves_to_complete(kind: str) -> None:
    params = PuzzleParams(kind, 5, 5)
    rules = get_rules(kind)
    for seed in range(3):
        desc = generator.new_game_desc(params, random.Random(seed))
        assert codec.validate_description(params, desc) is None
        grid = codec.decode_description(params, desc)
        assert solver.solve_grid(grid, rules, max_depth=rules.max_depth) == Status.COMPLETE


@pytest.mark.parametrize("kind", ["clusters", "sticks"])
def test_generated_puzzle_playthrough(kind: str) -> None:
    params = PuzzleParams(kind, 5, 5)
    desc = generator.new_game_desc(params, random.Random(7))
    state = codec.new_game(params, desc)
    assert not state.completed
    move = solver.solve(state)
    finished = codec.apply_move(state, move)
    assert finished.completed
    assert finished.cheated
    assert finished.error_cells == []


def test_description_round_trip_on_generated() -> None:
    for kind in ("clusters", "sticks"):
        params = PuzzleParams(kind, 6, 5)
        result = generator.generate_grid(params, random.Random(11))
        rules = get_rules(kind)
        desc = rules.encode_description(result.puzzle)
        decoded = rules.decode_description(params, desc)
        assert decoded.clue_layout() == result.puzzle.clue_layout()


def test_sticks_clues_are_minimal() -> None:
    rules = get_rules("sticks")
    for seed in range(3):
        params = PuzzleParams("sticks", 5, 5)
        result = generator.generate_grid(params, random.Random(seed))
        assert puzzle_builder.is_minimal(result.puzzle, rules, max_depth=rules.max_depth)


def test_minimize_clues_drops_redundant_block_clue() -> None:
    rules = get_rules("sticks")
    grid = Grid.empty(3, 1)
    grid.cells[2] = F_BLOCK
    # 長さ 2 のヒントだけで解けるのでブロックの数字は不要
    grid.clues[:] = [2, -1, 1]
    for seed in range(4):
        trial = grid.copy()
        removed = puzzle_builder.minimize_clues(trial, rules, random.Random(seed), max_depth=0)
        assert removed == 1
        assert list(trial.clues) == [2, -1, -1]
        assert puzzle_builder.is_minimal(trial, rules, max_depth=0)


def test_clusters_clue_cells_are_singles() -> None:
    params = PuzzleParams("clusters", 6, 6)
    result = generator.generate_grid(params, random.Random(5))
    rules = get_rules("clusters")
    solved = result.solution
    for i in range(solved.size):
        col = solved.cells[i] & COLMASK
        same = sum(1 for j in solved.neighbors(i) if solved.cells[j] & COLMASK == col)
        if rules.is_fixed(result.puzzle, i):
            assert same == 1
        else:
            assert same >= 2


def test_symmetric_block_placement() -> None:
    params = PuzzleParams("sticks", 8, 6, 30, Symmetry.ROT2)
    grid = Grid.empty(8, 6)
    _set_blacks(grid, params, random.Random(2))
    for y in range(6):
        for x in range(8):
            here = bool(grid.cells[y * 8 + x] & F_BLOCK)
            there = bool(grid.cells[(5 - y) * 8 + (7 - x)] & F_BLOCK)
            assert here == there


def test_block_density_without_symmetry() -> None:
    params = PuzzleParams("sticks", 10, 10, 25, Symmetry.NONE)
    grid = Grid.empty(10, 10)
    _set_blacks(grid, params, random.Random(4))
    assert int((grid.cells & F_BLOCK).astype(bool).sum()) == 25


def test_generation_failed_after_attempt_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(generator, "solve_grid", lambda *args, **kwargs: Status.UNFINISHED)
    params = PuzzleParams("sticks", 5, 5)
    with pytest.raises(GenerationFailed) as excinfo:
        generator.generate_grid(params, random.Random(0), attempt_limit=3)
    assert excinfo.value.attempts == 3
    assert excinfo.value.params == params


def test_clusters_sat_rejection_repaints_whole_grid(monkeypatch: pytest.MonkeyPatch) -> None:
    rules = get_rules("clusters")
    seen = []

    def fake_unique(puzzle: Grid, rules_arg: Any) -> bool:
        seen.append(rules.encode_description(puzzle))
        return len(seen) > 1

    monkeypatch.setattr(generator.sat_unique, "is_unique", fake_unique)
    result = generator.generate_grid(
        PuzzleParams("clusters", 5, 5), random.Random(3), sat_check=True
    )
    assert len(seen) == 2
    assert seen[0] != seen[1]
    assert rules.encode_description(result.puzzle) == seen[1]


def test_invalid_params_rejected() -> None:
    with pytest.raises(ParamsError):
        generator.new_game_desc(PuzzleParams("sticks", 7, 5, 20, Symmetry.ROT4), random.Random(0))
    with pytest.raises(ValueError):
        generator.generate_puzzle("sticks", 5, symmetry="spiral")


def test_resolve_attempt_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ATTEMPT_LIMIT_ENV, raising=False)
    assert resolve_attempt_limit() == DEFAULT_ATTEMPT_LIMIT
    monkeypatch.setenv(ATTEMPT_LIMIT_ENV, "7")
    assert resolve_attempt_limit() == 7
    assert resolve_attempt_limit(3) == 3
    monkeypatch.setenv(ATTEMPT_LIMIT_ENV, "abc")
    assert resolve_attempt_limit() == DEFAULT_ATTEMPT_LIMIT
    with pytest.raises(ValueError):
        resolve_attempt_limit(0)


def test_validate_puzzle_detects_tampering() -> None:
    puzzle = cast(Dict[str, Any], generator.generate_puzzle("sticks", 5, seed=1))
    broken = dict(puzzle)
    flipped = "".join("1" if c == "0" else "0" if c == "1" else c for c in puzzle["solution"])
    broken["solution"] = flipped
    with pytest.raises(ValueError):
        validator.validate_puzzle(broken)
    broken = dict(puzzle, clueCount=puzzle["clueCount"] + 1)
    with pytest.raises(ValueError):
        validator.validate_puzzle(broken)
    broken = dict(puzzle, desc=puzzle["desc"] + "a")
    with pytest.raises(ValueError):
        validator.validate_puzzle(broken)


def test_puzzle_to_ascii() -> None:
    puzzle = cast(Dict[str, Any], generator.generate_puzzle("clusters", 5, 4, seed=2))
    text = generator.puzzle_to_ascii(puzzle)
    lines = text.splitlines()
    assert len(lines) == 4
    # 出題盤面と完成形を並べて表示する
    assert all(len(line.split()) == 10 for line in lines)
    for line in lines:
        assert "." not in line.split("   ")[1]


def test_save_and_load_puzzle(tmp_path: Path) -> None:
    puzzle = cast(Dict[str, Any], generator.generate_puzzle("clusters", 5, seed=4))
    path = puzzle_io.save_puzzle(puzzle, directory=tmp_path)
    assert path.exists()
    assert path.name == puzzle_io.DEFAULT_FILENAME
    loaded = puzzle_io.load_puzzle(path)
    assert loaded == puzzle


@pytest.mark.slow
def test_generate_multiple_puzzles_sequential(tmp_path: Path) -> None:
    puzzles = generator.generate_multiple_puzzles("sticks", 5, 5, 3, seed=10)
    assert len(puzzles) == 3
    assert len({p["seedHash"] for p in puzzles}) == 3
    path = puzzle_io.save_puzzles(puzzles, tmp_path)
    assert len(puzzle_io.load_puzzles(path)) == 3


@pytest.mark.slow
def test_generate_multiple_puzzles_parallel() -> None:
    puzzles = generator.generate_multiple_puzzles("clusters", 6, 6, 2, seed=20, jobs=2)
    assert len(puzzles) == 2
    for puzzle in puzzles:
        validator.validate_puzzle(puzzle)


@pytest.mark.slow
@pytest.mark.parametrize("kind, size", [("clusters", 10), ("sticks", 10)])
def test_generate_large_puzzles(kind: str, size: int) -> None:
    puzzle = cast(Dict[str, Any], generator.generate_puzzle(kind, size, seed=0))
    validator.validate_puzzle(puzzle)


@pytest.mark.slow
@pytest.mark.parametrize("symmetry", ["none", "mirror2", "rotate2", "mirror4", "rotate4"])
def test_generate_with_each_symmetry(symmetry: str) -> None:
    puzzle = cast(
        Dict[str, Any],
        generator.generate_puzzle("sticks", 6, seed=1, symmetry=symmetry),
    )
    validator.validate_puzzle(puzzle)
