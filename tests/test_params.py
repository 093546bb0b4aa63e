from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))
from logicgrid.errors import ParamsError  # noqa: E402
from logicgrid.params import (  # noqa: E402
    PuzzleParams,
    Symmetry,
    decode_params,
    encode_params,
)
from logicgrid.rules import get_rules  # noqa: E402


def test_decode_full_sticks_params() -> None:
    params = decode_params("sticks", "7x5b30s4")
    assert params == PuzzleParams("sticks", 7, 5, 30, Symmetry.ROT4)


def test_decode_height_defaults_to_width() -> None:
    params = decode_params("clusters", "6")
    assert (params.w, params.h) == (6, 6)


def test_rotate4_falls_back_on_rectangle() -> None:
    base = PuzzleParams("sticks", 5, 5, 20, Symmetry.ROT4)
    params = decode_params("sticks", "8x6", base)
    assert params.symm == Symmetry.ROT2
    assert params.blackpc == 20


def test_unknown_symmetry_rejected() -> None:
    with pytest.raises(ParamsError):
        decode_params("sticks", "7x7b20s9")


def test_encode_params_round_trip() -> None:
    params = PuzzleParams("sticks", 10, 8, 25, Symmetry.REF2)
    assert encode_params(params) == "10x8b25s1"
    assert decode_params("sticks", encode_params(params)) == params
    assert encode_params(params, full=False) == "10x8"
    assert encode_params(PuzzleParams("clusters", 7, 7)) == "7x7"


def test_clusters_validate_params() -> None:
    rules = get_rules("clusters")
    assert rules.validate_params(PuzzleParams("clusters", 7, 7)) is None
    assert rules.validate_params(PuzzleParams("clusters", 1, 1)) is not None
    assert rules.validate_params(PuzzleParams("clusters", 15, 11)) is not None
    assert rules.validate_params(PuzzleParams("clusters", 15, 10)) is None


def test_sticks_validate_params() -> None:
    rules = get_rules("sticks")
    assert rules.validate_params(PuzzleParams("sticks", 7, 7)) is None
    assert rules.validate_params(PuzzleParams("sticks", 13, 7)) is not None
    assert rules.validate_params(PuzzleParams("sticks", 7, 7, blackpc=5)) is not None
    rect = PuzzleParams("sticks", 7, 5, 20, Symmetry.ROT4)
    assert rules.validate_params(rect) is not None
    # サイズだけの検査では対称性とブロック率を見ない
    assert rules.validate_params(rect, full=False) is None


def test_unknown_kind() -> None:
    with pytest.raises(ValueError):
        get_rules("slitherlink")


def test_non_ascii_digits_are_not_numbers() -> None:
    params = decode_params("clusters", "7x٥")
    assert params.h == 0
    assert get_rules("clusters").validate_params(params) is not None
