"""Clusters / Sticks の検証・解答・生成エンジンを公開するパッケージ用モジュール"""

from importlib import import_module
from typing import Any

__all__ = [
    "generate_puzzle",
    "generate_multiple_puzzles",
    "new_game_desc",
    "puzzle_to_ascii",
    "new_game",
    "apply_move",
    "validate_description",
    "solve",
    "validate_puzzle",
    "save_puzzle",
    "save_puzzles",
    "load_puzzle",
    "PuzzleParams",
    "Status",
]

# 公開名と定義モジュールの対応
_EXPORTS = {
    "generate_puzzle": ".generator",
    "generate_multiple_puzzles": ".generator",
    "new_game_desc": ".generator",
    "puzzle_to_ascii": ".generator",
    "new_game": ".codec",
    "apply_move": ".codec",
    "validate_description": ".codec",
    "solve": ".solver",
    "validate_puzzle": ".validator",
    "save_puzzle": ".puzzle_io",
    "save_puzzles": ".puzzle_io",
    "load_puzzle": ".puzzle_io",
    "PuzzleParams": ".params",
    "Status": ".constants",
}


def __getattr__(name: str) -> Any:
    """必要になったタイミングで対象モジュールを読み込む"""

    if name in _EXPORTS:
        module = import_module(_EXPORTS[name], __name__)
        return getattr(module, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name}")
