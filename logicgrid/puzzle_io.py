"""パズルを保存・読み込みする処理をまとめたモジュール"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

from .puzzle_types import Puzzle

# 書き出すファイル名の既定値
DEFAULT_FILENAME = "map_logicgrid.json"


def save_puzzle(
    puzzle: Puzzle, directory: str | Path = "data", filename: str = DEFAULT_FILENAME
) -> Path:
    """単一のパズルを JSON 形式で保存する"""
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    file_path = path / filename
    with file_path.open("w", encoding="utf-8") as fp:
        json.dump(puzzle, fp, ensure_ascii=False, indent=2)
    return file_path


def save_puzzles(
    puzzles: List[Puzzle],
    directory: str | Path = "data",
    filename: str = DEFAULT_FILENAME,
) -> Path:
    """複数パズルをまとめて JSON 保存する"""
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    file_path = path / filename
    with file_path.open("w", encoding="utf-8") as fp:
        json.dump(puzzles, fp, ensure_ascii=False, indent=2)
    return file_path


def load_puzzles(path: str | Path, *, validate: bool = True) -> List[Puzzle]:
    """``save_puzzle`` / ``save_puzzles`` で書き出したファイルを読み込む

    単一のパズルを保存したファイルでも 1 要素のリストとして返す。
    ``validate`` が True なら各パズルの整合性も確認する。
    """

    with Path(path).open("r", encoding="utf-8") as fp:
        data = json.load(fp)
    puzzles: List[Puzzle] = data if isinstance(data, list) else [data]
    if validate:
        # validator はソルバーを読み込むため必要なときだけインポートする
        from .validator import validate_puzzle

        for puzzle in puzzles:
            validate_puzzle(puzzle)
    return puzzles


def load_puzzle(path: str | Path, *, validate: bool = True) -> Puzzle:
    """単一のパズルを読み込む"""
    puzzles = load_puzzles(path, validate=validate)
    if len(puzzles) != 1:
        raise ValueError(f"{path} には {len(puzzles)} 件のパズルがあります")
    return puzzles[0]


__all__ = ["DEFAULT_FILENAME", "save_puzzle", "save_puzzles", "load_puzzle", "load_puzzles"]
