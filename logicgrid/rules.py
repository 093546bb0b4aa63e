"""パズル種別ごとのルールを表す抽象基底クラスと登録表"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from importlib import import_module
from typing import Dict, List, Optional, Tuple

from .constants import Status
from .grid import Grid, ValidationScratch
from .params import PuzzleParams


class RuleSet(ABC):
    """検証・解答・生成・記述変換に必要なフックをまとめたクラス

    汎用のソルバーと生成器はこのインターフェースだけを通じて盤面を扱う。
    """

    name: str = ""
    # 空白セルに試す 2 通りの値 (手の 'A' / 'B'、解答文字 '0' / '1' に対応)
    values: Tuple[int, int] = (0, 0)
    # 変更できないセル (ヒントやブロック) を示すフラグ
    fixed_mask: int = 0
    # 表示用のエラーフラグ
    error_flag: int = 0
    # 状態を持つフラグ全体。これ以外のビットは無視する
    state_mask: int = 0
    # 既定のバックトラック深さ
    max_depth: Optional[int] = 1
    # 生成時にヒントを最小化するか
    minimize: bool = True
    # 生成の再試行時に途中まで解けた盤面を引き継ぐか
    keep_partial: bool = False
    presets: List[PuzzleParams] = []

    # --- セル操作 ---

    def is_fixed(self, grid: Grid, i: int) -> bool:
        return bool(grid.cells[i] & self.fixed_mask)

    def is_blank(self, grid: Grid, i: int) -> bool:
        return not grid.cells[i] & self.state_mask

    def value_of(self, grid: Grid, i: int) -> int:
        """セルに入っている候補値 (``values`` のどちらか、空白なら 0)"""
        cell = int(grid.cells[i])
        for value in self.values:
            if cell & value:
                return value
        return 0

    def assign(self, grid: Grid, i: int, value: int) -> None:
        """可変セルに値を書き込む。固定セルは呼び出し側で除外する"""
        grid.cells[i] = value

    def clear_solution(self, grid: Grid) -> None:
        """固定セル以外をすべて空白へ戻す"""
        for i in range(grid.size):
            if not self.is_fixed(grid, i):
                grid.cells[i] = 0

    def fill_solution(self, grid: Grid, solution: str) -> None:
        """'0' / '1' / '-' の文字列を可変セルへ書き込む

        固定セルの文字は無視する。長さや文字が不正なら ``ValueError``。
        """

        if len(solution) != grid.size:
            raise ValueError("solution length does not match the grid")
        for i, ch in enumerate(solution):
            if ch not in "01-":
                raise ValueError(f"invalid solution character {ch!r}")
            if self.is_fixed(grid, i):
                continue
            if ch == "-":
                self.assign(grid, i, 0)
            else:
                self.assign(grid, i, self.values[int(ch)])

    def strip_errors(self, grid: Grid) -> None:
        grid.cells &= ~self.error_flag & 0xFF

    def clue_count(self, grid: Grid) -> int:
        """公開されるヒントの個数"""
        return sum(1 for _ in grid.clue_indices())

    # --- 検証 ---

    @abstractmethod
    def compute_status(self, grid: Grid, scratch: ValidationScratch) -> Status:
        """盤面の状態を返し、``scratch.errors`` にセルごとの誤りを書き込む"""

    # --- 記述文字列 ---

    @abstractmethod
    def encode_description(self, grid: Grid) -> str:
        """ヒント・ブロック配置を記述文字列へ変換する"""

    @abstractmethod
    def decode_description(self, params: PuzzleParams, desc: str) -> Grid:
        """記述文字列から初期盤面を作る。不正なら ``DescriptionError``"""

    # --- 生成 ---

    def place_fixed(self, grid: Grid, params: PuzzleParams, rng: random.Random) -> None:
        """解の塗り分け前に固定セルを配置する"""

    @abstractmethod
    def fill_random(self, grid: Grid, rng: random.Random, attempt: int) -> None:
        """固定セル以外に一様乱数で値を割り当てる"""

    @abstractmethod
    def derive_clues(
        self, grid: Grid, rng: random.Random, scratch: ValidationScratch
    ) -> None:
        """塗り分け済みの盤面からヒントを作る"""

    # --- パラメータ ---

    @abstractmethod
    def validate_params(self, params: PuzzleParams, full: bool = True) -> Optional[str]:
        """パラメータの誤りを文字列で返す。問題なければ None"""

    def default_params(self) -> PuzzleParams:
        return self.presets[0]

    # --- 表示 ---

    @abstractmethod
    def cell_text(self, grid: Grid, i: int) -> str:
        """ASCII 表示用の 1 文字"""


_REGISTRY: Dict[str, Tuple[str, str]] = {
    "clusters": (".clusters", "ClustersRules"),
    "sticks": (".sticks", "SticksRules"),
}
_CACHE: Dict[str, RuleSet] = {}

KINDS = tuple(sorted(_REGISTRY))


def get_rules(kind: str) -> RuleSet:
    """種別名からルールオブジェクトを取得する"""

    if kind not in _REGISTRY:
        raise ValueError(f"kind は {KINDS} のいずれかで指定")
    if kind not in _CACHE:
        # 循環インポートを避けるため必要になった時点で読み込む
        module_name, class_name = _REGISTRY[kind]
        module = import_module(module_name, __package__)
        _CACHE[kind] = getattr(module, class_name)()
    return _CACHE[kind]


__all__ = ["RuleSet", "KINDS", "get_rules"]
