"""Clusters / Sticks の盤面生成モジュール"""

from __future__ import annotations

import logging
import time
import random
import concurrent.futures
import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, cast

from . import sat_unique
from .constants import Status, resolve_attempt_limit
from .errors import GenerationFailed, ParamsError
from .grid import Grid, ValidationScratch
from .params import SYMMETRY_NAMES, PuzzleParams, Symmetry, encode_params
from .puzzle_builder import _build_puzzle_dict, minimize_clues
from .puzzle_io import save_puzzle, save_puzzles
from .puzzle_types import Puzzle
from .rules import KINDS, RuleSet, get_rules
from .solver import SolverStats, solve_grid
from .validator import validate_puzzle

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    """ログ出力の設定を行う関数

    Python の ``logging`` モジュールはアプリの動作状況を
    画面やファイルに出力する仕組みです。ここでは ``basicConfig`` を
    使ってフォーマットと出力レベルをまとめて設定します。

    :param level: 表示するログの重要度。``logging.INFO`` などを指定
    """

    # logging.basicConfig でフォーマットやレベルを一括設定する
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


# 並列生成で失敗したジョブを何巡まで再投入するか
RETRY_LIMIT = 20


class GenerationPhase(Enum):
    """生成処理の状態"""

    FILL_RANDOM = "fill_random"
    ASSIGN_CLUES = "assign_clues"
    VALIDATE_SOLVABLE = "validate_solvable"
    MINIMIZE_CLUES = "minimize_clues"
    DONE = "done"


@dataclass
class GenerationResult:
    """``generate_grid`` の結果

    ``puzzle`` は固定セルとヒントだけの出題盤面、``solution`` はその完成形。
    """

    puzzle: Grid
    solution: Grid
    attempts: int
    stats: SolverStats


def _check_params(rules: RuleSet, params: PuzzleParams) -> None:
    message = rules.validate_params(params, full=True)
    if message is not None:
        raise ParamsError(message)


def generate_grid(
    params: PuzzleParams,
    rng: random.Random,
    *,
    attempt_limit: Optional[int] = None,
    max_depth: Optional[int] = None,
    sat_check: bool = False,
) -> GenerationResult:
    """解けることが保証された盤面を 1 つ作る

    塗り分け → ヒント付与 → 解けるか確認 → ヒント削減 の順に状態遷移し、
    確認に失敗したら塗り分けからやり直す。

    :param attempt_limit: 塗り分けをやり直す上限。``None`` なら
        環境変数か既定値を使う
    :param max_depth: 解けるか確認するときのバックトラック深さ。
        ``None`` ならルールの既定値
    :param sat_check: True なら PySAT でも解の一意性を確認する
    :raises GenerationFailed: 上限までに解ける盤面を作れなかった
    """

    rules = get_rules(params.kind)
    _check_params(rules, params)
    limit = resolve_attempt_limit(attempt_limit)
    depth = rules.max_depth if max_depth is None else max_depth

    grid = Grid.empty(params.w, params.h)
    rules.place_fixed(grid, params, rng)
    scratch = ValidationScratch.for_grid(grid)

    attempts = 0
    solution: Optional[Grid] = None
    phase = GenerationPhase.FILL_RANDOM
    while phase is not GenerationPhase.DONE:
        if phase is GenerationPhase.FILL_RANDOM:
            if attempts >= limit:
                logger.warning("生成失敗: %d 回試行しました", attempts)
                raise GenerationFailed(attempts=attempts, params=params)
            rules.fill_random(grid, rng, attempts)
            phase = GenerationPhase.ASSIGN_CLUES

        elif phase is GenerationPhase.ASSIGN_CLUES:
            rules.derive_clues(grid, rng, scratch)
            phase = GenerationPhase.VALIDATE_SOLVABLE

        elif phase is GenerationPhase.VALIDATE_SOLVABLE:
            attempts += 1
            trial = grid.copy()
            rules.clear_solution(trial)
            status = solve_grid(trial, rules, max_depth=depth, scratch=scratch)
            if rules.keep_partial:
                # 途中まで解けたセルを次の塗り分けの出発点にする
                grid = trial.copy()
            if status == Status.COMPLETE and sat_check:
                puzzle = trial.copy()
                rules.clear_solution(puzzle)
                if not sat_unique.is_unique(puzzle, rules):
                    logger.warning("SAT で一意解を確認できないため再試行します")
                    status = Status.UNFINISHED
                    if rules.keep_partial:
                        # 解き切れた盤面を残すと同じ問題が再生成されるので全体を塗り直す
                        grid.cells[:] = 0
            if status != Status.COMPLETE:
                logger.debug("試行 %d: %s", attempts, status.name)
                phase = GenerationPhase.FILL_RANDOM
                continue
            solution = trial
            if rules.minimize:
                phase = GenerationPhase.MINIMIZE_CLUES
            else:
                phase = GenerationPhase.DONE

        elif phase is GenerationPhase.MINIMIZE_CLUES:
            assert solution is not None
            minimize_clues(grid, rules, rng, max_depth=depth, scratch=scratch)
            solution.clues[:] = grid.clues
            phase = GenerationPhase.DONE

    assert solution is not None
    puzzle = solution.copy()
    rules.clear_solution(puzzle)

    # 統計は最終的な出題盤面を解き直して取る
    stats = SolverStats()
    replay = puzzle.copy()
    solve_grid(replay, rules, max_depth=depth, stats=stats)
    logger.debug("生成完了: 試行 %d 回 steps=%d", attempts, stats.steps)
    return GenerationResult(puzzle=puzzle, solution=solution, attempts=attempts, stats=stats)


def new_game_desc(params: PuzzleParams, rng: random.Random) -> str:
    """ホスト向けに新しい盤面の記述文字列を返す"""

    rules = get_rules(params.kind)
    result = generate_grid(params, rng)
    return rules.encode_description(result.puzzle)


def _parse_symmetry(symmetry: str | int | Symmetry) -> Symmetry:
    if isinstance(symmetry, str):
        if symmetry not in SYMMETRY_NAMES:
            raise ValueError(f"symmetry は {sorted(SYMMETRY_NAMES)} のいずれかで指定")
        return SYMMETRY_NAMES[symmetry]
    return Symmetry(symmetry)


def generate_puzzle(
    kind: str,
    w: int,
    h: int | None = None,
    *,
    blackpc: int = 20,
    symmetry: str | int | Symmetry = Symmetry.ROT2,
    seed: int | None = None,
    attempt_limit: int | None = None,
    max_depth: int | None = None,
    sat_check: bool = False,
    return_stats: bool = False,
) -> Puzzle | tuple[Puzzle, Dict[str, int]]:
    """盤面を生成し、書き出し用の辞書として返す

    :param kind: ``"clusters"`` または ``"sticks"``
    :param w: 盤面の幅
    :param h: 盤面の高さ。省略時は ``w`` と同じ
    :param blackpc: Sticks のブロック率 (%)
    :param symmetry: Sticks のブロック配置の対称性。
        ``"none"`` / ``"mirror2"`` / ``"rotate2"`` / ``"mirror4"`` / ``"rotate4"``
    :param seed: 乱数シード。再現したいときに指定する
    :param attempt_limit: 塗り分けをやり直す上限
    :param max_depth: 解けるか確認するときのバックトラック深さ
    :param sat_check: True なら PySAT でも一意性を確認する
    :param return_stats: True なら生成統計も返す
    :return: 生成したパズル。``return_stats`` が True の場合は
        ``(Puzzle, dict)`` のタプルを返す
    """

    rules = get_rules(kind)
    if h is None:
        h = w
    params = PuzzleParams(kind, w, h, blackpc, _parse_symmetry(symmetry))
    depth = rules.max_depth if max_depth is None else max_depth

    # 乱数生成器を作成。シードを指定すると結果を再現できる
    rng = random.Random(seed)

    generation_params = {
        "params": encode_params(params),
        "seed": seed,
        "attemptLimit": resolve_attempt_limit(attempt_limit),
        "maxDepth": depth,
        "satCheck": sat_check,
    }
    seed_hash = hashlib.sha256(str(seed).encode("utf-8")).hexdigest()

    start_time = time.perf_counter()
    logger.info("盤面生成開始: %s %dx%d", kind, w, h)

    result = generate_grid(
        params,
        rng,
        attempt_limit=attempt_limit,
        max_depth=depth,
        sat_check=sat_check,
    )
    puzzle = _build_puzzle_dict(
        rules=rules,
        params=params,
        puzzle_grid=result.puzzle,
        solved_grid=result.solution,
        solver_stats=result.stats,
        attempts=result.attempts,
        generation_params=generation_params,
        seed_hash=seed_hash,
    )

    # 生成した結果が整合しているか確認する
    validate_puzzle(puzzle)

    logger.info("盤面生成成功: %.3f 秒", time.perf_counter() - start_time)
    if return_stats:
        stats = {
            "attempts": result.attempts,
            "clue_count": puzzle["clueCount"],
            "solver_steps": result.stats.steps,
            "solver_max_depth": result.stats.max_depth,
        }
        return puzzle, stats
    return puzzle


def generate_multiple_puzzles(
    kind: str,
    w: int,
    h: int | None,
    count: int,
    *,
    seed: int | None = None,
    jobs: int | None = None,
    worker_log_level: int = logging.WARNING,
    **kwargs: object,
) -> List[Puzzle]:
    """同じ条件の盤面を ``count`` 個生成して一覧で返す

    :param seed: 乱数シード。各盤面には ``seed + i`` を使う
    :param jobs: 並列プロセス数。1 以下なら逐次生成
    :param worker_log_level: 並列処理のログレベル。WARNING 以上のみ表示する
    :param kwargs: ``generate_puzzle`` へそのまま渡す引数
    """

    if count <= 0:
        raise ValueError("count は 1 以上を指定してください")

    logger.info("複数盤面生成開始 %s w=%d count=%d", kind, w, count)
    start_time = time.perf_counter()

    if seed is None:
        seed = random.randint(0, 2**32 - 1)

    puzzles: List[Puzzle] = []
    seed_offset = 0

    if jobs is None or jobs <= 1:
        while len(puzzles) < count:
            puzzle_seed = seed + seed_offset
            seed_offset += 1
            try:
                puzzle_obj = generate_puzzle(kind, w, h, seed=puzzle_seed, **kwargs)  # type: ignore[arg-type]
            except GenerationFailed as exc:
                logger.warning("生成失敗 seed=%d: %s", puzzle_seed, exc)
                if seed_offset > count + RETRY_LIMIT:
                    raise
                continue
            puzzles.append(cast(Puzzle, puzzle_obj))
    else:
        retry_round = 0
        while len(puzzles) < count:
            if retry_round > RETRY_LIMIT:
                raise GenerationFailed("並列生成に失敗しました", attempts=retry_round)
            retry_round += 1

            with concurrent.futures.ProcessPoolExecutor(
                max_workers=jobs,
                initializer=setup_logging,
                initargs=(worker_log_level,),
            ) as executor:
                futures = []
                for _ in range(count - len(puzzles)):
                    futures.append(
                        executor.submit(
                            generate_puzzle,
                            kind,
                            w,
                            h,
                            seed=seed + seed_offset,
                            **kwargs,  # type: ignore[arg-type]
                        )
                    )
                    seed_offset += 1

                for future in concurrent.futures.as_completed(futures):
                    try:
                        puzzle_obj = future.result()
                    except Exception as exc:  # noqa: BLE001
                        logger.warning("並列生成失敗: %s", exc)
                        continue
                    puzzles.append(cast(Puzzle, puzzle_obj))

    logger.info("複数盤面生成終了: %.3f 秒", time.perf_counter() - start_time)
    return puzzles


def puzzle_to_ascii(puzzle: Puzzle, *, show_solution: bool = True) -> str:
    """パズル情報を簡易的なテキスト盤面へ変換する

    出題盤面の右に完成形を並べて表示する。
    """

    rules = get_rules(puzzle["kind"])
    size_dict = puzzle["size"]
    params = PuzzleParams(rules.name, size_dict["cols"], size_dict["rows"])
    grid = rules.decode_description(params, puzzle["desc"])
    solved = grid.copy()
    if show_solution:
        rules.fill_solution(solved, puzzle["solution"])

    lines: List[str] = []
    for y in range(grid.h):
        row = range(y * grid.w, (y + 1) * grid.w)
        line = " ".join(rules.cell_text(grid, i) for i in row)
        if show_solution:
            line += "   " + " ".join(rules.cell_text(solved, i) for i in row)
        lines.append(line)
    return "\n".join(lines)


def main(argv: List[str] | None = None) -> None:
    """コマンドラインから盤面を生成して JSON に保存する"""

    import argparse

    parser = argparse.ArgumentParser(description="Clusters / Sticks の盤面を生成します")
    parser.add_argument("kind", choices=KINDS, help="パズルの種類")
    parser.add_argument("w", type=int, help="盤面の幅")
    parser.add_argument("h", type=int, nargs="?", default=None, help="盤面の高さ")
    parser.add_argument("--blackpc", type=int, default=20, help="Sticks のブロック率 (%%)")
    parser.add_argument(
        "--symmetry",
        choices=sorted(SYMMETRY_NAMES),
        default="rotate2",
        help="Sticks のブロック配置の対称性",
    )
    parser.add_argument("--seed", type=int, default=None, help="乱数シード")
    parser.add_argument(
        "--attempt-limit",
        type=int,
        default=None,
        help="塗り分けをやり直す上限 (未指定なら環境変数か既定値)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="バックトラック深さ (未指定ならルールの既定値)",
    )
    parser.add_argument("--sat-check", action="store_true", help="PySAT で一意性を確認する")
    parser.add_argument("--count", type=int, default=1, help="生成する盤面の数")
    parser.add_argument(
        "--parallel",
        type=int,
        default=1,
        help="並列生成プロセス数 (1 なら通常実行)",
    )
    parser.add_argument("--output", default="data", help="JSON の保存先ディレクトリ")
    parser.add_argument("-v", "--verbose", action="store_true", help="DEBUG ログを表示")
    args = parser.parse_args(argv)

    # ログ設定を行う。デフォルトは INFO レベル
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    func_kwargs = {
        "blackpc": args.blackpc,
        "symmetry": args.symmetry,
        "attempt_limit": args.attempt_limit,
        "max_depth": args.max_depth,
        "sat_check": args.sat_check,
    }

    if args.count > 1:
        puzzles = generate_multiple_puzzles(
            args.kind,
            args.w,
            args.h,
            args.count,
            seed=args.seed,
            jobs=args.parallel,
            **func_kwargs,
        )
        path = save_puzzles(puzzles, args.output)
        print(f"{path} を作成しました ({len(puzzles)} 件)")
        return

    pzl = cast(
        Puzzle,
        generate_puzzle(args.kind, args.w, args.h, seed=args.seed, **func_kwargs),
    )
    path = save_puzzle(pzl, args.output)
    print(f"{path} を作成しました")
    print(puzzle_to_ascii(pzl))


if __name__ == "__main__":
    main()
