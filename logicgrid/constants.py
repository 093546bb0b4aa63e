"""共通定数や簡易ヘルパー関数を定義するモジュール"""

from __future__ import annotations

import os
from enum import IntEnum


class Status(IntEnum):
    """検証結果を表す列挙型

    値の大小が優先順位になっているため ``max`` で合成できる。
    INVALID > UNFINISHED > COMPLETE の順に強い。
    """

    COMPLETE = 0
    UNFINISHED = 1
    INVALID = 2


# numba カーネル内では IntEnum を使わず素の整数で比較する
STATUS_COMPLETE = int(Status.COMPLETE)
STATUS_UNFINISHED = int(Status.UNFINISHED)
STATUS_INVALID = int(Status.INVALID)

# 生成を何回まで試行するか。環境変数 LOGICGRID_ATTEMPT_LIMIT で上書きできる
DEFAULT_ATTEMPT_LIMIT = 1000
ATTEMPT_LIMIT_ENV = "LOGICGRID_ATTEMPT_LIMIT"

# Clusters はこの回数ごとに盤面全体を塗り直す
MAX_ATTEMPTS = 100


def resolve_attempt_limit(value: int | None = None) -> int:
    """生成の試行上限を決定する

    優先順位:
    1) 引数で明示された値
    2) 環境変数 ``LOGICGRID_ATTEMPT_LIMIT``
    3) ``DEFAULT_ATTEMPT_LIMIT``
    """

    if value is not None:
        if value <= 0:
            raise ValueError("attempt_limit は 1 以上を指定してください")
        return value
    raw = os.getenv(ATTEMPT_LIMIT_ENV)
    if raw is None:
        return DEFAULT_ATTEMPT_LIMIT
    try:
        limit = int(raw)
        if limit > 0:
            return limit
    except ValueError:
        pass
    return DEFAULT_ATTEMPT_LIMIT


def _evaluate_difficulty(steps: int, depth: int) -> str:
    """ソルバー統計から難易度を推定する関数"""

    # 検証回数とバックトラック深さから判断する
    if depth == 0 and steps < 1000:
        return "easy"
    if depth == 0:
        return "normal"
    if depth == 1:
        return "hard"
    return "expert"


__all__ = [
    "Status",
    "STATUS_COMPLETE",
    "STATUS_UNFINISHED",
    "STATUS_INVALID",
    "DEFAULT_ATTEMPT_LIMIT",
    "ATTEMPT_LIMIT_ENV",
    "MAX_ATTEMPTS",
    "resolve_attempt_limit",
    "_evaluate_difficulty",
]
