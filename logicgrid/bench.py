"""生成時間を計測する簡易ベンチマーク"""

from __future__ import annotations

import random
import time
from typing import Optional

from . import generator


def run(
    kind: str,
    w: int,
    h: Optional[int] = None,
    n: int = 1,
    *,
    seed: Optional[int] = None,
    **kwargs: object,
) -> float:
    """指定回数パズルを生成して平均時間を返す簡易ベンチマーク関数"""
    rng = random.Random(seed)
    total = 0.0
    for _ in range(n):
        start = time.perf_counter()
        generator.generate_puzzle(kind, w, h, seed=rng.randint(0, 2**32), **kwargs)  # type: ignore[arg-type]
        total += time.perf_counter() - start
    avg = total / n if n else 0.0
    print(f"平均生成時間: {avg:.3f} 秒")
    return avg


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="パズル生成ベンチマーク")
    parser.add_argument("kind", choices=["clusters", "sticks"], help="パズルの種類")
    parser.add_argument("w", type=int, help="盤面の幅")
    parser.add_argument("h", type=int, nargs="?", default=None, help="盤面の高さ")
    parser.add_argument("-n", type=int, default=1, help="生成回数")
    parser.add_argument("--seed", type=int, help="乱数シード")
    args = parser.parse_args()
    run(args.kind, args.w, args.h, args.n, seed=args.seed)
