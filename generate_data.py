from __future__ import annotations
import argparse
import csv
import os
from typing import Iterator, List, Sequence, Tuple

from model import PARAM_FIELDS


def sweep(sizes: Sequence[int], k_step: int, voting_steps: Sequence[int]) -> Iterator[Tuple[int, int, int]]:
    """
    Yields (n, k, voting_steps) for every n in sizes, every strict-majority
    k from n // 2 + 1 up to n in k_step increments (n itself always
    included), and every voting_steps value that does not exceed k.
    """
    if k_step < 1:
        raise ValueError(f"k_step must be positive, got {k_step}")
    for n in sizes:
        if n < 1:
            raise ValueError(f"node counts must be positive, got {n}")
        ks = list(range(n // 2 + 1, n + 1, k_step))
        if ks[-1] != n:
            ks.append(n)
        for k in ks:
            for steps in voting_steps:
                if 1 <= steps <= k:
                    yield n, k, steps


def _int_list(value: str) -> List[int]:
    return [int(x) for x in value.split(",") if x.strip()]


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", default="data/params.csv", help="output CSV (default: data/params.csv)")
    ap.add_argument("--sizes", type=_int_list, default=[10, 100, 1000],
                    help="comma separated node counts (default: 10,100,1000)")
    ap.add_argument("--k-step", type=int, default=0,
                    help="k increment (default: about a tenth of each n's majority range)")
    ap.add_argument("--voting-steps", type=_int_list, default=[1, 2, 5, 10],
                    help="comma separated voting_steps values (default: 1,2,5,10)")
    args = ap.parse_args()

    out_dir = os.path.dirname(args.out)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    count = 0
    with open(args.out, "w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(PARAM_FIELDS)
        for n in args.sizes:
            step = args.k_step or max(1, (n - n // 2) // 10)
            for row in sweep([n], step, args.voting_steps):
                w.writerow(row)
                count += 1

    print("Generated:")
    print(f" - {args.out} ({count} configurations)")


if __name__ == "__main__":
    main()
