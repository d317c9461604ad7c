from __future__ import annotations
from typing import Iterable, List, Set

from model import VoteSet


def residue(vote_sets: List[VoteSet]) -> int:
    """
    Counts voters not yet known to every node.
    Zero once all vote sets are identical.
    """
    if not vote_sets:
        return 0
    seen: Set[int] = set()
    common: Set[int] = set(vote_sets[0])
    for vs in vote_sets:
        seen.update(vs)
        common.intersection_update(vs)
    return len(seen) - len(common)


def average_votes_held(vote_sets: Iterable[VoteSet]) -> float:
    total = 0
    count = 0
    for vs in vote_sets:
        total += len(vs)
        count += 1
    return total / count if count else 0.0
