from __future__ import annotations
from typing import Dict, FrozenSet, Iterable

from replica import Node


def merge(a: Iterable[int], b: Iterable[int]) -> FrozenSet[int]:
    """Push-pull summary exchange between two vote sets: both sides end with the union."""
    return frozenset(a).union(b)


class ReconciliationProtocol:
    """
    Full-set push-pull anti-entropy:
    - initiator and responder each send their whole vote set
    - both apply what they were missing, so they finish with identical sets

    The exchange is a direct call on two in-memory nodes; there is no
    transport, loss or partial merge. Only the number of exchanges is
    accounted, not their size.
    """

    def __init__(self) -> None:
        self.exchanges = 0

    def exchange(self, x: Node, y: Node) -> FrozenSet[int]:
        """Atomically assigns VoteSet(x) | VoteSet(y) to both nodes."""
        merged = merge(x.votes.snapshot(), y.votes.snapshot())
        x.learn(merged)
        y.learn(merged)
        self.exchanges += 1
        return merged

    def exchange_snapshot(
        self,
        x: Node,
        y: Node,
        snapshot: Dict[int, FrozenSet[int]],
        pending: Dict[int, set],
    ) -> FrozenSet[int]:
        """
        Same exchange, evaluated against start-of-round state. The merged set
        is accumulated into pending for both nodes and applied by the caller
        once every exchange of the round has been computed.
        """
        merged = merge(snapshot[x.id], snapshot[y.id])
        pending.setdefault(x.id, set()).update(merged)
        pending.setdefault(y.id, set()).update(merged)
        self.exchanges += 1
        return merged
