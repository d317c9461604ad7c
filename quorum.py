from __future__ import annotations
from typing import List, Optional, Sequence, Set

from replica import Node


def has_quorum(num_votes: int, num_nodes: int) -> bool:
    """Strict majority of the network."""
    return 2 * num_votes > num_nodes


class QuorumTracker:
    def __init__(self, num_nodes: int):
        self.num_nodes = num_nodes
        self.first_quorum: List[Optional[int]] = [None] * num_nodes
        self._quorate = 0

    def has_quorum(self, node: Node) -> bool:
        return has_quorum(len(node.votes), self.num_nodes)

    def update(self, round_index: int, nodes: Sequence[Node]) -> Set[int]:
        """
        Records round_index for every node reaching quorum for the first time.
        Vote sets never shrink, so a node stays quorate once recorded.
        """
        newly: Set[int] = set()
        for node in nodes:
            if self.first_quorum[node.id] is None and self.has_quorum(node):
                self.first_quorum[node.id] = round_index
                newly.add(node.id)
        self._quorate += len(newly)
        return newly

    def quorum_count(self) -> int:
        return self._quorate

    def all_quorum(self) -> bool:
        return self._quorate == self.num_nodes
