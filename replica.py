from __future__ import annotations
from typing import Iterable, List

from model import VoteSet


class Node:
    def __init__(self, node_id: int, num_voters: int):
        self.id = node_id
        self.votes = VoteSet(num_voters)

        # voters received through exchanges, own vote excluded
        self.votes_learned = 0

    def vote(self) -> bool:
        """
        Cast this node's own vote for the rumour.
        Returns True if the vote was new.
        """
        return self.votes.add(self.id)

    def has_voted(self) -> bool:
        return self.id in self.votes

    def learn(self, voters: Iterable[int]) -> int:
        n = self.votes.absorb(voters)
        self.votes_learned += n
        return n

    def __repr__(self) -> str:
        return f"Node({self.id}, votes={len(self.votes)})"


def make_nodes(num_nodes: int, num_voters: int) -> List[Node]:
    return [Node(i, num_voters) for i in range(num_nodes)]
