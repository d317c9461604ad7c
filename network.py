from __future__ import annotations
import random
from typing import Optional


class PeerSelector:
    """
    Uniform peer choice over a complete graph of num_nodes nodes.
    Holds no state besides the generator, so draws are independent across
    nodes and rounds.
    """

    def __init__(self, num_nodes: int, rnd: random.Random):
        self.num_nodes = num_nodes
        self.rnd = rnd

    def choose(self, node_id: int) -> Optional[int]:
        """Returns a peer != node_id, or None when node_id has no peers."""
        if self.num_nodes < 2:
            return None
        # draw from the n-1 other ids and skip over our own
        p = self.rnd.randrange(self.num_nodes - 1)
        return p + 1 if p >= node_id else p
