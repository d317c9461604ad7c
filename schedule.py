from __future__ import annotations
import logging
from typing import Dict, List, Sequence, Set

from errors import ConfigurationError
from replica import Node

logger = logging.getLogger(__name__)


class VotingSchedule:
    """
    Spreads the k designated voters (node ids 0..k-1) over rounds
    1..voting_steps. Each of those rounds gets k // voting_steps voters and
    the last one also takes the remainder. Voters are picked in ascending id
    order among those that have not voted yet.
    """

    def __init__(self, k: int, voting_steps: int):
        if voting_steps <= 0:
            raise ConfigurationError(f"voting_steps must be positive, got {voting_steps}")
        if k <= 0:
            raise ConfigurationError(f"k must be positive, got {k}")
        if voting_steps > k:
            raise ConfigurationError(f"voting_steps={voting_steps} exceeds k={k}")
        self.k = k
        self.voting_steps = voting_steps
        self._plan = self._build_plan()
        self._next_voter = 0

    def _build_plan(self) -> Dict[int, int]:
        per_step = self.k // self.voting_steps
        plan = {}
        for r in range(1, self.voting_steps + 1):
            if r == self.voting_steps:
                plan[r] = self.k - (self.voting_steps - 1) * per_step
            else:
                plan[r] = per_step
        return plan

    def plan(self) -> Dict[int, int]:
        """Round -> number of new voters."""
        return dict(self._plan)

    def count_for(self, round_index: int) -> int:
        return self._plan.get(round_index, 0)

    def voters_for(self, round_index: int) -> List[int]:
        """Ids that vote in this round if every earlier round was applied."""
        start = sum(c for r, c in self._plan.items() if r < round_index)
        return list(range(start, start + self.count_for(round_index)))

    def apply(self, round_index: int, nodes: Sequence[Node]) -> Set[int]:
        """Casts this round's votes into the voters' own vote sets."""
        want = self.count_for(round_index)
        voted: Set[int] = set()
        while len(voted) < want and self._next_voter < self.k:
            node = nodes[self._next_voter]
            self._next_voter += 1
            if node.vote():
                voted.add(node.id)
        if voted:
            logger.debug("round %d: %d new voters (%d/%d cast)",
                         round_index, len(voted), self._next_voter, self.k)
        return voted
