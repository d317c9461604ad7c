"""Tests for the voting schedule: per-round counts, remainder, vote casting."""

from __future__ import annotations

from typing import List

import pytest

from errors import ConfigurationError
from replica import Node, make_nodes
from schedule import VotingSchedule


class TestPlan:
    def test_even_split(self) -> None:
        assert VotingSchedule(k=6, voting_steps=3).plan() == {1: 2, 2: 2, 3: 2}

    def test_last_round_takes_remainder(self) -> None:
        assert VotingSchedule(k=7, voting_steps=3).plan() == {1: 2, 2: 2, 3: 3}

    def test_single_step(self) -> None:
        assert VotingSchedule(k=6, voting_steps=1).plan() == {1: 6}

    def test_one_voter_per_round_when_steps_equal_k(self) -> None:
        assert VotingSchedule(k=4, voting_steps=4).plan() == {1: 1, 2: 1, 3: 1, 4: 1}

    def test_plan_sums_to_k(self) -> None:
        for k in range(1, 30):
            for steps in range(1, k + 1):
                assert sum(VotingSchedule(k, steps).plan().values()) == k

    def test_no_votes_after_voting_steps(self) -> None:
        s = VotingSchedule(k=5, voting_steps=2)
        assert s.count_for(3) == 0
        assert s.voters_for(3) == []

    def test_no_votes_in_round_zero(self) -> None:
        assert VotingSchedule(k=5, voting_steps=2).count_for(0) == 0

    @pytest.mark.parametrize("steps", [0, -2])
    def test_non_positive_steps_fail_fast(self, steps: int) -> None:
        with pytest.raises(ConfigurationError):
            VotingSchedule(k=5, voting_steps=steps)

    def test_more_steps_than_voters_fail_fast(self) -> None:
        with pytest.raises(ConfigurationError, match="exceeds k"):
            VotingSchedule(k=3, voting_steps=5)

    def test_at_most_one_voter_per_round_when_steps_equal_k(self) -> None:
        plan = VotingSchedule(k=3, voting_steps=3).plan()
        assert max(plan.values()) <= 1
        assert sum(plan.values()) == 3

    def test_plan_is_a_copy(self) -> None:
        s = VotingSchedule(k=4, voting_steps=2)
        s.plan()[1] = 99
        assert s.count_for(1) == 2


class TestVotersFor:
    def test_ascending_ids(self) -> None:
        s = VotingSchedule(k=7, voting_steps=3)
        assert s.voters_for(1) == [0, 1]
        assert s.voters_for(2) == [2, 3]
        assert s.voters_for(3) == [4, 5, 6]


class TestApply:
    def test_voters_vote_for_themselves(self) -> None:
        nodes: List[Node] = make_nodes(6, 4)
        s = VotingSchedule(k=4, voting_steps=2)

        assert s.apply(1, nodes) == {0, 1}
        assert nodes[0].votes == {0}
        assert nodes[1].votes == {1}
        assert len(nodes[2].votes) == 0

        assert s.apply(2, nodes) == {2, 3}
        assert nodes[3].votes == {3}

    def test_apply_matches_voters_for(self) -> None:
        nodes = make_nodes(9, 7)
        s = VotingSchedule(k=7, voting_steps=3)
        for r in (1, 2, 3):
            assert s.apply(r, nodes) == set(s.voters_for(r))

    def test_nothing_after_schedule_ends(self) -> None:
        nodes = make_nodes(3, 2)
        s = VotingSchedule(k=2, voting_steps=1)
        s.apply(1, nodes)
        assert s.apply(2, nodes) == set()
        assert all(len(n.votes) <= 1 for n in nodes)

    def test_non_voters_never_vote(self) -> None:
        nodes = make_nodes(5, 3)
        s = VotingSchedule(k=3, voting_steps=1)
        s.apply(1, nodes)
        assert [n.has_voted() for n in nodes] == [True, True, True, False, False]
