from __future__ import annotations
import enum
import logging
import random
from typing import Dict, FrozenSet, List, Optional, Set

from anti_entropy import ReconciliationProtocol
from errors import SimulationError
from metrics import average_votes_held, residue
from model import (
    ABORTED,
    CASCADING,
    CONVERGED,
    RoundRecord,
    SimulationConfig,
    SimulationResult,
)
from network import PeerSelector
from quorum import QuorumTracker
from replica import make_nodes
from schedule import VotingSchedule

logger = logging.getLogger(__name__)


class DriverState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    CONVERGED = "converged"
    ABORTED = "aborted"


TERMINAL = (DriverState.CONVERGED, DriverState.ABORTED)


class SimulationDriver:
    """
    Runs one (n, k, voting_steps) configuration until every node holds a
    quorum or the round cap is reached.

    Each round:
      1) the voting schedule casts this round's votes
      2) every node, in id order, picks a random peer and does a push-pull exchange
      3) the quorum tracker records nodes that reached quorum
      4) stop if all nodes are quorate, abort if the cap is reached

    With the default snapshot ordering every exchange in a round sees the
    state as of the round start and all merges land together at round end.
    Cascading ordering applies each exchange immediately, so later
    exchanges in the same round see earlier ones.
    """

    def __init__(self, config: SimulationConfig, rnd: Optional[random.Random] = None):
        self.config = config.validate()
        self.rnd = rnd if rnd is not None else random.Random(config.seed)

        self.nodes = make_nodes(config.n, config.k)
        self.schedule = VotingSchedule(config.k, config.voting_steps)
        self.peers = PeerSelector(config.n, self.rnd)
        self.protocol = ReconciliationProtocol()
        self.tracker = QuorumTracker(config.n)

        self.state = DriverState.NOT_STARTED
        self.round = 0
        self.history: List[RoundRecord] = []

    def _cascading_round(self) -> None:
        for node in self.nodes:
            peer_id = self.peers.choose(node.id)
            if peer_id is None:
                continue
            self.protocol.exchange(node, self.nodes[peer_id])

    def _snapshot_round(self) -> None:
        snapshot: Dict[int, FrozenSet[int]] = {n.id: n.votes.snapshot() for n in self.nodes}
        pending: Dict[int, Set[int]] = {}
        for node in self.nodes:
            peer_id = self.peers.choose(node.id)
            if peer_id is None:
                continue
            self.protocol.exchange_snapshot(node, self.nodes[peer_id], snapshot, pending)

        for node_id, voters in pending.items():
            self.nodes[node_id].learn(voters)

    def _votes_learned(self) -> int:
        return sum(n.votes_learned for n in self.nodes)

    def step(self) -> RoundRecord:
        """Executes one round."""
        if self.state in TERMINAL:
            raise SimulationError(f"cannot step a driver in state {self.state.value}")
        self.state = DriverState.RUNNING
        self.round += 1

        self.schedule.apply(self.round, self.nodes)

        before = self.protocol.exchanges
        learned_before = self._votes_learned()
        if self.config.ordering == CASCADING:
            self._cascading_round()
        else:
            self._snapshot_round()

        newly = self.tracker.update(self.round, self.nodes)
        record = RoundRecord(
            round_index=self.round,
            exchanges=self.protocol.exchanges - before,
            newly_quorate=len(newly),
            residue=residue([n.votes for n in self.nodes]),
            votes_learned=self._votes_learned() - learned_before,
        )
        self.history.append(record)
        logger.debug(
            "round %d: exchanges=%d learned=%d newly_quorate=%d quorate=%d/%d residue=%d",
            record.round_index, record.exchanges, record.votes_learned, record.newly_quorate,
            self.tracker.quorum_count(), self.config.n, record.residue,
        )

        if self.tracker.all_quorum():
            self.state = DriverState.CONVERGED
        elif self.round >= self.config.round_cap:
            self.state = DriverState.ABORTED
        return record

    def run(self) -> SimulationResult:
        if self.state is not DriverState.NOT_STARTED:
            raise SimulationError("driver has already been run")
        while self.state not in TERMINAL:
            self.step()
        return self.result()

    def result(self) -> SimulationResult:
        if self.state not in TERMINAL:
            raise SimulationError(f"no result in state {self.state.value}")
        return SimulationResult(
            config=self.config,
            status=CONVERGED if self.state is DriverState.CONVERGED else ABORTED,
            num_iterations=self.round,
            num_exchanges=self.protocol.exchanges,
            average_votes_held=average_votes_held(n.votes for n in self.nodes),
            votes_learned=self._votes_learned(),
            first_quorum=tuple(self.tracker.first_quorum),
            history=tuple(self.history),
        )


def run_simulation(config: SimulationConfig) -> SimulationResult:
    res = SimulationDriver(config).run()
    if res.converged:
        logger.info("n=%d k=%d voting_steps=%d: quorum after %d rounds, %d exchanges",
                    config.n, config.k, config.voting_steps, res.num_iterations, res.num_exchanges)
    else:
        logger.warning("n=%d k=%d voting_steps=%d: no global quorum within %d rounds",
                       config.n, config.k, config.voting_steps, res.num_iterations)
    return res
