from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, Optional, Sequence, Set, Tuple

from errors import ConfigurationError, ParseError

# In-round ordering of exchanges
SNAPSHOT = "snapshot"
CASCADING = "cascading"
ORDERINGS = (SNAPSHOT, CASCADING)

# Run outcomes as written to the output table
CONVERGED = "converged"
ABORTED = "aborted"
INVALID = "invalid"

# Rounds allowed after voting ends before a run is declared non-convergent
DEFAULT_ROUND_ALLOWANCE = 500

PARAM_FIELDS = ("n", "k", "voting_steps")


class VoteSet:
    """
    Voters a node has seen supporting the rumour.
    Append-only: members are ids in [0, universe) and are never removed.
    """

    __slots__ = ("universe", "_voters")

    def __init__(self, universe: int, voters: Iterable[int] = ()):
        self.universe = universe
        self._voters: Set[int] = set()
        self.absorb(voters)

    def _check(self, voter: int) -> None:
        if not 0 <= voter < self.universe:
            raise ValueError(f"voter {voter} outside [0, {self.universe})")

    def add(self, voter: int) -> bool:
        """Returns True if the voter was not already present."""
        self._check(voter)
        if voter in self._voters:
            return False
        self._voters.add(voter)
        return True

    def absorb(self, voters: Iterable[int]) -> int:
        """In-place union; returns how many voters were new."""
        new = set(voters) - self._voters
        for v in new:
            self._check(v)
        self._voters |= new
        return len(new)

    def snapshot(self) -> FrozenSet[int]:
        return frozenset(self._voters)

    def __contains__(self, voter: object) -> bool:
        return voter in self._voters

    def __len__(self) -> int:
        return len(self._voters)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._voters))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, VoteSet):
            return self._voters == other._voters
        if isinstance(other, (set, frozenset)):
            return self._voters == other
        return NotImplemented

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"VoteSet({sorted(self._voters)!r})"


def _parse_int(name: str, raw: str, row: Optional[int]) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ParseError(f"{name} is not an integer: {raw!r}", row=row) from None


@dataclass(frozen=True)
class SimulationConfig:
    n: int                       # total nodes
    k: int                       # designated voters, ids 0..k-1
    voting_steps: int            # rounds over which the k votes are cast
    seed: Optional[int] = None
    max_rounds: Optional[int] = None
    ordering: str = SNAPSHOT

    def validate(self, row: Optional[int] = None) -> "SimulationConfig":
        if self.n < 1:
            raise ConfigurationError(f"n must be positive, got {self.n}", row=row)
        if self.k < 1:
            raise ConfigurationError(f"k must be positive, got {self.k}", row=row)
        if self.k > self.n:
            raise ConfigurationError(f"k={self.k} exceeds node count n={self.n}", row=row)
        if 2 * self.k <= self.n:
            raise ConfigurationError(
                f"k={self.k} is not a strict majority of n={self.n} (need 2*k > n)", row=row
            )
        if self.voting_steps < 1:
            raise ConfigurationError(f"voting_steps must be positive, got {self.voting_steps}", row=row)
        if self.voting_steps > self.k:
            raise ConfigurationError(
                f"voting_steps={self.voting_steps} exceeds k={self.k}", row=row
            )
        if self.max_rounds is not None and self.max_rounds < 1:
            raise ConfigurationError(f"max_rounds must be positive, got {self.max_rounds}", row=row)
        if self.ordering not in ORDERINGS:
            raise ConfigurationError(f"unknown ordering {self.ordering!r}", row=row)
        return self

    @property
    def round_cap(self) -> int:
        if self.max_rounds is not None:
            return self.max_rounds
        return self.voting_steps + DEFAULT_ROUND_ALLOWANCE

    def to_row(self) -> Dict[str, object]:
        return {"n": self.n, "k": self.k, "voting_steps": self.voting_steps}

    @staticmethod
    def from_row(fields: Sequence[str], row: Optional[int] = None, **options) -> "SimulationConfig":
        """Parse one (n, k, voting_steps) record. Does not validate."""
        if len(fields) != len(PARAM_FIELDS):
            raise ParseError(f"expected {len(PARAM_FIELDS)} fields, got {len(fields)}", row=row)
        n, k, steps = (_parse_int(name, raw, row) for name, raw in zip(PARAM_FIELDS, fields))
        return SimulationConfig(n=n, k=k, voting_steps=steps, **options)


@dataclass(frozen=True)
class RoundRecord:
    round_index: int
    exchanges: int
    newly_quorate: int
    residue: int
    votes_learned: int = 0


@dataclass(frozen=True)
class SimulationResult:
    config: SimulationConfig
    status: str                  # CONVERGED or ABORTED
    num_iterations: int
    num_exchanges: int
    average_votes_held: float
    # voters delivered by exchanges, summed over nodes
    votes_learned: int = 0
    # round at which each node first held a quorum, None if it never did
    first_quorum: Tuple[Optional[int], ...] = ()
    history: Tuple[RoundRecord, ...] = field(default=(), repr=False)

    @property
    def converged(self) -> bool:
        return self.status == CONVERGED

    def to_row(self) -> Dict[str, object]:
        row = self.config.to_row()
        row.update({
            "seed": self.config.seed if self.config.seed is not None else "",
            "status": self.status,
            "num_iterations": self.num_iterations,
            "num_exchanges": self.num_exchanges,
            "average_votes_held": round(self.average_votes_held, 6),
            "votes_learned": self.votes_learned,
            "error": "",
        })
        return row
