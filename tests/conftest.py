"""Shared test fixtures for the gossip simulator."""

from __future__ import annotations

import random
from typing import Any, Callable, List

import pytest

from model import SimulationConfig
from replica import Node, make_nodes


class ScriptedRandom(random.Random):
    """Random whose randrange returns a fixed sequence of draws."""

    def __init__(self, draws: List[int]) -> None:
        super().__init__(0)
        self.draws = list(draws)

    def randrange(self, *args: Any, **kwargs: Any) -> int:  # type: ignore[override]
        return self.draws.pop(0)


@pytest.fixture
def scripted_random() -> Callable[[List[int]], ScriptedRandom]:
    return ScriptedRandom


@pytest.fixture
def make_config() -> Callable[..., SimulationConfig]:
    """Factory fixture for SimulationConfig with sensible defaults."""

    def _make(**overrides: Any) -> SimulationConfig:
        defaults: dict = {"n": 10, "k": 6, "voting_steps": 1, "seed": 1}
        defaults.update(overrides)
        return SimulationConfig(**defaults)

    return _make


@pytest.fixture
def nodes() -> List[Node]:
    """Five nodes, three of which are designated voters."""
    return make_nodes(5, 3)
