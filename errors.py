"""Exception hierarchy for the gossip simulator.

    GossipSimError
    ├── ConfigurationError(row)
    │   └── ParseError
    ├── SimulationError
    └── BatchIOError(path)
"""

from __future__ import annotations
from typing import Optional


class GossipSimError(Exception):
    """Base exception for all simulator errors."""


class ConfigurationError(GossipSimError):
    """Invalid (n, k, voting_steps) combination."""

    def __init__(self, message: str, row: Optional[int] = None) -> None:
        self.row = row
        self.reason = message
        if row is not None:
            message = f"row {row}: {message}"
        super().__init__(message)


class ParseError(ConfigurationError):
    """Input record with the wrong column count or a non-integer field."""


class SimulationError(GossipSimError):
    """Driver used outside its lifecycle."""


class BatchIOError(GossipSimError):
    """Input or output file cannot be used."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")
