"""
Delay providers: how long a process waits before requesting, and how long
it stays in the critical section.

The driver only asks for numbers of seconds, so tests can swap in ZeroDelay
and get a fully deterministic interleaving.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np


class DelayProvider(Protocol):
    """Protocol for arrival/hold delays (seconds)."""

    def arrival(self, pid: int, entry: int) -> float:
        """Delay before process pid issues its request number entry."""
        ...

    def hold(self, pid: int, entry: int) -> float:
        """Time process pid spends inside the CS on entry number entry."""
        ...


class ZeroDelay:
    """No waiting at all; tasks still yield to the event loop."""

    def arrival(self, pid: int, entry: int) -> float:
        return 0.0

    def hold(self, pid: int, entry: int) -> float:
        return 0.0


@dataclass
class FixedDelay:
    """Constant delays."""

    arrival_s: float = 0.0
    hold_s: float = 0.0

    def arrival(self, pid: int, entry: int) -> float:
        return self.arrival_s

    def hold(self, pid: int, entry: int) -> float:
        return self.hold_s


@dataclass
class RandomDelay:
    """
    Jittered delays drawn from a numpy Generator.

    arrival = arrival_base + U(0,1) · arrival_jitter · (pid + 1)
    hold    = hold_base    + U(0,1) · hold_jitter

    Higher pids arrive later on average, which spreads requests out.
    time_scale multiplies everything (1.0 = the 40–120 ms feel of a live view).
    """

    seed: int | None = None
    arrival_base: float = 0.040
    arrival_jitter: float = 0.080
    hold_base: float = 0.060
    hold_jitter: float = 0.080
    time_scale: float = 1.0
    _rng: np.random.Generator = field(default=None, init=False, repr=False)

    def __post_init__(self):
        self._rng = np.random.default_rng(self.seed)

    def arrival(self, pid: int, entry: int) -> float:
        jitter = self._rng.random() * self.arrival_jitter * (pid + 1)
        return float(self.time_scale * (self.arrival_base + jitter))

    def hold(self, pid: int, entry: int) -> float:
        jitter = self._rng.random() * self.hold_jitter
        return float(self.time_scale * (self.hold_base + jitter))
