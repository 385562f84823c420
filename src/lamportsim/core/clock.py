"""
Lamport logical clock rule and the Ricart–Agrawala priority key.

    tick(p)        local event:   clock = clock + 1
    tick(p, ts)    receive of ts: clock = max(clock, ts) + 1

If event A causally precedes event B then clock(A) < clock(B).
"""

from __future__ import annotations
import math
from typing import Protocol

from lamportsim.core.errors import InvariantViolation


class Clocked(Protocol):
    """Anything carrying a pid, a Lamport clock and an optional pending request."""

    pid: int
    clock: int
    requesting: bool
    request_timestamp: int | None


def tick(process: Clocked, peer_timestamp: int = 0) -> int:
    """
    Advance a process clock and return the new value.

    Args:
        process: Record whose clock is advanced in place
        peer_timestamp: Timestamp carried by a received message (0 for local events)
    """
    previous = process.clock
    process.clock = max(previous, peer_timestamp) + 1
    if process.clock <= previous:
        raise InvariantViolation(
            f"P{process.pid} clock did not increase ({previous} -> {process.clock})"
        )
    return process.clock


def priority_key(process: Clocked) -> tuple[float, int]:
    """(request_timestamp, pid), or (+inf, pid) when nothing is pending."""
    if process.requesting and process.request_timestamp is not None:
        return (process.request_timestamp, process.pid)
    return (math.inf, process.pid)
