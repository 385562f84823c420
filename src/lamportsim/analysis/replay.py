"""
Rebuild per-process state from an event log.

The log records every clock-changing event (sends, receipts, CS exit),
so applying the Lamport rule to it from the initial configuration must
land on exactly the clocks and entry counts the run ended with. Every
entry's recorded clock is checked along the way.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from lamportsim.core.clock import tick
from lamportsim.core.errors import ReplayError
from lamportsim.core.events import EventKind

if TYPE_CHECKING:
    from lamportsim.core.events import LogEntry
    from lamportsim.core.simulation import SimulationConfig, SimulationResult


@dataclass
class ReplayedProcess:
    """Minimal process record reconstructed from the log."""

    pid: int
    clock: int = 0
    requesting: bool = False
    request_timestamp: int | None = None
    completed_entries: int = 0


def replay(config: "SimulationConfig", entries: Iterable["LogEntry"]) -> dict[int, ReplayedProcess]:
    """
    Replay a complete log against the initial configuration.

    Args:
        config: Configuration the run started with
        entries: Full log, oldest first

    Returns:
        {pid: ReplayedProcess} final state

    Raises:
        ReplayError: unknown pid, missing timestamp, or a clock mismatch
    """
    procs = {pid: ReplayedProcess(pid) for pid in range(config.n_processes)}

    for n, entry in enumerate(entries):
        if entry.pid is None:
            continue
        if entry.pid not in procs:
            raise ReplayError(f"Entry {n} refers to unknown process P{entry.pid}")
        p = procs[entry.pid]

        if entry.kind is EventKind.REQUEST:
            p.request_timestamp = tick(p)
            p.requesting = True
        elif entry.kind is EventKind.RECEIVE:
            if entry.message_timestamp is None:
                raise ReplayError(f"Entry {n} ({entry.description}) has no message timestamp")
            tick(p, entry.message_timestamp)
        elif entry.kind in (EventKind.REPLY, EventKind.DEFERRED_REPLY, EventKind.CS_EXIT):
            tick(p)
        elif entry.kind is EventKind.RELEASE:
            tick(p)
            p.requesting = False
            p.request_timestamp = None
            p.completed_entries += 1

        if entry.clock is not None and entry.clock != p.clock:
            raise ReplayError(
                f"Entry {n} ({entry.description}): logged clock {entry.clock}, replayed {p.clock}"
            )

    return procs


def verify_replay(result: "SimulationResult") -> dict[int, ReplayedProcess]:
    """
    Replay result.log and compare with the final snapshots.

    Raises:
        ReplayError: truncated log or any divergence
    """
    if result.log_dropped:
        raise ReplayError(f"Cannot replay: {result.log_dropped} log entries were evicted")

    procs = replay(result.config, result.log)
    for snap in result.snapshots:
        got = procs[snap.pid]
        if (got.clock, got.completed_entries) != (snap.clock, snap.completed_entries):
            raise ReplayError(
                f"P{snap.pid}: replayed clock={got.clock} entries={got.completed_entries}, "
                f"final clock={snap.clock} entries={snap.completed_entries}"
            )
    return procs
