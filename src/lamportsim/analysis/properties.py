"""
Correctness properties checked over a finished run.

These read the recorded CS intervals and the event log; they never touch
the engine. Each check_* function returns a list of human-readable
violations (empty = property holds). verify_run() bundles them.

Log-based checks need the complete log, so run with log_capacity=None
when you intend to verify.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Sequence

import numpy as np

from lamportsim.core.errors import InvariantViolation, ReplayError
from lamportsim.core.events import EventKind

if TYPE_CHECKING:
    from lamportsim.core.events import LogEntry
    from lamportsim.core.simulation import CSInterval, SimulationResult


# Events that advance the clock of the process that logs them
TICKING_EVENTS = frozenset({
    EventKind.REQUEST,
    EventKind.RECEIVE,
    EventKind.REPLY,
    EventKind.CS_EXIT,
    EventKind.DEFERRED_REPLY,
    EventKind.RELEASE,
})


def find_overlaps(intervals: Sequence["CSInterval"]) -> list[tuple["CSInterval", "CSInterval"]]:
    """
    Find CS occupancies that overlap in simulated time.

    Intervals are sorted by entry instant; interval i overlaps an earlier
    one iff it starts before the latest exit seen so far.

    Returns:
        (earlier, later) pairs, where earlier is the interval still open
    """
    if len(intervals) < 2:
        return []

    ordered = sorted(intervals, key=lambda i: i.enter_instant)
    starts = np.array([i.enter_instant for i in ordered], dtype=np.int64)
    ends = np.array([i.exit_instant for i in ordered], dtype=np.int64)

    running_end = np.maximum.accumulate(ends)
    holder = np.zeros(len(ordered), dtype=np.int64)
    for k in range(1, len(ordered)):
        holder[k] = holder[k - 1] if ends[holder[k - 1]] >= ends[k] else k

    clash = np.nonzero(starts[1:] < running_end[:-1])[0] + 1
    return [(ordered[holder[k - 1]], ordered[k]) for k in clash]


def check_mutual_exclusion(intervals: Sequence["CSInterval"]) -> list[str]:
    return [
        f"P{a.pid} (entry {a.entry}) [{a.enter_instant}, {a.exit_instant}] overlaps "
        f"P{b.pid} (entry {b.entry}) [{b.enter_instant}, {b.exit_instant}]"
        for a, b in find_overlaps(intervals)
    ]


def check_priority_order(intervals: Sequence["CSInterval"]) -> list[str]:
    """
    Whenever two request intervals [request, enter] overlap, the request
    with the smaller (request_timestamp, pid) key must enter first.
    """
    problems = []
    ordered = sorted(intervals, key=lambda i: i.request_instant)
    for idx, a in enumerate(ordered):
        for b in ordered[idx + 1:]:
            if b.request_instant > a.enter_instant:
                continue
            first, second = (a, b) if a.key < b.key else (b, a)
            if first.enter_instant > second.enter_instant:
                problems.append(
                    f"P{second.pid} key {second.key} entered before P{first.pid} key {first.key}"
                )
    return problems


def check_clock_monotonic(entries: Iterable["LogEntry"]) -> list[str]:
    """
    Clock values logged per process never go back, and every ticking
    event strictly increases them.
    """
    problems = []
    last: dict[int, int] = {}
    for entry in entries:
        if entry.pid is None or entry.clock is None:
            continue
        previous = last.get(entry.pid, 0)
        if entry.kind in TICKING_EVENTS and entry.clock <= previous:
            problems.append(
                f"P{entry.pid} clock {previous} -> {entry.clock} on {entry.kind.value}"
            )
        elif entry.clock < previous:
            problems.append(
                f"P{entry.pid} clock went back {previous} -> {entry.clock} on {entry.kind.value}"
            )
        last[entry.pid] = max(previous, entry.clock)
    return problems


def check_deferred_replies(entries: Iterable["LogEntry"]) -> list[str]:
    """
    Every DEFER is answered by exactly one deferred REPLY, sent before
    the deferring process finishes its next CS exit (its RELEASE).
    """
    problems = []
    pending: dict[int, list[int]] = defaultdict(list)

    for entry in entries:
        if entry.kind is EventKind.DEFER:
            if entry.peer in pending[entry.pid]:
                problems.append(f"P{entry.pid} deferred P{entry.peer} twice")
            pending[entry.pid].append(entry.peer)
        elif entry.kind is EventKind.DEFERRED_REPLY:
            if entry.peer not in pending[entry.pid]:
                problems.append(f"P{entry.pid} sent deferred REPLY to P{entry.peer} without a DEFER")
            else:
                pending[entry.pid].remove(entry.peer)
        elif entry.kind is EventKind.RELEASE and pending[entry.pid]:
            problems.append(f"P{entry.pid} released the CS still owing {pending[entry.pid]}")
            pending[entry.pid].clear()

    for pid, owed in pending.items():
        if owed:
            problems.append(f"P{pid} never replied to {owed}")
    return problems


@dataclass
class RunReport:
    """Outcome of verify_run()."""

    overlaps: list[str] = field(default_factory=list)
    priority: list[str] = field(default_factory=list)
    clocks: list[str] = field(default_factory=list)
    deferred: list[str] = field(default_factory=list)
    liveness: list[str] = field(default_factory=list)

    @property
    def problems(self) -> list[str]:
        return self.overlaps + self.priority + self.clocks + self.deferred + self.liveness

    @property
    def ok(self) -> bool:
        return not self.problems

    def raise_for_violations(self):
        if not self.ok:
            raise InvariantViolation("; ".join(self.problems))


def verify_run(result: "SimulationResult") -> RunReport:
    """
    Check every correctness property of a finished run.

    Raises:
        ReplayError: if the log was truncated (entries evicted)
    """
    if result.log_dropped:
        raise ReplayError(
            f"Log lost {result.log_dropped} entries; rerun with log_capacity=None to verify"
        )

    report = RunReport(
        overlaps=check_mutual_exclusion(result.intervals),
        priority=check_priority_order(result.intervals),
        clocks=check_clock_monotonic(result.log),
        deferred=check_deferred_replies(result.log),
    )
    for pid in range(result.config.n_processes):
        got = len(result.intervals_for(pid))
        if got != result.config.entries:
            report.liveness.append(f"P{pid} entered the CS {got}/{result.config.entries} times")
    return report
