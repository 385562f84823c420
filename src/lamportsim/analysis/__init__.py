"""
Analysis layer: correctness checks over finished runs.

IMPORTANT: This is NOT seen by the engine. One-way derivation only.

- find_overlaps / check_mutual_exclusion: CS intervals never overlap
- check_priority_order: concurrent requests enter in (timestamp, pid) order
- check_clock_monotonic: every process clock strictly increases
- check_deferred_replies: every withheld REPLY is sent exactly once
- verify_run: all of the above plus liveness
- replay / verify_replay: rebuild final state from the event log
"""

from lamportsim.analysis.properties import (
    RunReport,
    check_clock_monotonic,
    check_deferred_replies,
    check_mutual_exclusion,
    check_priority_order,
    find_overlaps,
    verify_run,
)
from lamportsim.analysis.replay import ReplayedProcess, replay, verify_replay

__all__ = [
    "RunReport",
    "check_clock_monotonic",
    "check_deferred_replies",
    "check_mutual_exclusion",
    "check_priority_order",
    "find_overlaps",
    "verify_run",
    "ReplayedProcess",
    "replay",
    "verify_replay",
]
