"""
Event log and packet events.

The event log is the audit trail of a run: an append-only, bounded
sequence of human-readable records. Each record also carries structured
fields (kind, pid, peer, clock) so analyses and replay never have to parse
the description text.

Packet events are transient: one per enqueued message, used only to animate
traffic. They expire after a fixed display time and play no role in
correctness.
"""

from __future__ import annotations
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from lamportsim.core.messages import MessageKind


DEFAULT_LOG_CAPACITY = 250
DEFAULT_PACKET_TTL = 0.9  # seconds a packet stays visible


class EventKind(str, Enum):
    REQUEST = "REQUEST"              # REQUEST broadcast
    RECEIVE = "RECEIVE"              # any message consumed (clock merge)
    REPLY = "REPLY"                  # immediate REPLY sent
    DEFER = "DEFER"                  # REPLY withheld
    CS_ENTER = "CS_ENTER"
    CS_EXIT = "CS_EXIT"
    DEFERRED_REPLY = "DEFERRED_REPLY"  # withheld REPLY flushed on exit
    RELEASE = "RELEASE"              # RELEASE broadcast
    STEP = "STEP"                    # task parked at a step checkpoint
    RUN_COMPLETE = "RUN_COMPLETE"


@dataclass(frozen=True)
class LogEntry:
    """One log record. clock is the process clock right after the event."""

    timestamp: float  # wall clock, seconds since the epoch
    description: str
    kind: EventKind
    pid: int | None = None
    peer: int | None = None
    clock: int | None = None
    message_kind: MessageKind | None = None
    message_timestamp: int | None = None

    def __str__(self) -> str:
        return self.description


class EventLog:
    """
    Bounded append-only record of events, oldest first.

    When capacity is reached the oldest entries are evicted; dropped counts
    how many. capacity=None keeps everything (needed for replay of long runs).
    """

    def __init__(self, capacity: int | None = DEFAULT_LOG_CAPACITY):
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self.dropped = 0
        self.appended = 0

    def append(
        self,
        description: str,
        kind: EventKind,
        pid: int | None = None,
        peer: int | None = None,
        clock: int | None = None,
        message_kind: MessageKind | None = None,
        message_timestamp: int | None = None,
    ) -> LogEntry:
        """Record an event and return the stored entry."""
        entry = LogEntry(
            timestamp=time.time(),
            description=description,
            kind=kind,
            pid=pid,
            peer=peer,
            clock=clock,
            message_kind=message_kind,
            message_timestamp=message_timestamp,
        )
        if self.capacity is not None and len(self._entries) == self.capacity:
            self.dropped += 1
        self._entries.append(entry)
        self.appended += 1
        return entry

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        """Snapshot of the retained entries, oldest first."""
        return tuple(self._entries)

    def latest(self, n: int) -> tuple[LogEntry, ...]:
        """The n most recent entries, newest first (the way a live view shows them)."""
        if n <= 0:
            return ()
        return tuple(reversed(self._entries))[:n]

    def of_kind(self, kind: EventKind) -> list[LogEntry]:
        return [e for e in self._entries if e.kind is kind]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(tuple(self._entries))


@dataclass(frozen=True)
class PacketEvent:
    """A message in flight, for animation only."""

    id: int
    src: int
    dst: int
    kind: MessageKind
    timestamp: int  # Lamport timestamp carried by the message
    created_at: float  # event-loop time when it was enqueued

    def expired(self, now: float, ttl: float = DEFAULT_PACKET_TTL) -> bool:
        return now - self.created_at >= ttl
