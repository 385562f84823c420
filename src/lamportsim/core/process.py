"""
Process: the Ricart–Agrawala state machine of one simulated process.

States:
    IDLE ──request()──▶ REQUESTING ──enter_cs()──▶ IN_CS ──begin_exit()──▶ EXITING
      ▲                                                                      │
      └──────────────────────────── finish_exit() ◀──────────────────────────┘

Decision rule on an inbound REQUEST from S carrying request timestamp ts_r:

    (ts_r, S) < own priority key   →  REPLY immediately
    otherwise                      →  defer S until our own CS exit

A process without a pending request has key (+inf, pid) and therefore
always replies. Ties on timestamp are broken by the smaller pid.

The process never awaits anything: every method runs to completion, so a
caller on a single event loop sees each transition atomically.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from lamportsim.core.clock import priority_key, tick
from lamportsim.core.errors import InvariantViolation
from lamportsim.core.events import EventKind
from lamportsim.core.messages import Message, MessageKind

if TYPE_CHECKING:
    from lamportsim.core.events import EventLog
    from lamportsim.core.messages import MessageBus


logger = logging.getLogger(__name__)


class ProcessState(str, Enum):
    IDLE = "IDLE"
    REQUESTING = "REQUESTING"
    IN_CS = "IN_CS"
    EXITING = "EXITING"


@dataclass(frozen=True)
class ProcessSnapshot:
    """Immutable copy of a process record, safe to hand to observers."""

    pid: int
    clock: int
    requesting: bool
    request_timestamp: int | None
    deferred: tuple[int, ...]
    replies_needed: int
    completed_entries: int
    state: ProcessState


class Process:
    """
    One participant in the mutual exclusion protocol.

    Owns its Lamport clock and request bookkeeping. Outbound messages go
    straight to the bus; every transition is written to the event log.
    """

    def __init__(
        self,
        pid: int,
        n_processes: int,
        entries: int,
        bus: "MessageBus",
        log: "EventLog",
    ):
        self.pid = pid
        self.n_processes = n_processes
        self.entries = entries
        self.bus = bus
        self.log = log

        self.clock: int = 0
        self.state = ProcessState.IDLE
        self.requesting: bool = False
        self.request_timestamp: int | None = None
        self.deferred: list[int] = []
        self.replies_needed: int = 0
        self.completed_entries: int = 0

    @property
    def finished(self) -> bool:
        """True once the configured number of CS entries is done."""
        return self.completed_entries >= self.entries

    @property
    def granted(self) -> bool:
        """Requesting and holding a REPLY from every peer."""
        return self.state is ProcessState.REQUESTING and self.replies_needed == 0

    def snapshot(self) -> ProcessSnapshot:
        return ProcessSnapshot(
            pid=self.pid,
            clock=self.clock,
            requesting=self.requesting,
            request_timestamp=self.request_timestamp,
            deferred=tuple(self.deferred),
            replies_needed=self.replies_needed,
            completed_entries=self.completed_entries,
            state=self.state,
        )

    def _expect(self, state: ProcessState, action: str):
        if self.state is not state:
            raise InvariantViolation(
                f"P{self.pid} cannot {action} in state {self.state.value}"
            )

    # ─── transitions ───────────────────────────────────────────────────

    def request(self) -> Message:
        """IDLE → REQUESTING: stamp a request and broadcast it."""
        self._expect(ProcessState.IDLE, "request")
        if self.finished:
            raise InvariantViolation(
                f"P{self.pid} already completed {self.completed_entries} entries"
            )

        self.request_timestamp = tick(self)
        self.requesting = True
        self.replies_needed = self.n_processes - 1
        self.state = ProcessState.REQUESTING

        msg = Message(
            kind=MessageKind.REQUEST,
            timestamp=self.clock,
            sender_pid=self.pid,
            request_timestamp=self.request_timestamp,
        )
        self.bus.broadcast(self.pid, msg)
        self.log.append(
            f"[P{self.pid}] REQUEST(ts={self.request_timestamp})",
            EventKind.REQUEST,
            pid=self.pid,
            clock=self.clock,
        )
        logger.debug("P%d requests CS with key (%d, %d)", self.pid, self.request_timestamp, self.pid)
        return msg

    def handle(self, msg: Message):
        """Merge the message timestamp into our clock and react to it."""
        tick(self, msg.timestamp)
        self.log.append(
            f"[P{self.pid}] RECV {msg.kind.value} ← P{msg.sender_pid} (ts={msg.timestamp})",
            EventKind.RECEIVE,
            pid=self.pid,
            peer=msg.sender_pid,
            clock=self.clock,
            message_kind=msg.kind,
            message_timestamp=msg.timestamp,
        )

        if msg.kind is MessageKind.REQUEST:
            self._on_request(msg)
        elif msg.kind is MessageKind.REPLY:
            self._on_reply(msg)
        # RELEASE only advances the clock

    def _on_request(self, msg: Message):
        requester = (msg.request_timestamp, msg.sender_pid)
        if requester < priority_key(self):
            self._send_reply(msg.sender_pid, deferred=False)
        else:
            self.deferred.append(msg.sender_pid)
            self.log.append(
                f"[P{self.pid}] DEFER → P{msg.sender_pid}",
                EventKind.DEFER,
                pid=self.pid,
                peer=msg.sender_pid,
                clock=self.clock,
            )
            logger.debug("P%d defers P%d", self.pid, msg.sender_pid)

    def _on_reply(self, msg: Message):
        if self.state is not ProcessState.REQUESTING or self.replies_needed <= 0:
            raise InvariantViolation(
                f"P{self.pid} got REPLY from P{msg.sender_pid} with no outstanding request "
                f"(state={self.state.value}, replies_needed={self.replies_needed})"
            )
        self.replies_needed -= 1

    def _send_reply(self, dst: int, deferred: bool):
        reply = Message(kind=MessageKind.REPLY, timestamp=tick(self), sender_pid=self.pid)
        self.bus.send(dst, reply)
        if deferred:
            self.log.append(
                f"[P{self.pid}] REPLY deferred → P{dst}",
                EventKind.DEFERRED_REPLY,
                pid=self.pid,
                peer=dst,
                clock=self.clock,
            )
        else:
            self.log.append(
                f"[P{self.pid}] REPLY → P{dst}",
                EventKind.REPLY,
                pid=self.pid,
                peer=dst,
                clock=self.clock,
            )

    def enter_cs(self):
        """REQUESTING → IN_CS. Only legal once every peer has replied."""
        self._expect(ProcessState.REQUESTING, "enter the CS")
        if self.replies_needed != 0:
            raise InvariantViolation(
                f"P{self.pid} entering CS while still waiting for {self.replies_needed} replies"
            )
        self.state = ProcessState.IN_CS
        self.log.append(
            f"[P{self.pid}] >>> ENTER CS @L{self.clock}",
            EventKind.CS_ENTER,
            pid=self.pid,
            clock=self.clock,
        )

    def begin_exit(self):
        """IN_CS → EXITING: leaving the CS is a local event."""
        self._expect(ProcessState.IN_CS, "exit the CS")
        tick(self)
        self.state = ProcessState.EXITING
        self.log.append(
            f"[P{self.pid}] <<< EXIT  CS @L{self.clock}",
            EventKind.CS_EXIT,
            pid=self.pid,
            clock=self.clock,
        )

    def finish_exit(self):
        """EXITING → IDLE: flush deferred replies in order, then broadcast RELEASE."""
        self._expect(ProcessState.EXITING, "finish exiting")
        self.requesting = False
        self.request_timestamp = None

        deferred, self.deferred = self.deferred, []
        for dst in deferred:
            self._send_reply(dst, deferred=True)

        release = Message(kind=MessageKind.RELEASE, timestamp=tick(self), sender_pid=self.pid)
        self.bus.broadcast(self.pid, release)
        self.completed_entries += 1
        self.state = ProcessState.IDLE
        self.log.append(
            f"[P{self.pid}] RELEASE (ts={release.timestamp})",
            EventKind.RELEASE,
            pid=self.pid,
            clock=self.clock,
        )
        logger.debug(
            "P%d released CS (%d/%d), flushed %d deferred replies",
            self.pid, self.completed_entries, self.entries, len(deferred),
        )
