"""
Simulation driver: N processes, one bus, one run.

Each process gets two asyncio tasks on the same event loop:

- cycle task: arrival delay → REQUEST → wait for grant → enter CS → hold
  → exit → flush deferred replies + RELEASE, repeated `entries` times
- inbox task: blocks on the process queue and applies the state machine
  to every inbound message for the whole run, so a process keeps
  answering peers while idle, inside the CS and after it is finished

The driver does NOT enforce mutual exclusion; that emerges from the
state machine. It only observes: every transition is stamped with a
simulated instant, and entering the CS while another process is inside
raises InvariantViolation.

All mutations happen between awaits on one loop, so every change to a
queue or a process record is serialised. Observers only ever get
immutable snapshots.
"""

from __future__ import annotations
import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from lamportsim.core.delays import DelayProvider, RandomDelay
from lamportsim.core.errors import ConfigurationError, InvariantViolation, SimulationError
from lamportsim.core.events import (
    DEFAULT_LOG_CAPACITY,
    DEFAULT_PACKET_TTL,
    EventKind,
    EventLog,
    LogEntry,
    PacketEvent,
)
from lamportsim.core.messages import Message, MessageBus, MessageKind
from lamportsim.core.process import Process, ProcessSnapshot
from lamportsim.core.step import Checkpoint, StepController


logger = logging.getLogger(__name__)

MIN_PROCESSES = 2
MAX_PROCESSES = 10
MIN_ENTRIES = 1
MAX_ENTRIES = 10


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class SimulationConfig:
    """Configuration for one simulation run."""

    n_processes: int = 4  # Number of simulated processes (2..10)
    entries: int = 2  # CS entries per process (1..10)
    step_mode: bool = False  # Pause at checkpoints until advance()
    log_capacity: int | None = DEFAULT_LOG_CAPACITY  # None = unbounded
    packet_ttl: float = DEFAULT_PACKET_TTL  # Display lifetime of packet events (s)
    seed: int | None = None  # Seed for the default RandomDelay

    def validate(self):
        """Raise ConfigurationError if any parameter is out of bounds."""
        if not _is_int(self.n_processes) or not MIN_PROCESSES <= self.n_processes <= MAX_PROCESSES:
            raise ConfigurationError(
                f"n_processes must be an integer in [{MIN_PROCESSES}, {MAX_PROCESSES}], "
                f"got {self.n_processes!r}"
            )
        if not _is_int(self.entries) or not MIN_ENTRIES <= self.entries <= MAX_ENTRIES:
            raise ConfigurationError(
                f"entries must be an integer in [{MIN_ENTRIES}, {MAX_ENTRIES}], got {self.entries!r}"
            )
        if not isinstance(self.step_mode, bool):
            raise ConfigurationError(f"step_mode must be a bool, got {self.step_mode!r}")
        if self.log_capacity is not None and (not _is_int(self.log_capacity) or self.log_capacity < 1):
            raise ConfigurationError(
                f"log_capacity must be a positive integer or None, got {self.log_capacity!r}"
            )
        if self.packet_ttl < 0:
            raise ConfigurationError(f"packet_ttl must be >= 0, got {self.packet_ttl!r}")


@dataclass(frozen=True)
class CSInterval:
    """One occupancy of the critical section, in simulated instants."""

    pid: int
    entry: int  # 0-based entry number for this process
    request_timestamp: int
    request_instant: int
    enter_instant: int
    exit_instant: int

    @property
    def key(self) -> tuple[int, int]:
        """Priority key of the request that led to this entry."""
        return (self.request_timestamp, self.pid)


@dataclass(frozen=True)
class SimulationUpdate:
    """What an observer receives after every state mutation."""

    snapshots: tuple[ProcessSnapshot, ...]
    log: tuple[LogEntry, ...]
    packets: tuple[PacketEvent, ...]


@dataclass
class SimulationResult:
    """Outcome of a completed run."""

    config: SimulationConfig
    snapshots: tuple[ProcessSnapshot, ...]
    intervals: tuple[CSInterval, ...]
    log: tuple[LogEntry, ...]
    log_dropped: int
    messages_sent: dict[MessageKind, int] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def cs_order(self) -> list[int]:
        """pids in the order they entered the CS."""
        return [i.pid for i in sorted(self.intervals, key=lambda i: i.enter_instant)]

    def intervals_for(self, pid: int) -> list[CSInterval]:
        return [i for i in self.intervals if i.pid == pid]

    @property
    def final_clocks(self) -> dict[int, int]:
        return {s.pid: s.clock for s in self.snapshots}


class Simulation:
    """
    Owns all processes and the bus for one run.

    A Simulation runs once. Use run() from async code, or run_simulation()
    for a blocking call.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        delays: DelayProvider | None = None,
        steps: StepController | None = None,
    ):
        self.config = config if config is not None else SimulationConfig()
        self.config.validate()

        n = self.config.n_processes
        self.delays = delays if delays is not None else RandomDelay(seed=self.config.seed)
        self.steps = steps if steps is not None else StepController(enabled=self.config.step_mode)
        self.log = EventLog(self.config.log_capacity)
        self.bus = MessageBus(n)
        self.processes = [
            Process(pid, n, self.config.entries, self.bus, self.log) for pid in range(n)
        ]

        self.intervals: list[CSInterval] = []
        self.packets: list[PacketEvent] = []
        self._granted = [asyncio.Event() for _ in range(n)]
        self._subscribers: list[Callable[[SimulationUpdate], None]] = []
        self._packet_ids = itertools.count(1)
        self._instant = 0
        self._occupant: int | None = None
        self._started = False

        self.bus.listeners.append(self._on_enqueue)

    # ─── observation ───────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[SimulationUpdate], None]):
        """Register an observer called after every state mutation."""
        self._subscribers.append(callback)

    def snapshot(self) -> tuple[ProcessSnapshot, ...]:
        return tuple(p.snapshot() for p in self.processes)

    def active_packets(self) -> tuple[PacketEvent, ...]:
        """Packets still within their display lifetime."""
        now = time.monotonic()
        self.packets = [p for p in self.packets if not p.expired(now, self.config.packet_ttl)]
        return tuple(self.packets)

    def _on_enqueue(self, src: int, dst: int, msg: Message):
        self.packets.append(
            PacketEvent(
                id=next(self._packet_ids),
                src=src,
                dst=dst,
                kind=msg.kind,
                timestamp=msg.timestamp,
                created_at=time.monotonic(),
            )
        )

    def _publish(self):
        if not self._subscribers:
            return
        update = SimulationUpdate(
            snapshots=self.snapshot(),
            log=self.log.entries,
            packets=self.active_packets(),
        )
        for callback in self._subscribers:
            callback(update)

    def _mark(self) -> int:
        """Advance and return the simulated instant."""
        self._instant += 1
        return self._instant

    # ─── run ───────────────────────────────────────────────────────────

    async def run(self) -> SimulationResult:
        """Run every process through all of its CS entries."""
        if self._started:
            raise SimulationError("A Simulation can only be run once")
        self._started = True

        started_at = time.monotonic()
        logger.info(
            "Starting run: %d processes x %d entries (step_mode=%s)",
            self.config.n_processes, self.config.entries, self.steps.enabled,
        )

        inboxes = [
            asyncio.create_task(self._serve(p), name=f"inbox-P{p.pid}")
            for p in self.processes
        ]
        cycles = [
            asyncio.create_task(self._cycle(p), name=f"cycle-P{p.pid}")
            for p in self.processes
        ]
        try:
            await self._watch(asyncio.gather(*cycles), inboxes)
            await self._watch(self.bus.join(), inboxes)
        finally:
            for task in (*inboxes, *cycles):
                task.cancel()
            await asyncio.gather(*inboxes, *cycles, return_exceptions=True)

        self._check_final_state()
        self.log.append("Simulation finished.", EventKind.RUN_COMPLETE)
        self._publish()

        elapsed = time.monotonic() - started_at
        logger.info("Run finished in %.3fs, %d CS entries", elapsed, len(self.intervals))
        return SimulationResult(
            config=self.config,
            snapshots=self.snapshot(),
            intervals=tuple(self.intervals),
            log=self.log.entries,
            log_dropped=self.log.dropped,
            messages_sent=dict(self.bus.sent),
            elapsed=elapsed,
        )

    async def _watch(self, awaitable, inboxes: list[asyncio.Task]):
        """Await awaitable, but fail as soon as any inbox task fails."""
        main = asyncio.ensure_future(awaitable)
        try:
            done, _ = await asyncio.wait([main, *inboxes], return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task is not main:
                    task.result()
                    raise SimulationError(f"{task.get_name()} stopped unexpectedly")
            main.result()
        finally:
            if not main.done():
                main.cancel()

    async def _serve(self, process: Process):
        pid = process.pid
        while True:
            msg = await self.bus.get(pid)
            process.handle(msg)
            self.bus.task_done(pid)
            if process.granted:
                self._granted[pid].set()
            self._publish()

    async def _cycle(self, process: Process):
        pid = process.pid
        granted = self._granted[pid]

        for entry in range(self.config.entries):
            await asyncio.sleep(self.delays.arrival(pid, entry))

            granted.clear()
            process.request()
            request_timestamp = process.request_timestamp
            request_instant = self._mark()
            self._publish()
            await self._checkpoint(process, Checkpoint.AFTER_REQUEST, f"P{pid} broadcast REQUEST")

            await granted.wait()
            await self._checkpoint(process, Checkpoint.BEFORE_ENTER, f"P{pid} ENTER CS")
            enter_instant = self._enter(process)
            self._publish()

            await asyncio.sleep(self.delays.hold(pid, entry))
            await self._checkpoint(process, Checkpoint.BEFORE_EXIT, f"P{pid} EXIT CS")
            exit_instant = self._exit(process)
            self.intervals.append(
                CSInterval(
                    pid=pid,
                    entry=entry,
                    request_timestamp=request_timestamp,
                    request_instant=request_instant,
                    enter_instant=enter_instant,
                    exit_instant=exit_instant,
                )
            )
            process.finish_exit()
            self._publish()

    async def _checkpoint(self, process: Process, checkpoint: Checkpoint, label: str):
        if not self.steps.enabled:
            return
        self.log.append(
            f"[STEP] {label} (waiting for advance)",
            EventKind.STEP,
            pid=process.pid,
            clock=process.clock,
        )
        self._publish()
        await self.steps.checkpoint(process.pid, checkpoint, label)

    def _enter(self, process: Process) -> int:
        if self._occupant is not None:
            raise InvariantViolation(
                f"P{process.pid} entered the CS while P{self._occupant} is inside"
            )
        process.enter_cs()
        self._occupant = process.pid
        return self._mark()

    def _exit(self, process: Process) -> int:
        if self._occupant != process.pid:
            raise InvariantViolation(
                f"P{process.pid} left the CS but the recorded occupant is {self._occupant}"
            )
        process.begin_exit()
        self._occupant = None
        return self._mark()

    def _check_final_state(self):
        for p in self.processes:
            if not p.finished or p.requesting or p.deferred:
                raise InvariantViolation(
                    f"P{p.pid} ended in an inconsistent state: {p.snapshot()}"
                )


def run_simulation(
    config: SimulationConfig | None = None,
    delays: DelayProvider | None = None,
) -> SimulationResult:
    """
    Blocking convenience wrapper around Simulation.run().

    Step mode needs someone calling advance() and is not usable here.
    """
    if config is not None and config.step_mode:
        raise ConfigurationError("run_simulation() cannot drive step mode; use Simulation.run()")

    async def _main() -> SimulationResult:
        return await Simulation(config, delays).run()

    return asyncio.run(_main())
