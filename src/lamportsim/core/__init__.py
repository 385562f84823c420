"""
Core engine primitives.

This layer knows nothing about presentation. It only knows:
- Lamport clocks and the (request_timestamp, pid) priority key
- Messages and per-process FIFO queues
- The Ricart–Agrawala state machine of each process
- Step checkpoints that pause tasks until advanced
- The driver that runs N processes and observes the CS
- The bounded event log and transient packet events
"""

from lamportsim.core.errors import (
    SimulationError,
    ConfigurationError,
    InvariantViolation,
    ReplayError,
)
from lamportsim.core.clock import tick, priority_key
from lamportsim.core.messages import Message, MessageKind, MessageBus
from lamportsim.core.events import EventKind, EventLog, LogEntry, PacketEvent
from lamportsim.core.process import Process, ProcessSnapshot, ProcessState
from lamportsim.core.step import Checkpoint, StepController, Waiter
from lamportsim.core.delays import DelayProvider, FixedDelay, RandomDelay, ZeroDelay
from lamportsim.core.simulation import (
    MAX_ENTRIES,
    MAX_PROCESSES,
    MIN_ENTRIES,
    MIN_PROCESSES,
    CSInterval,
    Simulation,
    SimulationConfig,
    SimulationResult,
    SimulationUpdate,
    run_simulation,
)

__all__ = [
    "SimulationError",
    "ConfigurationError",
    "InvariantViolation",
    "ReplayError",
    "tick",
    "priority_key",
    "Message",
    "MessageKind",
    "MessageBus",
    "EventKind",
    "EventLog",
    "LogEntry",
    "PacketEvent",
    "Process",
    "ProcessSnapshot",
    "ProcessState",
    "Checkpoint",
    "StepController",
    "Waiter",
    "DelayProvider",
    "FixedDelay",
    "RandomDelay",
    "ZeroDelay",
    "MIN_PROCESSES",
    "MAX_PROCESSES",
    "MIN_ENTRIES",
    "MAX_ENTRIES",
    "CSInterval",
    "Simulation",
    "SimulationConfig",
    "SimulationResult",
    "SimulationUpdate",
    "run_simulation",
]
