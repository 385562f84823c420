"""
Step controller: pause tasks at checkpoints until told to continue.

Every parked task gets its own future, so several tasks can wait at the
same time (at the same or different checkpoints) and each one needs its
own advance() to resume. There is no barrier that releases everyone.
"""

from __future__ import annotations
import asyncio
from collections import deque
from dataclasses import dataclass, field
from enum import Enum


class Checkpoint(str, Enum):
    AFTER_REQUEST = "after_request"
    BEFORE_ENTER = "before_enter"
    BEFORE_EXIT = "before_exit"


@dataclass
class Waiter:
    """A task parked at a checkpoint."""

    pid: int
    checkpoint: Checkpoint
    label: str
    future: asyncio.Future = field(repr=False, compare=False)


class StepController:
    """
    Rendezvous gate for step mode.

    When disabled, checkpoint() returns immediately and advance() is a no-op.
    """

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._waiters: deque[Waiter] = deque()
        self._arrived = asyncio.Event()
        self.released: int = 0

    async def checkpoint(self, pid: int, checkpoint: Checkpoint, label: str = ""):
        """Park the calling task until an advance() picks it."""
        if not self.enabled:
            return
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(Waiter(pid, checkpoint, label, future))
        self._arrived.set()
        await future

    def advance(self, pid: int | None = None, checkpoint: Checkpoint | None = None) -> Waiter | None:
        """
        Release exactly one parked task.

        Picks the oldest waiter matching the filters (the oldest overall when
        called without arguments). Returns it, or None if nothing matched.
        """
        for waiter in self._waiters:
            if pid is not None and waiter.pid != pid:
                continue
            if checkpoint is not None and waiter.checkpoint is not checkpoint:
                continue
            self._waiters.remove(waiter)
            if not self._waiters:
                self._arrived.clear()
            if not waiter.future.done():
                waiter.future.set_result(None)
            self.released += 1
            return waiter
        return None

    @property
    def pending(self) -> tuple[tuple[int, Checkpoint], ...]:
        """(pid, checkpoint) of every parked task, oldest first."""
        return tuple((w.pid, w.checkpoint) for w in self._waiters)

    async def wait_for_pending(self):
        """Block until at least one task is parked."""
        while not self._waiters:
            self._arrived.clear()
            await self._arrived.wait()
