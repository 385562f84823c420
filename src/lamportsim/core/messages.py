"""
Messages and the per-process message bus.

Every process owns exactly one inbound FIFO queue. Any process may write to
any queue; only the owner reads from its own. Per sender→destination link the
order is preserved. Nothing is ever dropped, duplicated or rewritten.

Three message kinds exist:
- REQUEST: "I want the critical section", carries the request timestamp
- REPLY: permission granted to the requester
- RELEASE: "I left the critical section" (observability only)
"""

from __future__ import annotations
import asyncio
import dataclasses
import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable


logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    REQUEST = "REQUEST"
    REPLY = "REPLY"
    RELEASE = "RELEASE"


@dataclass(frozen=True)
class Message:
    """
    A message sent from one process to another.

    timestamp is the sender's Lamport clock at send time.
    request_timestamp is only set on REQUEST; with sender_pid it forms
    the priority key of the request.
    """

    kind: MessageKind
    timestamp: int
    sender_pid: int
    request_timestamp: int | None = None

    def __post_init__(self):
        if self.kind is MessageKind.REQUEST and self.request_timestamp is None:
            raise ValueError("REQUEST messages must carry a request_timestamp")


# (src, dst, message) -> None
EnqueueListener = Callable[[int, int, Message], None]


class MessageBus:
    """
    N independent inbound queues, addressable by pid.

    Structure:
    - queues[pid]: asyncio.Queue of Message, oldest first
    - sent: number of enqueued copies per MessageKind
    - listeners: called on every enqueue (used for packet events)

    recv/has are the non-blocking interface; get() waits until a message
    is enqueued. task_done()/join() let the owner of the bus wait until
    every message has been consumed.
    """

    def __init__(self, n_processes: int):
        self.n_processes = n_processes
        self.queues: list[asyncio.Queue] = [asyncio.Queue() for _ in range(n_processes)]
        self.sent: Counter = Counter()
        self.listeners: list[EnqueueListener] = []

    def _queue(self, pid: int) -> asyncio.Queue:
        if not 0 <= pid < self.n_processes:
            raise IndexError(f"No process with pid {pid} (n_processes={self.n_processes})")
        return self.queues[pid]

    def send(self, dst: int, msg: Message):
        """Append msg to the queue of dst."""
        self._queue(dst).put_nowait(msg)
        self.sent[msg.kind] += 1
        logger.debug("P%d -> P%d %s(ts=%d)", msg.sender_pid, dst, msg.kind.value, msg.timestamp)
        for listener in self.listeners:
            listener(msg.sender_pid, dst, msg)

    def broadcast(self, src: int, msg: Message):
        """Send an independent copy of msg to every process except src."""
        for dst in range(self.n_processes):
            if dst != src:
                self.send(dst, dataclasses.replace(msg))

    def recv(self, pid: int) -> Message | None:
        """Pop the oldest message for pid, or None if its queue is empty."""
        queue = self._queue(pid)
        if queue.empty():
            return None
        msg = queue.get_nowait()
        queue.task_done()
        return msg

    def has(self, pid: int) -> bool:
        """True iff pid has at least one queued message."""
        return not self._queue(pid).empty()

    async def get(self, pid: int) -> Message:
        """
        Wait for and pop the oldest message for pid.

        Callers must call task_done(pid) once the message is handled.
        """
        return await self._queue(pid).get()

    def task_done(self, pid: int):
        self._queue(pid).task_done()

    async def join(self):
        """Wait until every enqueued message has been consumed and handled."""
        for queue in self.queues:
            await queue.join()

    def pending(self, pid: int) -> int:
        """Number of messages waiting for pid."""
        return self._queue(pid).qsize()

    def total_pending(self) -> int:
        return sum(queue.qsize() for queue in self.queues)
