"""
Pytest configuration and shared fixtures.
"""

import pytest

from lamportsim.core import EventLog, MessageBus, Process, RandomDelay, ZeroDelay


@pytest.fixture
def zero_delay():
    """Deterministic interleaving: no arrival or hold delays."""
    return ZeroDelay()


@pytest.fixture
def fast_random_delay():
    """Reproducible jittered delays, scaled down to a few milliseconds."""
    return RandomDelay(seed=42, time_scale=0.01)


@pytest.fixture
def make_processes():
    """Factory: (n, entries) -> (processes, bus, log) wired together, no event loop needed."""

    def _make(n: int = 3, entries: int = 1):
        bus = MessageBus(n)
        log = EventLog(capacity=None)
        procs = [Process(pid, n, entries, bus, log) for pid in range(n)]
        return procs, bus, log

    return _make


@pytest.fixture
def deliver_all():
    """Hand queued messages to their owners round-robin until every queue is empty."""

    def _deliver(procs, bus) -> int:
        delivered = 0
        while any(bus.has(p.pid) for p in procs):
            for p in procs:
                msg = bus.recv(p.pid)
                if msg is not None:
                    p.handle(msg)
                    delivered += 1
        return delivered

    return _deliver
