"""Unit tests for EventLog and PacketEvent."""

import pytest

from lamportsim.core.events import (
    DEFAULT_LOG_CAPACITY,
    EventKind,
    EventLog,
    PacketEvent,
)
from lamportsim.core.messages import MessageKind


class TestEventLog:
    """Tests for EventLog."""

    def test_default_capacity(self):
        assert EventLog().capacity == DEFAULT_LOG_CAPACITY == 250

    def test_append_returns_entry(self):
        log = EventLog()
        entry = log.append("[P0] REQUEST(ts=1)", EventKind.REQUEST, pid=0, clock=1)

        assert entry.description == "[P0] REQUEST(ts=1)"
        assert entry.kind is EventKind.REQUEST
        assert entry.pid == 0
        assert entry.clock == 1
        assert entry.timestamp > 0
        assert str(entry) == "[P0] REQUEST(ts=1)"
        assert log.entries == (entry,)

    def test_oldest_evicted_first(self):
        log = EventLog(capacity=3)
        for i in range(5):
            log.append(f"e{i}", EventKind.STEP)

        assert [e.description for e in log.entries] == ["e2", "e3", "e4"]
        assert len(log) == 3
        assert log.dropped == 2
        assert log.appended == 5

    def test_unbounded(self):
        log = EventLog(capacity=None)
        for i in range(1000):
            log.append(f"e{i}", EventKind.STEP)
        assert len(log) == 1000
        assert log.dropped == 0

    def test_latest_newest_first(self):
        log = EventLog()
        for i in range(4):
            log.append(f"e{i}", EventKind.STEP)

        assert [e.description for e in log.latest(2)] == ["e3", "e2"]
        assert log.latest(0) == ()

    def test_of_kind(self):
        log = EventLog()
        log.append("a", EventKind.REQUEST, pid=0)
        log.append("b", EventKind.DEFER, pid=1, peer=0)
        log.append("c", EventKind.REQUEST, pid=1)
        assert [e.description for e in log.of_kind(EventKind.REQUEST)] == ["a", "c"]

    def test_entries_is_a_snapshot(self):
        log = EventLog()
        log.append("a", EventKind.STEP)
        view = log.entries
        log.append("b", EventKind.STEP)
        assert len(view) == 1


class TestPacketEvent:
    """Tests for PacketEvent expiry."""

    def test_expiry(self):
        pkt = PacketEvent(id=1, src=0, dst=1, kind=MessageKind.REQUEST, timestamp=3, created_at=10.0)
        assert not pkt.expired(10.5)
        assert pkt.expired(11.0)
        assert pkt.expired(12.0, ttl=2.0)

    @pytest.mark.parametrize("kind", list(MessageKind))
    def test_kinds(self, kind):
        pkt = PacketEvent(id=7, src=2, dst=0, kind=kind, timestamp=1, created_at=0.0)
        assert pkt.kind is kind
