"""Unit tests for the Lamport clock rule and priority key."""

import math
from dataclasses import dataclass

import pytest

from lamportsim.core.clock import priority_key, tick


@dataclass
class Rec:
    pid: int = 0
    clock: int = 0
    requesting: bool = False
    request_timestamp: int | None = None


class TestTick:
    """Tests for tick()."""

    def test_local_event_advances_by_one(self):
        p = Rec(clock=5)
        assert tick(p) == 6
        assert p.clock == 6

    def test_receive_takes_max_plus_one(self):
        p = Rec(clock=3)
        assert tick(p, 10) == 11

    def test_receive_older_timestamp_still_advances(self):
        p = Rec(clock=10)
        assert tick(p, 2) == 11

    def test_equal_timestamp(self):
        p = Rec(clock=4)
        assert tick(p, 4) == 5

    def test_sequence_strictly_increasing(self):
        p = Rec()
        values = [tick(p, ts) for ts in (0, 7, 3, 0, 8, 8)]
        assert values == sorted(set(values))

    def test_send_receive_causality(self):
        sender, receiver = Rec(pid=0, clock=9), Rec(pid=1, clock=1)
        sent_at = tick(sender)
        received_at = tick(receiver, sent_at)
        assert sent_at < received_at


class TestPriorityKey:
    """Tests for priority_key()."""

    def test_idle_is_infinite(self):
        assert priority_key(Rec(pid=3)) == (math.inf, 3)

    def test_requesting(self):
        p = Rec(pid=2, requesting=True, request_timestamp=7)
        assert priority_key(p) == (7, 2)

    def test_tie_broken_by_pid(self):
        a = Rec(pid=0, requesting=True, request_timestamp=1)
        b = Rec(pid=1, requesting=True, request_timestamp=1)
        assert priority_key(a) < priority_key(b)

    def test_smaller_timestamp_wins_over_pid(self):
        a = Rec(pid=9, requesting=True, request_timestamp=1)
        b = Rec(pid=0, requesting=True, request_timestamp=2)
        assert priority_key(a) < priority_key(b)

    @pytest.mark.parametrize("ts", [0, 1, 10**9])
    def test_any_request_beats_idle(self, ts):
        idle = Rec(pid=0)
        req = Rec(pid=5, requesting=True, request_timestamp=ts)
        assert priority_key(req) < priority_key(idle)
