#!/usr/bin/env python3
"""
Clock tests: state rules, deferred calls and no delivery after stop
"""

import threading
import time

import pytest

from yogik.yk_clock import ClockState, ManualClock, SessionClock


class TestManualClock:
    def test_ticks_deliver_exact_interval(self):
        clock = ManualClock()
        deltas = []
        clock.start(0.5, deltas.append)
        clock.advance(2.0)

        assert deltas == [0.5, 0.5, 0.5, 0.5]

    def test_state_transitions_are_guarded(self):
        clock = ManualClock()
        assert not clock.pause()
        assert not clock.resume()
        assert clock.start(1.0, lambda d: None)
        assert not clock.start(1.0, lambda d: None)
        assert not clock.resume()
        assert clock.pause()
        assert clock.state is ClockState.PAUSED
        assert clock.resume()
        clock.stop()
        assert clock.state is ClockState.IDLE

    def test_no_ticks_while_paused(self):
        clock = ManualClock()
        deltas = []
        clock.start(1.0, deltas.append)
        clock.advance(2.0)
        clock.pause()
        clock.advance(10.0)
        assert len(deltas) == 2

        clock.resume()
        clock.advance(1.0)
        assert len(deltas) == 3

    def test_no_ticks_after_stop(self):
        clock = ManualClock()
        deltas = []
        clock.start(1.0, deltas.append)
        clock.advance(1.0)
        clock.stop()
        clock.advance(5.0)

        assert deltas == [1.0]

    def test_call_later_fires_once_at_its_time(self):
        clock = ManualClock()
        fired = []
        clock.call_later(3.0, lambda: fired.append(clock.now))
        clock.advance(2.0)
        assert fired == []

        clock.advance(2.0)
        assert fired == [3.0]
        assert clock.pending_calls == 0

    def test_cancelled_call_never_runs(self):
        clock = ManualClock()
        fired = []
        call = clock.call_later(1.0, lambda: fired.append(True))
        call.cancel()
        clock.advance(5.0)

        assert fired == []
        assert call.cancelled

    def test_deferred_call_can_start_ticking(self):
        clock = ManualClock()
        deltas = []
        clock.call_later(1.0, lambda: clock.start(0.25, deltas.append))
        clock.advance(2.0)

        assert len(deltas) == 4

    def test_non_positive_interval_rejected(self):
        with pytest.raises(ValueError):
            ManualClock().start(0, lambda d: None)


class TestSessionClock:
    def test_ticks_stop_when_stopped(self):
        clock = SessionClock(name="test-clock")
        ticks = []
        clock.start(0.01, ticks.append)
        time.sleep(0.15)
        clock.stop()
        delivered = len(ticks)
        time.sleep(0.1)

        assert delivered > 0
        assert len(ticks) == delivered
        assert all(d == 0.01 for d in ticks)

    def test_pause_holds_ticks(self):
        clock = SessionClock(name="test-clock")
        ticks = []
        clock.start(0.01, ticks.append)
        time.sleep(0.05)
        clock.pause()
        paused_at = len(ticks)
        time.sleep(0.1)
        assert len(ticks) == paused_at

        clock.resume()
        time.sleep(0.1)
        clock.stop()
        assert len(ticks) > paused_at

    def test_cancelled_call_later_never_runs(self):
        clock = SessionClock(name="test-clock")
        fired = threading.Event()
        call = clock.call_later(0.05, fired.set)
        call.cancel()

        assert not fired.wait(0.2)

    def test_call_later_runs(self):
        clock = SessionClock(name="test-clock")
        fired = threading.Event()
        clock.call_later(0.01, fired.set)

        assert fired.wait(1.0)
