#!/usr/bin/env python3
"""
Yoga session tests, including the shared lifecycle (prep, pause, stop, history)
"""

import pytest

from models.session_state import EventKind, LifecycleState
from services.yoga_service import YogaService
from yogik.yk_config import YOGA_HISTORY_KEY
from yogik.yk_history import HistoryLedger
from yogik.yk_models import PhaseKind, YogaConfig
from yogik.yk_prompts import YOGA_COMPLETE, YOGA_HOLD, YOGA_NEXT_POSE, YOGA_PREP


@pytest.fixture
def history(db):
    return HistoryLedger(db, YOGA_HISTORY_KEY)


@pytest.fixture
def yoga(sink, clock, history):
    return YogaService(sink, history=history, clock=clock)


class TestYogaScenario:
    def test_zero_transition_goes_straight_to_hold(self, yoga, clock, settings, activate):
        result = yoga.start(YogaConfig(transition_seconds=0, hold_seconds=5), settings)
        assert result['success']
        assert yoga.lifecycle is LifecycleState.PREPARING

        activate(yoga)
        state = yoga.snapshot()
        assert state.lifecycle is LifecycleState.ACTIVE
        assert state.phase_kind == PhaseKind.HOLD.value
        assert state.remaining == pytest.approx(5.0)

        clock.tick(5)
        state = yoga.snapshot()
        assert state.counters['laps'] == 1
        assert state.phase_kind == PhaseKind.HOLD.value
        assert state.remaining == pytest.approx(5.0)
        assert state.elapsed == 0.0

    def test_prompts_across_a_lap(self, yoga, sink, clock, settings, activate):
        yoga.start(YogaConfig(transition_seconds=2, hold_seconds=3), settings)
        assert sink.spoken == [YOGA_PREP]

        activate(yoga)
        # First transition is silent
        assert sink.spoken == [YOGA_PREP]

        clock.tick(2)
        assert sink.spoken[-1] == YOGA_HOLD

        clock.tick(3)
        assert sink.spoken[-1] == YOGA_NEXT_POSE
        assert yoga.laps == 1

    def test_hold_plays_progress_tone_each_second(self, yoga, sink, clock, settings, activate):
        yoga.start(YogaConfig(transition_seconds=0, hold_seconds=5, progress_tone="bell"), settings)
        activate(yoga)
        clock.tick(5)

        assert sink.tones == ["bell"] * 4

    def test_empty_tone_is_silent(self, yoga, sink, clock, settings, activate):
        yoga.start(YogaConfig(transition_seconds=0, hold_seconds=5, progress_tone=""), settings)
        activate(yoga)
        clock.tick(5)

        assert sink.tones == []

    def test_finite_laps_complete(self, yoga, sink, clock, settings, activate, history):
        yoga.start(YogaConfig(transition_seconds=1, hold_seconds=1, laps=2), settings)
        activate(yoga)
        clock.tick(4)

        assert yoga.lifecycle is LifecycleState.COMPLETE
        assert sink.spoken[-1] == YOGA_COMPLETE
        assert history.entries()[0].outcome_count == 2

        # No more ticks once complete
        clock.tick(5)
        assert yoga.laps == 2

        assert yoga.stop()['success']
        assert yoga.lifecycle is LifecycleState.IDLE


class TestYogaValidation:
    def test_both_zero_refused(self, yoga, settings):
        result = yoga.start(YogaConfig(transition_seconds=0, hold_seconds=0), settings)

        assert not result['success']
        assert yoga.lifecycle is LifecycleState.IDLE

    def test_bad_dict_refused(self, yoga, settings):
        result = yoga.start({'holdSeconds': 'ten'}, settings)

        assert not result['success']
        assert 'Invalid configuration' in result['error']

    def test_start_while_running_is_noop(self, yoga, settings):
        assert yoga.start(YogaConfig(), settings)['success']
        result = yoga.start(YogaConfig(hold_seconds=30), settings)

        assert not result['success']
        assert yoga.config == YogaConfig()


class TestLifecycle:
    def test_pause_preserves_state(self, yoga, clock, settings, activate):
        yoga.start(YogaConfig(transition_seconds=5, hold_seconds=10), settings)
        activate(yoga)
        clock.tick(2)
        assert yoga.pause()['success']
        before = yoga.snapshot()

        clock.tick(10)
        after = yoga.snapshot()
        assert after.elapsed == before.elapsed == pytest.approx(2.0)
        assert after.phase_index == before.phase_index
        assert after.lifecycle is LifecycleState.PAUSED

        assert yoga.resume()['success']
        clock.tick(1)
        assert yoga.snapshot().elapsed == pytest.approx(3.0)

    def test_pause_only_from_active(self, yoga, settings):
        assert not yoga.pause()['success']
        yoga.start(YogaConfig(), settings)
        assert not yoga.pause()['success']
        assert not yoga.resume()['success']

    def test_stop_during_prep_never_starts(self, yoga, sink, clock, settings):
        yoga.start(YogaConfig(), settings)
        yoga.stop()
        clock.advance(30)

        assert yoga.lifecycle is LifecycleState.IDLE
        assert yoga.sequencer is None
        assert sink.spoken == [YOGA_PREP]
        assert clock.pending_calls == 0
        assert not any(e.kind is EventKind.PHASE for e in yoga.events)

    def test_no_tick_after_stop(self, yoga, clock, settings, activate):
        yoga.start(YogaConfig(), settings)
        activate(yoga)
        clock.tick(3)
        yoga.stop()
        delivered = clock.ticks_delivered

        clock.tick(10)
        assert clock.ticks_delivered == delivered
        assert yoga.snapshot().lifecycle is LifecycleState.IDLE

    def test_stop_order_and_history(self, yoga, sink, clock, settings, activate, history):
        config = YogaConfig(transition_seconds=1, hold_seconds=1)
        yoga.start(config, settings)
        activate(yoga)
        clock.tick(6)
        sink.clear()

        result = yoga.stop()
        assert result['outcome'] == 3
        assert sink.calls[0] == ("stop_all",)
        entry = history.entries()[0]
        assert entry.configuration == config.to_dict()
        assert entry.outcome_count == 3

    def test_restart_resets_counters(self, yoga, clock, settings, activate):
        yoga.start(YogaConfig(transition_seconds=0, hold_seconds=1), settings)
        activate(yoga)
        clock.tick(3)
        yoga.stop()

        yoga.start(YogaConfig(transition_seconds=0, hold_seconds=1), settings)
        assert yoga.laps == 0

    def test_events_are_published(self, yoga, clock, settings, activate):
        seen = []
        yoga.subscribe(seen.append)
        yoga.start(YogaConfig(transition_seconds=0, hold_seconds=2), settings)
        activate(yoga)
        clock.tick(2)

        kinds = [e.kind for e in seen]
        assert EventKind.LIFECYCLE in kinds
        assert EventKind.PHASE in kinds
        assert EventKind.PASS in kinds
        assert [e.seq for e in seen] == sorted(e.seq for e in seen)
        assert yoga.events_since(seen[-2].seq) == [seen[-1]]

    def test_failing_subscriber_does_not_break_session(self, yoga, clock, settings, activate):
        def broken(event):
            raise RuntimeError("boom")

        yoga.subscribe(broken)
        yoga.start(YogaConfig(transition_seconds=0, hold_seconds=2), settings)
        activate(yoga)
        clock.tick(2)

        assert yoga.laps == 1

    def test_sink_failure_is_swallowed(self, clock, settings, activate):
        class BrokenSink:
            def speak(self, *args):
                raise OSError("no audio device")

            def play(self, tone):
                raise OSError("no audio device")

            def stop_all(self):
                raise OSError("no audio device")

        yoga = YogaService(BrokenSink(), clock=clock)
        assert yoga.start(YogaConfig(transition_seconds=1, hold_seconds=2), settings)['success']
        activate(yoga)
        clock.tick(3)

        assert yoga.laps == 1
        assert yoga.stop()['success']
