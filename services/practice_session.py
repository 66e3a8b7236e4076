#!/usr/bin/env python3
"""
Practice Session - lifecycle shared by every practice mode

Idle -> Preparing -> Active <-> Paused -> Complete -> (stop) -> Idle

Mode services subclass PracticeSession and supply the phase list, the
exhaustion policy, prompts and counters. Everything runs under the clock's
re-entrant lock, so ticks, the deferred prep transition and API calls never
interleave.
"""

import logging
from collections import deque
from typing import Any, Callable, Dict, List, Optional

from models.session_state import EventKind, LifecycleState, SessionEvent, SessionSnapshot
from yogik.yk_clock import SessionClock
from yogik.yk_config import EVENT_LOG_MAX
from yogik.yk_models import Phase, PracticeSettings, Prompt, utcnow_iso
from yogik.yk_prompts import DEFAULT_RATE, PromptScheduler
from yogik.yk_sequencer import ExhaustionPolicy, PhaseSequencer, SequencerListener

logger = logging.getLogger(__name__)

Subscriber = Callable[[SessionEvent], None]


class PracticeSession(SequencerListener):
    """
    Base practice session.

    Subclasses implement:
    - coerce_config(data) -> config object
    - validate(config) -> error message or None
    - build_phases(config) -> first phase list
    - build_policy(config) -> ExhaustionPolicy
    - outcome_count() -> laps / rounds for the history ledger
    """

    mode = "practice"
    prep_prompt = ""
    prep_rate = DEFAULT_RATE
    tick_seconds = 1.0
    # Cut off queued speech before the end prompt
    silence_on_complete = False

    def __init__(self, sink, history=None, clock=None):
        self.sink = sink
        self.history = history
        self.clock = clock or SessionClock(name=f"{self.mode}-clock")
        self._lock = self.clock.lock

        self.lifecycle = LifecycleState.IDLE
        self.config: Any = None
        self.settings = PracticeSettings()
        self.sequencer: Optional[PhaseSequencer] = None
        self.scheduler: Optional[PromptScheduler] = None
        self._prep_call = None

        self._subscribers: List[Subscriber] = []
        self.events: deque = deque(maxlen=EVENT_LOG_MAX)
        self._event_seq = 0

    # ==================== MODE HOOKS ====================

    def coerce_config(self, data):
        raise NotImplementedError

    def validate(self, config) -> Optional[str]:
        return None

    def build_phases(self, config) -> List[Phase]:
        raise NotImplementedError

    def build_policy(self, config) -> ExhaustionPolicy:
        return ExhaustionPolicy.loop_forever()

    def tick_interval(self, config) -> float:
        return self.tick_seconds

    def reset_counters(self) -> None:
        pass

    def counters(self) -> Dict[str, int]:
        return {}

    def outcome_count(self) -> int:
        return 0

    def end_prompt(self) -> Optional[Prompt]:
        return None

    def before_start(self, config) -> None:
        pass

    def counts_enabled(self) -> bool:
        return False

    def history_key(self, config) -> Dict[str, Any]:
        return config.to_dict()

    def config_name(self) -> str:
        return getattr(self.config, "name", "") if self.config is not None else ""

    def phase_progress(self) -> float:
        return self.sequencer.progress if self.sequencer else 0.0

    def enter_phase(self, index: int, phase: Phase) -> None:
        """Speak the entry prompts of a phase. Modes override to silence some entries."""
        self.scheduler.on_enter(phase)

    def on_pass(self, passes: int) -> None:
        pass

    # ==================== LIFECYCLE ====================

    def start(self, config, settings: Optional[PracticeSettings] = None) -> Dict[str, Any]:
        """
        Start a session with the given configuration (object or dict)

        Returns:
            {'success': bool, 'message': str, 'state': dict} or {'success': False, 'error': str}
        """
        with self._lock:
            if self.lifecycle is not LifecycleState.IDLE:
                return {'success': False, 'error': f'{self.mode.title()} session already in progress'}

            try:
                config = self.coerce_config(config)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"{self.mode}: rejected configuration: {e}")
                return {'success': False, 'error': f'Invalid configuration: {e}'}

            error = self.validate(config)
            if error:
                logger.warning(f"{self.mode}: {error}")
                return {'success': False, 'error': error}

            self.config = config
            self.settings = settings or PracticeSettings()
            self.reset_counters()
            self.sequencer = PhaseSequencer(self.build_phases(config), self.build_policy(config), listener=self)
            self.scheduler = PromptScheduler(self._speak, self._play, counts_enabled=self.counts_enabled())

            self._record_history_start(config)
            self.before_start(config)

            self._set_lifecycle(LifecycleState.PREPARING)
            self._speak(Prompt(self.prep_prompt, self.prep_rate))
            self._prep_call = self.clock.call_later(self.settings.prep_seconds, self._begin_active)

            logger.info(f"{self.mode}: session started ({self.config_name() or 'unnamed'}), "
                        f"prep {self.settings.prep_seconds}s")
            return {
                'success': True,
                'message': f'{self.mode.title()} session starting in {self.settings.prep_seconds}s',
                'state': self.snapshot().to_dict(),
            }

    def pause(self) -> Dict[str, Any]:
        with self._lock:
            if self.lifecycle is not LifecycleState.ACTIVE:
                return {'success': False, 'error': 'Session is not active'}
            self.clock.pause()
            self._set_lifecycle(LifecycleState.PAUSED)
            return {'success': True, 'message': 'Session paused'}

    def resume(self) -> Dict[str, Any]:
        with self._lock:
            if self.lifecycle is not LifecycleState.PAUSED:
                return {'success': False, 'error': 'Session is not paused'}
            self.clock.resume()
            self._set_lifecycle(LifecycleState.ACTIVE)
            return {'success': True, 'message': 'Session resumed'}

    def stop(self) -> Dict[str, Any]:
        """Cancel prep, stop the clock, silence prompts, reset to Idle, then commit the outcome."""
        with self._lock:
            if self.lifecycle is LifecycleState.IDLE:
                return {'success': False, 'error': 'No session in progress'}

            if self._prep_call is not None:
                self._prep_call.cancel()
                self._prep_call = None
            self.clock.stop()
            self._stop_prompts()

            config, count = self.config, self.outcome_count()
            self.sequencer = None
            self.scheduler = None
            self.reset_counters()
            self._set_lifecycle(LifecycleState.IDLE)

            self._record_history_outcome(config, count)
            logger.info(f"{self.mode}: session stopped (outcome {count})")
            return {'success': True, 'message': 'Session stopped', 'outcome': count}

    def _begin_active(self) -> None:
        with self._lock:
            if self.lifecycle is not LifecycleState.PREPARING:
                return
            self._prep_call = None
            self._set_lifecycle(LifecycleState.ACTIVE)
            self.sequencer.start()
            if self.sequencer.complete:
                return
            self.clock.start(self.tick_interval(self.config), self._on_tick)

    def _on_tick(self, delta: float) -> None:
        with self._lock:
            if self.lifecycle is not LifecycleState.ACTIVE or self.sequencer is None:
                return
            self.sequencer.tick(delta)
            if self.lifecycle is LifecycleState.ACTIVE:
                self._publish(EventKind.TICK)

    def _complete(self) -> None:
        self.clock.stop()
        if self.silence_on_complete:
            self._stop_prompts()
        prompt = self.end_prompt()
        if prompt is not None:
            self._speak(prompt)
        self._set_lifecycle(LifecycleState.COMPLETE)
        self._publish(EventKind.COMPLETE, {'outcome': self.outcome_count()})
        self._record_history_outcome(self.config, self.outcome_count())
        logger.info(f"{self.mode}: session complete (outcome {self.outcome_count()})")

    # ==================== SEQUENCER LISTENER ====================

    def phase_entered(self, index: int, phase: Phase) -> None:
        self.enter_phase(index, phase)
        self._publish(EventKind.PHASE, {'index': index, 'kind': phase.kind.value, 'label': phase.label})

    def phase_ticked(self, index: int, phase: Phase, before: float, after: float, finished: bool) -> None:
        self.scheduler.on_tick(phase, before, after, finished)

    def pass_finished(self, passes: int) -> None:
        self.on_pass(passes)
        self._publish(EventKind.PASS, {'passes': passes, 'counters': self.counters()})

    def sequence_complete(self) -> None:
        self._complete()

    # ==================== STATE & EVENTS ====================

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            seq = self.sequencer
            phase = seq.current if seq else None
            return SessionSnapshot(
                mode=self.mode,
                lifecycle=self.lifecycle,
                phase_index=seq.index if phase else 0,
                phase_kind=phase.kind.value if phase else "idle",
                phase_label=phase.label if phase else "",
                elapsed=seq.elapsed if phase else 0.0,
                duration=phase.duration if phase else 0.0,
                remaining=seq.remaining if phase else 0.0,
                progress=self.phase_progress() if phase else 0.0,
                counters=dict(self.counters()),
                config_name=self.config_name(),
            )

    def get_state(self) -> Dict[str, Any]:
        return self.snapshot().to_dict()

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def events_since(self, seq: int = 0) -> List[SessionEvent]:
        with self._lock:
            return [e for e in self.events if e.seq > seq]

    def _publish(self, kind: EventKind, detail: Optional[Dict[str, Any]] = None) -> None:
        self._event_seq += 1
        event = SessionEvent(self._event_seq, kind, utcnow_iso(), self.snapshot(), detail)
        self.events.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"{self.mode}: event subscriber failed: {e}", exc_info=True)

    def _set_lifecycle(self, state: LifecycleState) -> None:
        previous = self.lifecycle
        self.lifecycle = state
        self._publish(EventKind.LIFECYCLE, {'from': previous.value, 'to': state.value})

    # ==================== PROMPTS ====================

    def _speak(self, prompt: Prompt) -> None:
        if not prompt.text:
            return
        try:
            self.sink.speak(prompt.text, self.settings.voice_id, prompt.rate)
        except Exception as e:
            logger.error(f"{self.mode}: speech failed: {e}")
        self._publish(EventKind.PROMPT, {'text': prompt.text, 'rate': prompt.rate})

    def _play(self, tone: str) -> None:
        try:
            self.sink.play(tone)
        except Exception as e:
            logger.error(f"{self.mode}: tone playback failed: {e}")
        self._publish(EventKind.PROMPT, {'tone': tone})

    def _stop_prompts(self) -> None:
        try:
            self.sink.stop_all()
        except Exception as e:
            logger.error(f"{self.mode}: stopping prompts failed: {e}")

    # ==================== HISTORY ====================

    def _record_history_start(self, config) -> None:
        if self.history is None:
            return
        try:
            self.history.record_start(self.history_key(config))
        except Exception as e:
            logger.error(f"{self.mode}: could not record history: {e}")

    def _record_history_outcome(self, config, count: int) -> None:
        if self.history is None or config is None:
            return
        try:
            self.history.record_outcome(self.history_key(config), count)
        except Exception as e:
            logger.error(f"{self.mode}: could not update history: {e}")
