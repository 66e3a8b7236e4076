#!/usr/bin/env python3
"""
Yoga Service - timed holds with a transition between poses

Cycle: [Transition, Hold], repeated until stopped or for a fixed number of laps.
"""

from typing import Dict, List, Optional

from services.practice_session import PracticeSession
from yogik.yk_config import YOGA_TICK_SECONDS
from yogik.yk_models import Phase, PhaseKind, Prompt, YogaConfig
from yogik.yk_prompts import YOGA_COMPLETE, YOGA_HOLD, YOGA_NEXT_POSE, YOGA_PREP
from yogik.yk_sequencer import ExhaustionPolicy


class YogaService(PracticeSession):
    mode = "yoga"
    prep_prompt = YOGA_PREP
    tick_seconds = YOGA_TICK_SECONDS

    def __init__(self, sink, history=None, clock=None):
        super().__init__(sink, history=history, clock=clock)
        self.laps = 0
        self._entered_once = False

    def coerce_config(self, data) -> YogaConfig:
        if isinstance(data, YogaConfig):
            return data
        return YogaConfig.from_dict(data or {})

    def validate(self, config: YogaConfig) -> Optional[str]:
        if config.transition_seconds < 0 or config.hold_seconds < 0:
            return 'Times cannot be negative'
        if config.transition_seconds == 0 and config.hold_seconds == 0:
            return 'Transition and hold time cannot both be zero'
        if config.laps < 0:
            return 'Laps cannot be negative'
        return None

    def build_phases(self, config: YogaConfig) -> List[Phase]:
        # "Hold" is only announced when there was a transition to come out of
        hold_prompts = (Prompt(YOGA_HOLD),) if config.transition_seconds > 0 else ()
        return [
            Phase(PhaseKind.TRANSITION, config.transition_seconds, label="Transition",
                  prompts=(Prompt(YOGA_NEXT_POSE),)),
            Phase(PhaseKind.HOLD, config.hold_seconds, label="Hold",
                  prompts=hold_prompts, tick_tone=config.progress_tone or None),
        ]

    def build_policy(self, config: YogaConfig) -> ExhaustionPolicy:
        if config.laps > 0:
            return ExhaustionPolicy.loop(config.laps)
        return ExhaustionPolicy.loop_forever()

    def reset_counters(self) -> None:
        self.laps = 0
        self._entered_once = False

    def enter_phase(self, index: int, phase: Phase) -> None:
        # The prep prompt already asked for the first pose
        first = not self._entered_once
        self._entered_once = True
        self.scheduler.on_enter(phase, silent=first)

    def on_pass(self, passes: int) -> None:
        self.laps = passes

    def counters(self) -> Dict[str, int]:
        return {'laps': self.laps}

    def outcome_count(self) -> int:
        return self.laps

    def end_prompt(self) -> Optional[Prompt]:
        return Prompt(YOGA_COMPLETE)
