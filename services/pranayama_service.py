#!/usr/bin/env python3
"""
Pranayama Service - breath ratio cycles

Cycle: [BreathIn, HoldIn, BreathOut, HoldOut], each lasting ratio x pace seconds.
Counts 2..n of a phase are announced as the phase goes (count 1 is the phase prompt).
"""

from typing import Dict, List, Optional

from services.practice_session import PracticeSession
from yogik.yk_config import PRANAYAMA_TICK_CHOICES
from yogik.yk_models import Phase, PhaseKind, PranayamaConfig, Prompt
from yogik.yk_prompts import BREATHING_PREP, PRANAYAMA_HOLD, count_progress
from yogik.yk_sequencer import ExhaustionPolicy


def tick_for_pace(pace: float) -> Optional[float]:
    """Largest tick that divides the pace into whole ticks, or None if none does."""
    for choice in PRANAYAMA_TICK_CHOICES:
        steps = pace / choice
        if abs(steps - round(steps)) < 1e-9:
            return choice
    return None


class PranayamaService(PracticeSession):
    mode = "pranayama"
    prep_prompt = BREATHING_PREP

    def __init__(self, sink, history=None, clock=None):
        super().__init__(sink, history=history, clock=clock)
        self.rounds = 0

    def coerce_config(self, data) -> PranayamaConfig:
        if isinstance(data, PranayamaConfig):
            return data
        return PranayamaConfig.from_dict(data or {})

    def validate(self, config: PranayamaConfig) -> Optional[str]:
        if any(r < 0 for r in config.ratios):
            return 'Ratios cannot be negative'
        if not any(config.ratios):
            return 'At least one breath ratio must be greater than zero'
        if config.pace <= 0:
            return 'Pace must be positive'
        if tick_for_pace(config.pace) is None:
            return f'Pace must be a multiple of {PRANAYAMA_TICK_CHOICES[-1]} seconds'
        if config.rounds < 0:
            return 'Rounds cannot be negative'
        return None

    def build_phases(self, config: PranayamaConfig) -> List[Phase]:
        pace = config.pace
        labels = (
            (PhaseKind.BREATH_IN, config.breath_in, self.settings.breath_in_label),
            (PhaseKind.HOLD_IN, config.hold_in, PRANAYAMA_HOLD),
            (PhaseKind.BREATH_OUT, config.breath_out, self.settings.breath_out_label),
            (PhaseKind.HOLD_OUT, config.hold_out, PRANAYAMA_HOLD),
        )
        return [
            Phase(kind, ratio * pace, label=label, prompts=(Prompt(label),), count_unit=pace)
            for kind, ratio, label in labels
        ]

    def build_policy(self, config: PranayamaConfig) -> ExhaustionPolicy:
        if config.rounds > 0:
            return ExhaustionPolicy.loop(config.rounds)
        return ExhaustionPolicy.loop_forever()

    def tick_interval(self, config: PranayamaConfig) -> float:
        return tick_for_pace(config.pace)

    def counts_enabled(self) -> bool:
        return self.settings.progress_sound

    def reset_counters(self) -> None:
        self.rounds = 0

    def on_pass(self, passes: int) -> None:
        self.rounds = passes

    def counters(self) -> Dict[str, int]:
        return {'rounds': self.rounds}

    def outcome_count(self) -> int:
        return self.rounds

    def phase_progress(self) -> float:
        if self.sequencer is None:
            return 0.0
        return count_progress(self.sequencer.current, self.sequencer.elapsed)
