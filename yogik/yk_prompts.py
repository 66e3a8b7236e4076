"""
Prompt texts, voice-rate tables and the scheduler deciding when a phase speaks.
"""

import math
from typing import Callable, Optional

from yogik.yk_config import PHASE_EPSILON
from yogik.yk_models import Phase, Prompt

# Speech rates (0..1 synthesizer scale, 0.5 = normal)
DEFAULT_RATE = 0.5
COUNT_RATE = 0.5
CUSTOM_RATE = 0.35

# ---------------- Prompt texts ----------------

YOGA_PREP = "Prepare for the session. Move into first pose"
YOGA_HOLD = "Hold"
YOGA_NEXT_POSE = "Move to next pose"
YOGA_COMPLETE = "Session complete. Well done."

BREATHING_PREP = "Prepare for breathing exercise. Take position."
PRANAYAMA_HOLD = "Hold"

KRIYA_COMPLETE = "Relax, take few long and deep breaths"
KRIYA_REST = "Rest"
KRIYA_GET_READY = "Get ready"

CUSTOM_PREP = "Prepare for your practice. Take position."
CUSTOM_HOLD = "Hold the position"
CUSTOM_COMPLETE = "Practice complete. Well done."

# Kriya voice rate by phase duration: (upper bound exclusive, rate)
KRIYA_RATE_TABLE = (
    (1.0, 0.5),
    (1.5, 0.3),
    (3.0, 0.05),
)
KRIYA_RATE_DEFAULT = 0.05


def kriya_voice_rate(duration: float) -> float:
    """Short breaths are spoken fast, long ones drawn out."""
    for upper, rate in KRIYA_RATE_TABLE:
        if duration < upper:
            return rate
    return KRIYA_RATE_DEFAULT


class PromptScheduler:
    """
    Turns sequencer events into prompt and tone emissions.

    ``speak(prompt)`` and ``play(tone)`` are provided by the session; the
    scheduler only decides what fires and when.
    """

    def __init__(self, speak: Callable[[Prompt], None], play: Callable[[str], None],
                 count_rate: float = COUNT_RATE, counts_enabled: bool = True):
        self.speak = speak
        self.play = play
        self.count_rate = count_rate
        self.counts_enabled = counts_enabled
        self._lead_fired = False

    def on_enter(self, phase: Phase, silent: bool = False) -> None:
        self._lead_fired = False
        if silent:
            return
        for prompt in phase.prompts:
            self.speak(prompt)

    def on_tick(self, phase: Phase, before: float, after: float, finished: bool) -> None:
        if self.counts_enabled and phase.count_unit:
            self._announce_count(phase, before, after)

        if finished:
            return

        if phase.lead_prompt is not None and not self._lead_fired:
            if phase.duration >= phase.lead_seconds and \
                    phase.duration - after <= phase.lead_seconds + PHASE_EPSILON:
                self._lead_fired = True
                self.speak(phase.lead_prompt)

        if phase.tick_tone:
            if math.floor(after + PHASE_EPSILON) > math.floor(before + PHASE_EPSILON):
                self.play(phase.tick_tone)

    def _announce_count(self, phase: Phase, before: float, after: float) -> None:
        unit = phase.count_unit
        crossed_from = math.floor((before + PHASE_EPSILON) / unit)
        crossed_to = math.floor((after + PHASE_EPSILON) / unit)
        if crossed_to <= crossed_from:
            return
        count = crossed_to + 1
        if 2 <= count <= phase.units:
            self.speak(Prompt(str(count), self.count_rate))


def count_progress(phase: Optional[Phase], elapsed: float) -> float:
    """Pranayama dial progress: 1 - (remaining_counts - 1 + count_fraction) / ratio."""
    if phase is None or not phase.count_unit or phase.units <= 0:
        return 0.0
    unit = phase.count_unit
    done = math.floor((elapsed + PHASE_EPSILON) / unit)
    remaining_counts = phase.units - done
    fraction = 1.0 - (elapsed - done * unit) / unit
    value = 1.0 - (remaining_counts - 1 + fraction) / phase.units
    return min(1.0, max(0.0, value))
