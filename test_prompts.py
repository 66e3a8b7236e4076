#!/usr/bin/env python3
"""
Prompt scheduling tests: counts, lead prompts, tones and the rate tables
"""

import pytest

from yogik.yk_models import Phase, PhaseKind, Prompt
from yogik.yk_prompts import PromptScheduler, count_progress, kriya_voice_rate


@pytest.fixture
def emitted():
    return {"speak": [], "play": []}


@pytest.fixture
def scheduler(emitted):
    return PromptScheduler(lambda p: emitted["speak"].append(p), lambda t: emitted["play"].append(t))


def run_phase(scheduler, phase, step, ticks):
    scheduler.on_enter(phase)
    elapsed = 0.0
    for _ in range(ticks):
        before, elapsed = elapsed, elapsed + step
        scheduler.on_tick(phase, before, elapsed, elapsed + 1e-5 >= phase.duration)


class TestKriyaVoiceRate:
    @pytest.mark.parametrize("duration,rate", [
        (0.25, 0.5),
        (0.99, 0.5),
        (1.0, 0.3),
        (1.49, 0.3),
        (1.5, 0.05),
        (2.9, 0.05),
        (10.0, 0.05),
    ])
    def test_rate_table(self, duration, rate):
        assert kriya_voice_rate(duration) == rate


class TestPromptScheduler:
    def test_entry_prompts_in_order(self, scheduler, emitted):
        phase = Phase(PhaseKind.TRANSITION, 5, prompts=(Prompt("Plank"), Prompt("Shoulders over wrists")))
        scheduler.on_enter(phase)

        assert [p.text for p in emitted["speak"]] == ["Plank", "Shoulders over wrists"]

    def test_silent_entry(self, scheduler, emitted):
        scheduler.on_enter(Phase(PhaseKind.HOLD, 5, prompts=(Prompt("Hold"),)), silent=True)
        assert emitted["speak"] == []

    def test_counts_two_through_units(self, scheduler, emitted):
        phase = Phase(PhaseKind.BREATH_IN, 4.0, count_unit=1.0)
        run_phase(scheduler, phase, 1.0, 4)

        assert [p.text for p in emitted["speak"]] == ["2", "3", "4"]

    def test_counts_with_sub_unit_ticks(self, scheduler, emitted):
        phase = Phase(PhaseKind.BREATH_OUT, 4.5, count_unit=1.5)
        run_phase(scheduler, phase, 0.5, 9)

        assert [p.text for p in emitted["speak"]] == ["2", "3"]

    def test_counts_disabled(self, emitted):
        scheduler = PromptScheduler(emitted["speak"].append, emitted["play"].append, counts_enabled=False)
        run_phase(scheduler, Phase(PhaseKind.BREATH_IN, 4.0, count_unit=1.0), 1.0, 4)

        assert emitted["speak"] == []

    def test_lead_prompt_fires_once(self, scheduler, emitted):
        phase = Phase(PhaseKind.REST, 10, lead_prompt=Prompt("Get ready"), lead_seconds=3.0)
        run_phase(scheduler, phase, 0.5, 20)

        assert [p.text for p in emitted["speak"]] == ["Get ready"]

    def test_lead_prompt_skipped_for_short_phase(self, scheduler, emitted):
        phase = Phase(PhaseKind.REST, 2, lead_prompt=Prompt("Get ready"), lead_seconds=3.0)
        run_phase(scheduler, phase, 0.5, 4)

        assert emitted["speak"] == []

    def test_tick_tone_on_whole_seconds_not_on_completion(self, scheduler, emitted):
        phase = Phase(PhaseKind.HOLD, 3, tick_tone="tick")
        run_phase(scheduler, phase, 0.5, 6)

        assert emitted["play"] == ["tick", "tick"]


class TestCountProgress:
    def test_progress_through_counts(self):
        phase = Phase(PhaseKind.BREATH_IN, 4.0, count_unit=1.0)

        assert count_progress(phase, 0.0) == pytest.approx(0.0)
        assert count_progress(phase, 1.0) == pytest.approx(0.25)
        assert count_progress(phase, 2.5) == pytest.approx(0.625)

    def test_progress_without_counts(self):
        assert count_progress(Phase(PhaseKind.HOLD, 4.0), 1.0) == 0.0
