#!/usr/bin/env python3
"""
Phase sequencer tests: skipping, looping, completion and elapsed-time handling
"""

import pytest

from yogik.yk_models import Phase, PhaseKind, Prompt
from yogik.yk_sequencer import ExhaustionPolicy, PhaseSequencer, SequencerListener


class Recorder(SequencerListener):
    def __init__(self):
        self.entered = []
        self.finished = []
        self.passes = []
        self.completed = 0

    def phase_entered(self, index, phase):
        self.entered.append((index, phase.kind))

    def phase_finished(self, index, phase):
        self.finished.append(index)

    def pass_finished(self, passes):
        self.passes.append(passes)

    def sequence_complete(self):
        self.completed += 1


def phase(kind, duration):
    return Phase(kind, duration, prompts=(Prompt(kind.value),))


class TestZeroDurationSkip:
    def test_zero_phase_is_skipped_on_entry(self):
        rec = Recorder()
        seq = PhaseSequencer(
            [phase(PhaseKind.TRANSITION, 0), phase(PhaseKind.HOLD, 3)],
            ExhaustionPolicy.loop_forever(), rec,
        )
        seq.start()

        assert rec.entered == [(1, PhaseKind.HOLD)]
        assert seq.current.kind is PhaseKind.HOLD
        assert seq.elapsed == 0.0

    def test_zero_phase_in_the_middle_is_skipped_without_a_tick(self):
        rec = Recorder()
        seq = PhaseSequencer(
            [phase(PhaseKind.BREATH_IN, 1), phase(PhaseKind.HOLD_IN, 0), phase(PhaseKind.BREATH_OUT, 1)],
            ExhaustionPolicy.loop_forever(), rec,
        )
        seq.start()
        seq.tick(1.0)

        assert seq.current.kind is PhaseKind.BREATH_OUT
        assert (1, PhaseKind.HOLD_IN) not in rec.entered


class TestAllZeroTermination:
    @pytest.mark.parametrize("policy", [
        ExhaustionPolicy.loop_forever(),
        ExhaustionPolicy.loop(3),
    ])
    def test_all_zero_list_completes_without_a_pass(self, policy):
        rec = Recorder()
        seq = PhaseSequencer([phase(PhaseKind.TRANSITION, 0), phase(PhaseKind.HOLD, 0)], policy, rec)
        seq.start()

        assert seq.complete
        assert rec.completed == 1
        assert rec.passes == []
        assert rec.entered == []

    def test_advance_skips_all_zero_units(self):
        units = [[phase(PhaseKind.REST, 0)], [phase(PhaseKind.HOLD, 2)]]
        rec = Recorder()
        seq = PhaseSequencer(
            [phase(PhaseKind.HOLD, 0)],
            ExhaustionPolicy.advance(lambda: units.pop(0) if units else None), rec,
        )
        seq.start()

        assert seq.current.kind is PhaseKind.HOLD
        assert seq.duration == 2


class TestTicking:
    def test_elapsed_resets_to_zero_after_overshoot(self):
        seq = PhaseSequencer(
            [phase(PhaseKind.BREATH_IN, 1.0), phase(PhaseKind.BREATH_OUT, 1.0)],
            ExhaustionPolicy.loop_forever(),
        )
        seq.start()
        seq.tick(1.7)

        assert seq.current.kind is PhaseKind.BREATH_OUT
        assert seq.elapsed == 0.0

    def test_float_accumulation_completes_phase(self):
        seq = PhaseSequencer(
            [phase(PhaseKind.BREATH_IN, 0.3), phase(PhaseKind.BREATH_OUT, 1.0)],
            ExhaustionPolicy.loop_forever(),
        )
        seq.start()
        for _ in range(3):
            seq.tick(0.1)

        assert seq.current.kind is PhaseKind.BREATH_OUT

    def test_progress_and_remaining(self):
        seq = PhaseSequencer([phase(PhaseKind.HOLD, 4)], ExhaustionPolicy.loop_forever())
        seq.start()
        seq.tick(1.0)

        assert seq.remaining == pytest.approx(3.0)
        assert seq.progress == pytest.approx(0.25)

    def test_loop_counts_passes_and_completes(self):
        rec = Recorder()
        seq = PhaseSequencer(
            [phase(PhaseKind.TRANSITION, 1), phase(PhaseKind.HOLD, 1)],
            ExhaustionPolicy.loop(2), rec,
        )
        seq.start()
        for _ in range(4):
            seq.tick(1.0)

        assert rec.passes == [1, 2]
        assert seq.complete
        assert rec.completed == 1

        # A complete sequencer ignores further ticks
        seq.tick(1.0)
        assert rec.completed == 1
        assert seq.current is None

    def test_loop_forever_restarts_at_first_nonzero_phase(self):
        rec = Recorder()
        seq = PhaseSequencer(
            [phase(PhaseKind.BREATH_IN, 1), phase(PhaseKind.HOLD_OUT, 1)],
            ExhaustionPolicy.loop_forever(), rec,
        )
        seq.start()
        seq.tick(1.0)
        seq.tick(1.0)

        assert rec.passes == [1]
        assert seq.current.kind is PhaseKind.BREATH_IN
        assert not seq.complete

    def test_advance_completes_when_no_unit_is_left(self):
        units = [[phase(PhaseKind.HOLD, 1)]]
        rec = Recorder()
        seq = PhaseSequencer(
            [phase(PhaseKind.TRANSITION, 1)],
            ExhaustionPolicy.advance(lambda: units.pop(0) if units else None), rec,
        )
        seq.start()
        seq.tick(1.0)
        assert seq.current.kind is PhaseKind.HOLD

        seq.tick(1.0)
        assert seq.complete
        assert rec.passes == [1, 2]


class TestConstruction:
    def test_empty_phase_list_is_rejected(self):
        with pytest.raises(ValueError):
            PhaseSequencer([], ExhaustionPolicy.loop_forever())

    def test_loop_requires_positive_count(self):
        with pytest.raises(ValueError):
            ExhaustionPolicy.loop(0)
