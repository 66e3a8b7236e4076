#!/usr/bin/env python3
"""
Custom sequence tests: pose prompts, round seams and completion
"""

import pytest

from models.session_state import LifecycleState
from services.custom_sequence_service import CustomSequenceService, skips_first_pose
from yogik.yk_config import CUSTOM_HISTORY_KEY
from yogik.yk_history import HistoryLedger
from yogik.yk_models import CustomConfig, PhaseKind, Pose
from yogik.yk_prompts import CUSTOM_COMPLETE, CUSTOM_HOLD, CUSTOM_PREP, CUSTOM_RATE


@pytest.fixture
def history(db):
    return HistoryLedger(db, CUSTOM_HISTORY_KEY)


@pytest.fixture
def custom(sink, clock, history):
    return CustomSequenceService(sink, history=history, clock=clock)


def pose(name, transition=1, hold=1, **kwargs):
    return Pose(name=name, transition_time=transition, hold_time=hold, **kwargs)


class TestSeam:
    def test_matching_ends_skip_first_pose(self):
        assert skips_first_pose([pose("Mountain"), pose("Fold"), pose(" mountain ")])
        assert not skips_first_pose([pose("Mountain"), pose("Fold")])
        assert not skips_first_pose([pose("Mountain")])
        assert not skips_first_pose([pose(""), pose("Fold"), pose("")])

    def test_second_round_starts_at_second_pose(self, custom, sink, clock, settings, activate, history):
        config = CustomConfig(poses=(pose("A"), pose("B"), pose("A")), rounds=2)
        custom.start(config, settings)
        activate(custom)

        clock.tick(60)
        state = custom.snapshot()
        assert state.counters == {'pose_index': 1, 'round': 2}
        assert state.phase_label == "B"

        clock.tick(40)
        assert custom.lifecycle is LifecycleState.COMPLETE
        assert list(sink.calls)[-2:] == [
            ("stop_all",),
            ("speak", CUSTOM_COMPLETE, "", CUSTOM_RATE),
        ]
        assert custom.outcome_count() == 2
        assert history.entries()[0].outcome_count == 2

    def test_without_seam_every_pose_repeats(self, custom, clock, settings, activate):
        custom.start(CustomConfig(poses=(pose("A"), pose("B")), rounds=2), settings)
        activate(custom)
        clock.tick(40)

        assert custom.snapshot().counters == {'pose_index': 0, 'round': 2}


class TestPosePrompts:
    def test_pose_name_instruction_and_hold_prompts(self, custom, sink, clock, settings, activate):
        poses = (
            pose("Plank", instruction="Shoulders over wrists", hold_prompt="Breathe"),
            pose("Child"),
        )
        custom.start(CustomConfig(poses=poses), settings)
        assert sink.spoken == [CUSTOM_PREP]

        activate(custom)
        assert sink.spoken[1:] == ["Plank", "Shoulders over wrists"]

        clock.tick(10)
        assert sink.spoken[3:] == [CUSTOM_HOLD, "Breathe"]

        clock.tick(10)
        assert sink.spoken[5:] == ["Child"]

    def test_zero_transition_skips_pose_name(self, custom, sink, settings, activate):
        custom.start(CustomConfig(poses=(pose("Tree", transition=0, hold=5),)), settings)
        activate(custom)

        assert custom.snapshot().phase_kind == PhaseKind.HOLD.value
        assert "Tree" not in sink.spoken
        assert sink.spoken[-1] == CUSTOM_HOLD

    def test_stop_mid_round_counts_finished_rounds(self, custom, clock, settings, activate, history):
        custom.start(CustomConfig(poses=(pose("A"), pose("B")), rounds=3), settings)
        activate(custom)
        clock.tick(50)

        result = custom.stop()
        assert result['outcome'] == 1
        assert history.entries()[0].outcome_count == 1


class TestCustomValidation:
    def test_empty_pose_list_refused(self, custom, settings):
        result = custom.start(CustomConfig(poses=()), settings)

        assert not result['success']
        assert custom.lifecycle is LifecycleState.IDLE

    def test_all_zero_poses_refused(self, custom, settings):
        result = custom.start(CustomConfig(poses=(pose("A", 0, 0),)), settings)
        assert not result['success']

    def test_poses_from_dict(self, custom, settings):
        result = custom.start({
            'name': 'Evening',
            'poses': [{'name': 'Cat', 'transitionTime': 3, 'holdTime': 5}],
            'rounds': 2,
        }, settings)

        assert result['success']
        assert custom.config.poses[0].name == 'Cat'
        assert custom.snapshot().config_name == 'Evening'
