#!/usr/bin/env python3
"""
Custom Sequence Service - user-built pose sequences

Each pose is a [Transition, Hold] unit. The transition speaks the pose name and
its instruction, the hold speaks "Hold the position" and the pose's hold prompt.
"""

from typing import Dict, List, Optional

from services.practice_session import PracticeSession
from yogik.yk_config import CUSTOM_TICK_SECONDS
from yogik.yk_models import CustomConfig, Phase, PhaseKind, Pose, Prompt
from yogik.yk_prompts import CUSTOM_COMPLETE, CUSTOM_HOLD, CUSTOM_PREP, CUSTOM_RATE
from yogik.yk_sequencer import ExhaustionPolicy


def _pose_key(pose: Pose) -> str:
    return pose.name.strip().lower()


def skips_first_pose(poses) -> bool:
    """True when the sequence ends on the pose it starts with, so later rounds can skip it."""
    if len(poses) < 2:
        return False
    first = _pose_key(poses[0])
    return bool(first) and first == _pose_key(poses[-1])


class CustomSequenceService(PracticeSession):
    mode = "custom"
    prep_prompt = CUSTOM_PREP
    prep_rate = CUSTOM_RATE
    tick_seconds = CUSTOM_TICK_SECONDS
    silence_on_complete = True

    def __init__(self, sink, history=None, clock=None):
        super().__init__(sink, history=history, clock=clock)
        self.pose_index = 0
        self.round = 1

    def coerce_config(self, data) -> CustomConfig:
        if isinstance(data, CustomConfig):
            return data
        return CustomConfig.from_dict(data or {})

    def validate(self, config: CustomConfig) -> Optional[str]:
        if not config.poses:
            return 'Add at least one pose before starting'
        for number, pose in enumerate(config.poses, start=1):
            if pose.transition_time < 0 or pose.hold_time < 0:
                return f'Pose {number} has a negative time'
        if all(p.transition_time == 0 and p.hold_time == 0 for p in config.poses):
            return 'At least one pose needs a transition or hold time'
        if config.rounds < 1:
            return 'Rounds must be at least 1'
        return None

    def _pose_unit(self) -> List[Phase]:
        pose = self.config.poses[self.pose_index]
        enter = [Prompt(pose.name, CUSTOM_RATE)]
        if pose.instruction:
            enter.append(Prompt(pose.instruction, CUSTOM_RATE))
        hold = [Prompt(CUSTOM_HOLD, CUSTOM_RATE)]
        if pose.hold_prompt:
            hold.append(Prompt(pose.hold_prompt, CUSTOM_RATE))
        return [
            Phase(PhaseKind.TRANSITION, pose.transition_time, label=pose.name, prompts=tuple(enter)),
            Phase(PhaseKind.HOLD, pose.hold_time, label=pose.name, prompts=tuple(hold)),
        ]

    def _next_unit(self) -> Optional[List[Phase]]:
        poses = self.config.poses
        if self.pose_index < len(poses) - 1:
            self.pose_index += 1
            return self._pose_unit()
        if self.round < self.config.rounds:
            self.round += 1
            self.pose_index = 1 if skips_first_pose(poses) else 0
            return self._pose_unit()
        return None

    # ---------------- PracticeSession hooks ----------------

    def build_phases(self, config: CustomConfig) -> List[Phase]:
        return self._pose_unit()

    def build_policy(self, config: CustomConfig) -> ExhaustionPolicy:
        return ExhaustionPolicy.advance(self._next_unit)

    def reset_counters(self) -> None:
        self.pose_index = 0
        self.round = 1

    def counters(self) -> Dict[str, int]:
        return {'pose_index': self.pose_index, 'round': self.round}

    def outcome_count(self) -> int:
        # Rounds fully walked; the current one counts once the sequence has completed
        if self.sequencer is not None and self.sequencer.complete:
            return self.round
        return self.round - 1

    def end_prompt(self) -> Optional[Prompt]:
        return Prompt(CUSTOM_COMPLETE, CUSTOM_RATE)
