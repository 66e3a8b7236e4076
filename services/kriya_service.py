#!/usr/bin/env python3
"""
Kriya Service - multi-stage rapid breathing

Each stage repeats [BreathIn, BreathOut] `counts` times; the stage list runs
`round_count` times with an optional Rest between rounds (never after the last).
Short breaths are announced at a fast voice rate, long ones at a slow rate.
"""

import logging
from typing import Dict, List, Optional

from services.practice_session import PracticeSession
from yogik.yk_config import GET_READY_LEAD_SECONDS, KRIYA_TICK_SECONDS
from yogik.yk_models import KriyaConfig, Phase, PhaseKind, Prompt, Stage
from yogik.yk_prompts import (
    BREATHING_PREP, KRIYA_COMPLETE, KRIYA_GET_READY, KRIYA_REST, kriya_voice_rate,
)
from yogik.yk_sequencer import ExhaustionPolicy

logger = logging.getLogger(__name__)


def stage_repetitions(stage: Stage) -> int:
    return max(1, stage.counts)


class KriyaService(PracticeSession):
    mode = "kriya"
    prep_prompt = BREATHING_PREP
    tick_seconds = KRIYA_TICK_SECONDS

    def __init__(self, sink, history=None, clock=None, library=None):
        super().__init__(sink, history=history, clock=clock)
        self.library = library
        self.stage_index = 0
        self.repetition = 1
        self.round = 1
        self.rounds_completed = 0
        self.resting = False

    def coerce_config(self, data) -> KriyaConfig:
        if isinstance(data, KriyaConfig):
            return data
        return KriyaConfig.from_dict(data or {})

    def validate(self, config: KriyaConfig) -> Optional[str]:
        if not config.stages:
            return 'Add at least one stage before starting'
        for number, stage in enumerate(config.stages, start=1):
            if stage.breath_in_seconds <= 0 and stage.breath_out_seconds <= 0:
                return f'Stage {number} needs a breath in or breath out time greater than zero'
        if config.round_count < 1:
            return 'Repeat count must be at least 1'
        if config.rest_seconds < 0:
            return 'Rest time cannot be negative'
        return None

    def before_start(self, config: KriyaConfig) -> None:
        # A named kriya is saved to the library when it is started
        name = config.name.strip()
        if not name or self.library is None:
            return
        try:
            self.library.save(
                name, config.stages,
                breath_in_label=config.breath_in_label,
                breath_out_label=config.breath_out_label,
                repeat_count=config.round_count,
                rest_seconds=config.rest_seconds,
            )
        except Exception as e:
            logger.error(f"kriya: auto-save of '{name}' failed: {e}")

    # ---------------- Units ----------------

    def _stage_unit(self) -> List[Phase]:
        stage = self.config.stages[self.stage_index]
        in_label = self.config.breath_in_label
        out_label = self.config.breath_out_label
        return [
            Phase(PhaseKind.BREATH_IN, stage.breath_in_seconds, label=in_label,
                  prompts=(Prompt(in_label, kriya_voice_rate(stage.breath_in_seconds)),)),
            Phase(PhaseKind.BREATH_OUT, stage.breath_out_seconds, label=out_label,
                  prompts=(Prompt(out_label, kriya_voice_rate(stage.breath_out_seconds)),)),
        ]

    def _rest_unit(self) -> List[Phase]:
        return [
            Phase(PhaseKind.REST, self.config.rest_seconds, label="Rest",
                  prompts=(Prompt(KRIYA_REST),),
                  lead_prompt=Prompt(KRIYA_GET_READY),
                  lead_seconds=GET_READY_LEAD_SECONDS),
        ]

    def _next_unit(self) -> Optional[List[Phase]]:
        if self.resting:
            self.resting = False
            return self._begin_round()

        stages = self.config.stages
        if self.repetition < stage_repetitions(stages[self.stage_index]):
            self.repetition += 1
            return self._stage_unit()

        if self.stage_index < len(stages) - 1:
            self.stage_index += 1
            self.repetition = 1
            return self._stage_unit()

        self.rounds_completed += 1
        if self.round >= self.config.round_count:
            return None
        if self.config.rest_seconds > 0:
            self.resting = True
            return self._rest_unit()
        return self._begin_round()

    def _begin_round(self) -> List[Phase]:
        self.round += 1
        self.stage_index = 0
        self.repetition = 1
        return self._stage_unit()

    # ---------------- PracticeSession hooks ----------------

    def build_phases(self, config: KriyaConfig) -> List[Phase]:
        return self._stage_unit()

    def build_policy(self, config: KriyaConfig) -> ExhaustionPolicy:
        return ExhaustionPolicy.advance(self._next_unit)

    def reset_counters(self) -> None:
        self.stage_index = 0
        self.repetition = 1
        self.round = 1
        self.rounds_completed = 0
        self.resting = False

    def counters(self) -> Dict[str, int]:
        return {
            'stage_index': self.stage_index,
            'repetition': self.repetition,
            'round': self.round,
            'rounds_completed': self.rounds_completed,
        }

    def outcome_count(self) -> int:
        return self.rounds_completed

    def end_prompt(self) -> Optional[Prompt]:
        return Prompt(KRIYA_COMPLETE)
