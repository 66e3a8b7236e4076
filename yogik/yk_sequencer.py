"""
Phase sequencing engine shared by every practice mode.

A sequencer walks an ordered list of phases, consuming tick deltas. Phases with
zero duration are skipped on entry. When the list runs out the exhaustion
policy decides what happens next:

    loop_forever()       restart the same list
    loop(n)              restart until n passes are done, then complete
    advance(next_unit)   ask for the next list; None means done
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

from yogik.yk_config import PHASE_EPSILON
from yogik.yk_models import Phase

logger = logging.getLogger(__name__)


class SequencerListener:
    """Hooks called by PhaseSequencer. All of them are optional."""

    def phase_entered(self, index: int, phase: Phase) -> None:
        pass

    def phase_ticked(self, index: int, phase: Phase, before: float, after: float, finished: bool) -> None:
        pass

    def phase_finished(self, index: int, phase: Phase) -> None:
        pass

    def pass_finished(self, passes: int) -> None:
        pass

    def sequence_complete(self) -> None:
        pass


class PolicyKind(Enum):
    LOOP_FOREVER = "loop_forever"
    LOOP = "loop"
    ADVANCE = "advance"


class ExhaustionPolicy:
    def __init__(self, kind: PolicyKind, count: int = 0,
                 next_unit: Optional[Callable[[], Optional[Sequence[Phase]]]] = None):
        self.kind = kind
        self.count = count
        self.next_unit = next_unit

    @classmethod
    def loop_forever(cls) -> "ExhaustionPolicy":
        return cls(PolicyKind.LOOP_FOREVER)

    @classmethod
    def loop(cls, n: int) -> "ExhaustionPolicy":
        if n < 1:
            raise ValueError("loop count must be at least 1")
        return cls(PolicyKind.LOOP, count=n)

    @classmethod
    def advance(cls, next_unit: Callable[[], Optional[Sequence[Phase]]]) -> "ExhaustionPolicy":
        return cls(PolicyKind.ADVANCE, next_unit=next_unit)

    def __repr__(self) -> str:
        if self.kind is PolicyKind.LOOP:
            return f"ExhaustionPolicy.loop({self.count})"
        return f"ExhaustionPolicy.{self.kind.value}()"


class PhaseSequencer:
    """Tick-driven walk over a phase list."""

    def __init__(self, phases: Sequence[Phase], policy: ExhaustionPolicy,
                 listener: Optional[SequencerListener] = None):
        if not phases:
            raise ValueError("phase list must not be empty")
        self.phases: List[Phase] = list(phases)
        self.policy = policy
        self.listener = listener or SequencerListener()
        self.index: int = 0
        self.elapsed: float = 0.0
        self.passes: int = 0
        self.started = False
        self.complete = False

    # ---------------- Queries ----------------

    @property
    def current(self) -> Optional[Phase]:
        if not self.started or self.complete:
            return None
        return self.phases[self.index]

    @property
    def duration(self) -> float:
        phase = self.current
        return phase.duration if phase else 0.0

    @property
    def remaining(self) -> float:
        return max(0.0, self.duration - self.elapsed)

    @property
    def progress(self) -> float:
        duration = self.duration
        if duration <= 0:
            return 0.0
        return min(1.0, max(0.0, self.elapsed / duration))

    # ---------------- Driving ----------------

    def start(self) -> None:
        if self.started:
            return
        self.started = True
        self._enter(0)

    def tick(self, delta: float) -> None:
        if not self.started or self.complete:
            return

        phase = self.phases[self.index]
        before = self.elapsed
        self.elapsed = before + delta
        finished = self.elapsed + PHASE_EPSILON >= phase.duration

        self.listener.phase_ticked(self.index, phase, before, self.elapsed, finished)
        if finished:
            self.listener.phase_finished(self.index, phase)
            # Overshoot is discarded
            self._enter(self.index + 1)

    # ---------------- Internals ----------------

    def _enter(self, index: int) -> None:
        while True:
            while index < len(self.phases) and self.phases[index].duration <= 0:
                index += 1

            if index < len(self.phases):
                self.index = index
                self.elapsed = 0.0
                self.listener.phase_entered(index, self.phases[index])
                return

            if not self._exhaust():
                return
            index = 0

    def _exhaust(self) -> bool:
        """Apply the policy at the end of the list. False once the sequencer is complete."""
        productive = any(p.duration > 0 for p in self.phases)
        if productive:
            self.passes += 1
            self.listener.pass_finished(self.passes)

        if self.policy.kind is PolicyKind.ADVANCE:
            unit = self.policy.next_unit()
            if unit is None:
                self._finish()
                return False
            self.phases = list(unit)
            return True

        if not productive:
            logger.warning("Phase list has no timed phases, completing immediately")
            self._finish()
            return False

        if self.policy.kind is PolicyKind.LOOP and self.passes >= self.policy.count:
            self._finish()
            return False
        return True

    def _finish(self) -> None:
        self.complete = True
        self.elapsed = 0.0
        self.listener.sequence_complete()
