#!/usr/bin/env python3
"""
Session State Model - immutable snapshots of a practice session
and the events published whenever one changes
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class LifecycleState(Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETE = "complete"


class EventKind(Enum):
    LIFECYCLE = "lifecycle"
    PHASE = "phase"
    TICK = "tick"
    PROMPT = "prompt"
    PASS = "pass"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SessionSnapshot:
    mode: str
    lifecycle: LifecycleState = LifecycleState.IDLE
    phase_index: int = 0
    phase_kind: str = "idle"
    phase_label: str = ""
    elapsed: float = 0.0
    duration: float = 0.0
    remaining: float = 0.0
    progress: float = 0.0
    # Mode counters: laps / rounds / stage / repetition / pose ...
    counters: Dict[str, int] = field(default_factory=dict)
    config_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["lifecycle"] = self.lifecycle.value
        data["elapsed"] = round(self.elapsed, 3)
        data["remaining"] = round(self.remaining, 3)
        data["progress"] = round(self.progress, 4)
        return data


@dataclass(frozen=True)
class SessionEvent:
    seq: int
    kind: EventKind
    ts: str
    snapshot: SessionSnapshot
    detail: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "kind": self.kind.value,
            "ts": self.ts,
            "snapshot": self.snapshot.to_dict(),
            "detail": self.detail or {},
        }
