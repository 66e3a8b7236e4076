"""
Dataclasses and small model helpers used throughout the system.

Persisted records use the camelCase field names of the exchange format
(``transitionTime``, ``holdPrompt`` ...) in their ``to_dict``/``from_dict``
forms; in Python they are plain snake_case attributes.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


def utcnow_iso() -> str:
    """UTC timestamp in ISO 8601 format (seconds precision)."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def new_id() -> str:
    """Generated record id (upper-case UUID, as the mobile app writes them)."""
    return str(uuid.uuid4()).upper()


def _number(data: Dict[str, Any], key: str, cast=float):
    """Read a numeric field, rejecting bools and non-numeric values."""
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key} must be a number, got {type(value).__name__}")
    if cast is int and value != int(value):
        raise ValueError(f"{key} must be a whole number, got {value}")
    return cast(value)


def _text(data: Dict[str, Any], key: str, default: Optional[str] = None) -> str:
    if key not in data and default is not None:
        return default
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


# ---------------- Phases ----------------

class PhaseKind(Enum):
    TRANSITION = "transition"
    HOLD = "hold"
    BREATH_IN = "breath_in"
    HOLD_IN = "hold_in"
    BREATH_OUT = "breath_out"
    HOLD_OUT = "hold_out"
    REST = "rest"
    IDLE = "idle"


@dataclass(frozen=True)
class Prompt:
    """A line of speech. ``rate`` uses the 0..1 scale where 0.5 is normal speed."""
    text: str
    rate: float = 0.5


@dataclass(frozen=True)
class Phase:
    """
    One timed segment of a practice cycle.

    Note: a phase whose duration is 0 is skipped by the sequencer, prompts included.
    """
    kind: PhaseKind
    duration: float
    label: str = ""
    prompts: Tuple[Prompt, ...] = ()
    tick_tone: Optional[str] = None
    count_unit: Optional[float] = None
    lead_prompt: Optional[Prompt] = None
    lead_seconds: float = 0.0

    @property
    def units(self) -> int:
        """Number of spoken counts in this phase (Pranayama ratio)."""
        if not self.count_unit:
            return 0
        return int(round(self.duration / self.count_unit))


# ---------------- User-authored entities ----------------

@dataclass(frozen=True)
class Pose:
    name: str = ""
    transition_time: int = 5
    instruction: str = ""
    hold_time: int = 10
    hold_prompt: str = ""
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "transitionTime": self.transition_time,
            "instruction": self.instruction,
            "holdTime": self.hold_time,
            "holdPrompt": self.hold_prompt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pose":
        return cls(
            id=_text(data, "id"),
            name=_text(data, "name"),
            transition_time=_number(data, "transitionTime", int),
            instruction=_text(data, "instruction", ""),
            hold_time=_number(data, "holdTime", int),
            hold_prompt=_text(data, "holdPrompt", ""),
        )


@dataclass(frozen=True)
class Stage:
    """Kriya stage: a breath-in/breath-out pair repeated ``counts`` times."""
    breath_in_seconds: float = 1.0
    breath_out_seconds: float = 1.0
    counts: int = 20
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "breathInSeconds": self.breath_in_seconds,
            "breathOutSeconds": self.breath_out_seconds,
            "counts": self.counts,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stage":
        return cls(
            id=_text(data, "id") if "id" in data else new_id(),
            breath_in_seconds=_number(data, "breathInSeconds"),
            breath_out_seconds=_number(data, "breathOutSeconds"),
            counts=_number(data, "counts", int),
        )


@dataclass(frozen=True)
class SavedSequence:
    name: str
    poses: Tuple[Pose, ...]
    is_preset: bool = False
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "poses": [p.to_dict() for p in self.poses],
            "isPreset": self.is_preset,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedSequence":
        poses = data["poses"]
        if not isinstance(poses, list):
            raise TypeError("poses must be a list")
        is_preset = data.get("isPreset", False)
        if not isinstance(is_preset, bool):
            raise TypeError("isPreset must be a boolean")
        return cls(
            id=_text(data, "id"),
            name=_text(data, "name"),
            poses=tuple(Pose.from_dict(p) for p in poses),
            is_preset=is_preset,
        )


@dataclass(frozen=True)
class SavedKriya:
    name: str
    stages: Tuple[Stage, ...]
    breath_in_label: str = "Inhale"
    breath_out_label: str = "Exhale"
    repeat_count: int = 1
    rest_seconds: float = 0.0
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rounds": [s.to_dict() for s in self.stages],
            "kriyaBreathInLabel": self.breath_in_label,
            "kriyaBreathOutLabel": self.breath_out_label,
            "repeatCount": self.repeat_count,
            "restSeconds": self.rest_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedKriya":
        stages = data["rounds"]
        if not isinstance(stages, list):
            raise TypeError("rounds must be a list")
        return cls(
            id=_text(data, "id"),
            name=_text(data, "name"),
            stages=tuple(Stage.from_dict(s) for s in stages),
            breath_in_label=_text(data, "kriyaBreathInLabel", "Inhale"),
            breath_out_label=_text(data, "kriyaBreathOutLabel", "Exhale"),
            repeat_count=_number(data, "repeatCount", int) if "repeatCount" in data else 1,
            rest_seconds=_number(data, "restSeconds") if "restSeconds" in data else 0.0,
        )


# ---------------- History ----------------

@dataclass
class HistoryEntry:
    configuration: Dict[str, Any]
    last_used: str = field(default_factory=utcnow_iso)
    outcome_count: int = 0
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "configuration": self.configuration,
            "lastUsed": self.last_used,
            "outcomeCount": self.outcome_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        configuration = data["configuration"]
        if not isinstance(configuration, dict):
            raise TypeError("configuration must be an object")
        return cls(
            id=_text(data, "id"),
            configuration=configuration,
            last_used=_text(data, "lastUsed"),
            outcome_count=_number(data, "outcomeCount", int),
        )


# ---------------- Settings ----------------

@dataclass(frozen=True)
class PracticeSettings:
    """Global settings, injected into a session when it starts."""
    voice_id: str = ""
    prep_seconds: int = 5
    progress_sound: bool = True
    breath_in_label: str = "Inhale"
    breath_out_label: str = "Exhale"
    progress_tone: str = "tick"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voice_id": self.voice_id,
            "prep_seconds": self.prep_seconds,
            "progress_sound": self.progress_sound,
            "breath_in_label": self.breath_in_label,
            "breath_out_label": self.breath_out_label,
            "progress_tone": self.progress_tone,
        }


# ---------------- Mode configurations ----------------

class Pace(Enum):
    FAST = "Fast (1s)"
    MEDIUM = "Medium (1.5s)"
    SLOW = "Slow (2s)"

    @property
    def multiplier(self) -> float:
        return {Pace.FAST: 1.0, Pace.MEDIUM: 1.5, Pace.SLOW: 2.0}[self]


def parse_pace(value: Any) -> float:
    """Accept a pace name ("Medium (1.5s)", "medium") or a positive multiplier."""
    if isinstance(value, str):
        for pace in Pace:
            if value == pace.value or value.lower() == pace.name.lower():
                return pace.multiplier
        value = float(value)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError("pace must be a name or a number")
    if value <= 0:
        raise ValueError("pace must be positive")
    return float(value)


@dataclass(frozen=True)
class YogaConfig:
    transition_seconds: int = 5
    hold_seconds: int = 10
    progress_tone: str = "tick"
    laps: int = 0  # 0 = until stopped

    @property
    def name(self) -> str:
        return f"hold-{self.hold_seconds}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transitionSeconds": self.transition_seconds,
            "holdSeconds": self.hold_seconds,
            "progressTone": self.progress_tone,
            "laps": self.laps,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "YogaConfig":
        return cls(
            transition_seconds=_number(data, "transitionSeconds", int) if "transitionSeconds" in data else 5,
            hold_seconds=_number(data, "holdSeconds", int) if "holdSeconds" in data else 10,
            progress_tone=_text(data, "progressTone", "tick"),
            laps=_number(data, "laps", int) if "laps" in data else 0,
        )


@dataclass(frozen=True)
class PranayamaConfig:
    breath_in: int = 4
    hold_in: int = 4
    breath_out: int = 6
    hold_out: int = 2
    pace: float = 1.0
    rounds: int = 0  # 0 = until stopped

    @property
    def name(self) -> str:
        return f"{self.breath_in}:{self.hold_in}:{self.breath_out}:{self.hold_out}"

    @property
    def ratios(self) -> Tuple[int, int, int, int]:
        return (self.breath_in, self.hold_in, self.breath_out, self.hold_out)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breathInRatio": self.breath_in,
            "holdInRatio": self.hold_in,
            "breathOutRatio": self.breath_out,
            "holdOutRatio": self.hold_out,
            "pace": self.pace,
            "rounds": self.rounds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PranayamaConfig":
        defaults = cls()
        return cls(
            breath_in=_number(data, "breathInRatio", int) if "breathInRatio" in data else defaults.breath_in,
            hold_in=_number(data, "holdInRatio", int) if "holdInRatio" in data else defaults.hold_in,
            breath_out=_number(data, "breathOutRatio", int) if "breathOutRatio" in data else defaults.breath_out,
            hold_out=_number(data, "holdOutRatio", int) if "holdOutRatio" in data else defaults.hold_out,
            pace=parse_pace(data["pace"]) if "pace" in data else defaults.pace,
            rounds=_number(data, "rounds", int) if "rounds" in data else 0,
        )


@dataclass(frozen=True)
class KriyaConfig:
    stages: Tuple[Stage, ...] = (Stage(),)
    round_count: int = 1
    rest_seconds: float = 0.0
    breath_in_label: str = "In"
    breath_out_label: str = "Out"
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        # Stage ids are left out so that re-running the same timings dedups in history
        return {
            "stages": [
                {
                    "breathInSeconds": s.breath_in_seconds,
                    "breathOutSeconds": s.breath_out_seconds,
                    "counts": s.counts,
                }
                for s in self.stages
            ],
            "roundCount": self.round_count,
            "restSeconds": self.rest_seconds,
            "breathInLabel": self.breath_in_label,
            "breathOutLabel": self.breath_out_label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KriyaConfig":
        stages = data.get("stages", data.get("rounds"))
        if not isinstance(stages, list):
            raise TypeError("stages must be a list")
        return cls(
            stages=tuple(Stage.from_dict(s) for s in stages),
            round_count=_number(data, "roundCount", int) if "roundCount" in data else 1,
            rest_seconds=_number(data, "restSeconds") if "restSeconds" in data else 0.0,
            breath_in_label=_text(data, "breathInLabel", "In"),
            breath_out_label=_text(data, "breathOutLabel", "Out"),
            name=_text(data, "name", ""),
        )

    @classmethod
    def from_saved(cls, saved: SavedKriya) -> "KriyaConfig":
        return cls(
            stages=saved.stages,
            round_count=saved.repeat_count,
            rest_seconds=saved.rest_seconds,
            breath_in_label=saved.breath_in_label,
            breath_out_label=saved.breath_out_label,
        )


@dataclass(frozen=True)
class CustomConfig:
    poses: Tuple[Pose, ...] = ()
    rounds: int = 1
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "poses": [
                {k: v for k, v in p.to_dict().items() if k != "id"}
                for p in self.poses
            ],
            "rounds": self.rounds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomConfig":
        poses = data["poses"]
        if not isinstance(poses, list):
            raise TypeError("poses must be a list")
        return cls(
            poses=tuple(Pose.from_dict(dict({"id": new_id()}, **p)) for p in poses),
            rounds=_number(data, "rounds", int) if "rounds" in data else 1,
            name=_text(data, "name", ""),
        )

    @classmethod
    def from_saved(cls, saved: SavedSequence, rounds: int = 1) -> "CustomConfig":
        return cls(poses=saved.poses, rounds=max(1, rounds), name=saved.name)
