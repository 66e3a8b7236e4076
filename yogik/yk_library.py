"""
Saved practice definitions.

- SequenceLibrary: custom pose sequences, the built-in presets, .yogikseq export/import
- KriyaLibrary: saved kriyas

Saved records are append-only lists under a single storage key each. Presets
are rebuilt when the library is created and never written to storage.
"""

import json
import logging
import threading
from typing import Any, List, Optional, Sequence, Union

from yogik.yk_config import (
    SAVED_KRIYAS_KEY, SAVED_SEQUENCES_KEY,
    SEQUENCE_EXPORT_VERSION, SEQUENCE_FILE_EXTENSION,
)
from yogik.yk_models import Pose, SavedKriya, SavedSequence, Stage

logger = logging.getLogger(__name__)


SUN_SALUTATION_NAME = "Sun Salutation (Surya Namaskar)"

# (name, transition seconds, instruction, hold seconds, hold prompt)
SUN_SALUTATION_POSES = (
    ("Prayer Pose", 5, "Stand upright and bring your hands to heart center in prayer position.", 10, "Feel the ground beneath your feet. Center yourself. Keep breathing."),
    ("Raised Arms Pose", 5, "Inhale and raise your arms above your head, arching slightly backward.", 10, "Feel the stretch through your entire body. Keep breathing."),
    ("Forward Fold", 5, "Exhale and fold forward, letting your head and arms hang heavy.", 10, "Relax your neck and shoulders. Keep breathing."),
    ("Low Lunge Right", 5, "Inhale and step your right foot back into a low lunge, dropping your back knee. Stretch and look up.", 10, "Keep your front knee aligned over your ankle. Keep breathing."),
    ("Plank", 5, "Step back to a plank position, shoulders over wrists, body in a straight line.", 10, "Engage your core and keep your body aligned. Keep breathing."),
    ("Eight Limbed Pose", 5, "Exhale and lower your body so that your hands, feet, knees, chest, and forehead touch the ground.", 10, "This pose combines strength and surrender. Keep breathing."),
    ("Cobra Pose", 5, "Inhale and roll forward, pressing your chest up with your hands while keeping hips down. Stretch and look up.", 10, "Open your chest, lengthen your spine. Keep breathing."),
    ("Downward Facing Dog", 5, "Exhale and push back into downward dog, forming an inverted V-shape.", 10, "Press firmly through your hands, relax your head. Keep breathing."),
    ("Low Lunge Right Forward", 5, "Inhale and step your right foot forward into a low lunge. Stretch and look up.", 10, "Keep your front knee aligned over your ankle. Keep breathing."),
    ("Forward Fold", 5, "Exhale, step forward and fold, letting your upper body hang.", 10, "Breathe deeply and let tension melt away. Keep breathing."),
    ("Raised Arms Pose", 5, "Inhale and sweep your arms up, arching gently backward.", 10, "Expand your chest and embrace the moment. Keep breathing."),
    ("Prayer Pose", 5, "Exhale and return to standing, hands at heart center.", 10, "Complete half of Surya Namaskar. Keep breathing."),
    ("Raised Arms Pose", 5, "Inhale and raise your arms above your head, arching slightly backward.", 10, "Feel the stretch through your entire body. Keep breathing."),
    ("Forward Fold", 5, "Exhale and fold forward, letting your head and arms hang heavy.", 10, "Relax your neck and shoulders. Keep breathing."),
    ("Low Lunge Left", 5, "Inhale and step your left foot back into a low lunge, dropping your back knee. Stretch and look up.", 10, "Keep your front knee aligned over your ankle. Keep breathing."),
    ("Plank", 5, "Step back to a plank position, shoulders over wrists, body in a straight line.", 10, "Engage your core and keep your body aligned. Keep breathing."),
    ("Eight Limbed Pose", 5, "Exhale and lower your body so that your hands, feet, knees, chest, and forehead touch the ground.", 10, "This pose combines strength and surrender. Keep breathing."),
    ("Cobra Pose", 5, "Inhale and roll forward, pressing your chest up with your hands while keeping hips down. Stretch and look up.", 10, "Open your chest, lengthen your spine. Keep breathing."),
    ("Downward Facing Dog", 5, "Exhale and push back into downward dog, forming an inverted V-shape.", 10, "Press firmly through your hands, relax your head. Keep breathing."),
    ("Low Lunge Left Forward", 5, "Inhale and step your left foot forward into a low lunge. Stretch and look up.", 10, "Keep your front knee aligned over your ankle. Keep breathing."),
    ("Forward Fold", 5, "Exhale, step forward and fold, letting your upper body hang.", 10, "Breathe deeply and let tension melt away. Keep breathing."),
    ("Raised Arms Pose", 5, "Inhale and sweep your arms up, arching gently backward.", 10, "Expand your chest and embrace the moment. Keep breathing."),
    ("Prayer Pose", 5, "Exhale and return to standing, hands at heart center.", 10, "Complete one full cycle of Surya Namaskar. Keep breathing."),
)


def preset_sequences() -> List[SavedSequence]:
    poses = tuple(
        Pose(name=name, transition_time=transition, instruction=instruction,
             hold_time=hold, hold_prompt=hold_prompt)
        for name, transition, instruction, hold, hold_prompt in SUN_SALUTATION_POSES
    )
    return [SavedSequence(name=SUN_SALUTATION_NAME, poses=poses, is_preset=True)]


class _RecordList:
    """A JSON list of records under one storage key."""

    record_type: Any = None
    label = "record"

    def __init__(self, db, key: str):
        self.db = db
        self.key = key
        self._lock = threading.Lock()

    def _load(self) -> list:
        raw = self.db.get_json(self.key, [])
        if not isinstance(raw, list):
            logger.warning(f"Saved {self.label}s under '{self.key}' are not a list, ignoring them")
            return []
        records = []
        for item in raw:
            try:
                records.append(self.record_type.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed {self.label} in '{self.key}': {e}")
        return records

    def _save(self, records: list) -> None:
        self.db.set_json(self.key, [r.to_dict() for r in records])

    def _append(self, record) -> None:
        with self._lock:
            records = self._load()
            records.append(record)
            self._save(records)

    def saved(self) -> list:
        with self._lock:
            return self._load()

    def delete(self, record_id: str) -> bool:
        with self._lock:
            records = self._load()
            kept = [r for r in records if r.id != record_id]
            if len(kept) == len(records):
                return False
            self._save(kept)
            logger.info(f"Deleted {self.label} {record_id}")
            return True


class SequenceLibrary(_RecordList):
    record_type = SavedSequence
    label = "sequence"

    def __init__(self, db, key: str = SAVED_SEQUENCES_KEY):
        super().__init__(db, key)
        self.presets = preset_sequences()

    def list(self, include_presets: bool = True) -> List[SavedSequence]:
        saved = self.saved()
        return (list(self.presets) + saved) if include_presets else saved

    def get(self, sequence_id: str) -> Optional[SavedSequence]:
        for sequence in self.list():
            if sequence.id == sequence_id:
                return sequence
        return None

    def save(self, name: str, poses: Sequence[Pose]) -> Optional[SavedSequence]:
        """Save a new sequence. Returns None when the name is blank or there are no poses."""
        name = name.strip() if isinstance(name, str) else ""
        if not name or not poses:
            return None
        sequence = SavedSequence(name=name, poses=tuple(poses))
        self._append(sequence)
        logger.info(f"Saved sequence '{name}' ({len(sequence.poses)} poses)")
        return sequence

    def delete(self, sequence_id: str) -> bool:
        if any(p.id == sequence_id for p in self.presets):
            logger.warning("Preset sequences cannot be deleted")
            return False
        return super().delete(sequence_id)

    # ---------------- Exchange format ----------------

    @staticmethod
    def export_sequence(sequence: SavedSequence) -> str:
        document = {"version": SEQUENCE_EXPORT_VERSION, "sequence": sequence.to_dict()}
        return json.dumps(document, indent=2, sort_keys=True)

    @staticmethod
    def export_filename(sequence: SavedSequence) -> str:
        return sequence.name.replace(" ", "_") + SEQUENCE_FILE_EXTENSION

    def import_sequence(self, document: Union[str, bytes]) -> Optional[SavedSequence]:
        """
        Append an exported sequence to the saved list, id preserved.

        Malformed documents are logged and discarded; the list is left unchanged.
        """
        try:
            data = json.loads(document)
            if not isinstance(data, dict):
                raise TypeError("document must be an object")
            version = data["version"]
            if isinstance(version, bool) or not isinstance(version, int):
                raise TypeError("version must be an integer")
            payload = data["sequence"]
            if not isinstance(payload, dict):
                raise TypeError("sequence must be an object")
            sequence = SavedSequence.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to import sequence: {e}")
            return None

        self._append(sequence)
        logger.info(f"Imported sequence '{sequence.name}' ({len(sequence.poses)} poses)")
        return sequence


class KriyaLibrary(_RecordList):
    record_type = SavedKriya
    label = "kriya"

    def __init__(self, db, key: str = SAVED_KRIYAS_KEY):
        super().__init__(db, key)

    def list(self) -> List[SavedKriya]:
        return self.saved()

    def get(self, kriya_id: str) -> Optional[SavedKriya]:
        for kriya in self.saved():
            if kriya.id == kriya_id:
                return kriya
        return None

    def save(self, name: str, stages: Sequence[Stage], breath_in_label: str = "Inhale",
             breath_out_label: str = "Exhale", repeat_count: int = 1,
             rest_seconds: float = 0.0) -> Optional[SavedKriya]:
        name = name.strip() if isinstance(name, str) else ""
        if not name or not stages:
            return None
        kriya = SavedKriya(
            name=name,
            stages=tuple(stages),
            breath_in_label=breath_in_label,
            breath_out_label=breath_out_label,
            repeat_count=repeat_count,
            rest_seconds=rest_seconds,
        )
        self._append(kriya)
        logger.info(f"Saved kriya '{name}' ({len(kriya.stages)} stages)")
        return kriya
