#!/usr/bin/env python3
"""
Settings Manager for Yogik
Handles global practice settings (voice, prep time, breath labels, tones)
"""

import logging
from dataclasses import fields
from typing import Any, Dict, Optional

from yogik.yk_config import MAX_PREP_SECONDS, MIN_PREP_SECONDS, SETTINGS_KEY
from yogik.yk_models import PracticeSettings

logger = logging.getLogger(__name__)

SETTING_TYPES = {f.name: f.type for f in fields(PracticeSettings)}
_PY_TYPES = {"str": str, "int": int, "bool": bool}


def _expected_type(key: str) -> type:
    declared = SETTING_TYPES[key]
    return _PY_TYPES.get(declared, declared) if isinstance(declared, str) else declared


def _clamp_prep(value: int) -> int:
    return max(MIN_PREP_SECONDS, min(MAX_PREP_SECONDS, value))


class SettingsManager:
    """Loads and saves PracticeSettings as one JSON record"""

    def __init__(self, db_manager):
        self.db = db_manager

    def _stored(self) -> Dict[str, Any]:
        data = self.db.get_json(SETTINGS_KEY, {})
        if not isinstance(data, dict):
            logger.warning("Settings record is not an object, ignoring it")
            return {}
        return data

    def load_settings(self) -> PracticeSettings:
        """Load settings; unknown keys are ignored, bad values fall back to defaults"""
        values = {}
        for key, value in self._stored().items():
            if key not in SETTING_TYPES:
                continue
            coerced = self._validate(key, value)
            if coerced is None:
                logger.warning(f"Invalid stored setting {key}={value!r}, using default")
                continue
            values[key] = coerced
        return PracticeSettings(**values)

    def get_setting(self, key: str) -> Optional[Any]:
        """Get single setting value"""
        if key not in SETTING_TYPES:
            return None
        return getattr(self.load_settings(), key)

    def save_setting(self, key: str, value: Any) -> bool:
        """Validate and save a single setting"""
        if key not in SETTING_TYPES:
            logger.error(f"Unknown setting: {key}")
            return False
        coerced = self._validate(key, value)
        if coerced is None:
            logger.error(f"Invalid value for setting {key}: {value!r}")
            return False
        try:
            data = self._stored()
            data[key] = coerced
            self.db.set_json(SETTINGS_KEY, data)
            return True
        except Exception as e:
            logger.error(f"Error saving setting {key}: {e}")
            return False

    def reset_to_defaults(self) -> bool:
        """Reset all settings to defaults"""
        try:
            self.db.set_json(SETTINGS_KEY, PracticeSettings().to_dict())
            return True
        except Exception as e:
            logger.error(f"Error resetting settings: {e}")
            return False

    @staticmethod
    def _validate(key: str, value: Any) -> Optional[Any]:
        expected = _expected_type(key)
        if expected is bool:
            return value if isinstance(value, bool) else None
        if expected is int:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return None
            value = int(value)
            return _clamp_prep(value) if key == "prep_seconds" else value
        if expected is str:
            return value if isinstance(value, str) else None
        return None
