"""
Registry: the application's in-memory state + wiring.
- Owns the store, settings, recents ledgers and saved-definition libraries
- Owns one practice session per mode
- Keeps a bounded operator log
"""

import logging
from collections import deque
from typing import Any, Dict, Optional

from services.custom_sequence_service import CustomSequenceService
from services.kriya_service import KriyaService
from services.pranayama_service import PranayamaService
from services.yoga_service import YogaService
from yogik.db_manager import DatabaseManager
from yogik.settings_manager import SettingsManager
from yogik.yk_audio import PromptSink, RecordingPromptSink, SpeechPromptSink
from yogik.yk_config import (
    CUSTOM_HISTORY_KEY, DB_PATH, KRIYA_HISTORY_KEY, LOG_MAX,
    PRANAYAMA_HISTORY_KEY, YOGA_HISTORY_KEY,
)
from yogik.yk_history import HistoryLedger
from yogik.yk_library import KriyaLibrary, SequenceLibrary
from yogik.yk_models import utcnow_iso
from yogik.yk_version import VERSION

logger = logging.getLogger(__name__)

MODES = ("yoga", "pranayama", "kriya", "custom")


class Registry:
    """Wires storage, audio and the four practice sessions together."""

    def __init__(self, db_path: str = DB_PATH, sink: Optional[PromptSink] = None,
                 clock_factory=None) -> None:
        # System log
        self.logs: deque = deque(maxlen=LOG_MAX)

        self.db = DatabaseManager(db_path)
        self.settings = SettingsManager(self.db)
        self.sequences = SequenceLibrary(self.db)
        self.kriyas = KriyaLibrary(self.db)
        self.history: Dict[str, HistoryLedger] = {
            "yoga": HistoryLedger(self.db, YOGA_HISTORY_KEY),
            "pranayama": HistoryLedger(self.db, PRANAYAMA_HISTORY_KEY),
            "kriya": HistoryLedger(self.db, KRIYA_HISTORY_KEY),
            "custom": HistoryLedger(self.db, CUSTOM_HISTORY_KEY),
        }
        self.log(f"Database ready at {db_path}")

        self.sink = sink if sink is not None else SpeechPromptSink()

        # Each session gets its own clock (and lock)
        new_clock = clock_factory or (lambda mode: None)
        self.sessions = {
            "yoga": YogaService(self.sink, self.history["yoga"], new_clock("yoga")),
            "pranayama": PranayamaService(self.sink, self.history["pranayama"], new_clock("pranayama")),
            "kriya": KriyaService(self.sink, self.history["kriya"], new_clock("kriya"), library=self.kriyas),
            "custom": CustomSequenceService(self.sink, self.history["custom"], new_clock("custom")),
        }
        self.log(f"Yogik {VERSION} registry initialized")

    # ---------------- Utilities ----------------

    def log(self, msg: str, level: str = "info", source: str = "registry") -> None:
        """Append a structured log entry and forward it to the logging module."""
        entry = {"ts": utcnow_iso(), "level": level, "source": source, "msg": msg}
        self.logs.appendleft(entry)
        logger.log(logging.getLevelName(level.upper()), msg)

    def session(self, mode: str):
        return self.sessions.get(mode)

    # ---------------- Practice ----------------

    def start(self, mode: str, config: Any) -> Dict[str, Any]:
        """Start a mode with the current settings injected."""
        session = self.sessions[mode]
        result = session.start(config, self.settings.load_settings())
        if result.get('success'):
            self.log(f"{mode} session started", source=mode)
        else:
            self.log(f"{mode} start refused: {result.get('error')}", level="warning", source=mode)
        return result

    def stop_all(self) -> None:
        for mode, session in self.sessions.items():
            if session.get_state()['lifecycle'] != 'idle':
                session.stop()
                self.log(f"{mode} session stopped", source=mode)

    def shutdown(self) -> None:
        self.stop_all()
        if isinstance(self.sink, SpeechPromptSink):
            self.sink.shutdown()
        self.log("Registry shut down")

    # ---------------- Snapshot for UI ----------------

    def snapshot(self) -> Dict[str, Any]:
        return {
            "version": VERSION,
            "sessions": {mode: s.get_state() for mode, s in self.sessions.items()},
            "logs": list(self.logs)[:50],
        }


def build_registry(db_path: str = DB_PATH, dry_run: bool = False, clock_factory=None) -> Registry:
    """Registry with real audio, or a logging-only sink for dry runs."""
    sink = RecordingPromptSink(echo=True, max_calls=LOG_MAX) if dry_run else None
    return Registry(db_path=db_path, sink=sink, clock_factory=clock_factory)
