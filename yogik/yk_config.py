"""
Central configuration and tunables.

If you need to change paths, tick granularity or prompt timing, do it here.
Prefer environment overrides where sensible.
"""

import os

# Web
HOST: str = os.getenv("YOGIK_HOST", "127.0.0.1")
PORT: int = int(os.getenv("YOGIK_PORT", "5050"))

# Storage
DB_PATH: str = os.getenv("YOGIK_DB_PATH", os.path.expanduser("~/.yogik/yogik.db"))

# Audio
AUDIO_DIR: str = os.getenv("YOGIK_AUDIO_DIR", os.path.expanduser("~/.yogik/audio"))
SPEECH_BIN: str = os.getenv("YOGIK_SPEECH_BIN", "espeak-ng")
PLAYER_BIN: str = os.getenv("YOGIK_PLAYER_BIN", "mpg123")

# Tick granularity (seconds)
YOGA_TICK_SECONDS: float = float(os.getenv("YOGIK_YOGA_TICK", "1.0"))
KRIYA_TICK_SECONDS: float = float(os.getenv("YOGIK_KRIYA_TICK", "0.05"))
CUSTOM_TICK_SECONDS: float = float(os.getenv("YOGIK_CUSTOM_TICK", "0.1"))
PRANAYAMA_TICK_CHOICES = (1.0, 0.5, 0.25, 0.1)

# Floating point slack when comparing accumulated elapsed time with a duration
PHASE_EPSILON: float = 1e-5

# Prep countdown
DEFAULT_PREP_SECONDS: int = int(os.getenv("YOGIK_PREP_SECONDS", "5"))
MIN_PREP_SECONDS: int = 1
MAX_PREP_SECONDS: int = 60

# Kriya rest "get ready" lead time
GET_READY_LEAD_SECONDS: float = 3.0

# Recents
HISTORY_MAX: int = int(os.getenv("YOGIK_HISTORY_MAX", "5"))

# Logs / event buffers
LOG_MAX: int = int(os.getenv("YOGIK_LOG_MAX", "1000"))
EVENT_LOG_MAX: int = int(os.getenv("YOGIK_EVENT_LOG_MAX", "500"))

# Storage keys
SETTINGS_KEY: str = "Yogik.settings"
YOGA_HISTORY_KEY: str = "Yogik.timerHistory"
PRANAYAMA_HISTORY_KEY: str = "Yogik.pranayamaHistory"
KRIYA_HISTORY_KEY: str = "Yogik.kriyaHistory"
CUSTOM_HISTORY_KEY: str = "Yogik.customHistory"
SAVED_SEQUENCES_KEY: str = "savedCustomSequences"
SAVED_KRIYAS_KEY: str = "savedKriyas"

# Exchange format
SEQUENCE_EXPORT_VERSION: int = 1
SEQUENCE_FILE_EXTENSION: str = ".yogikseq"
