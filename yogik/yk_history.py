"""
Recents ledger: the last few configurations used in a practice mode.

Newest first, capped at HISTORY_MAX, deduplicated by configuration.
"""

import logging
import threading
from typing import Any, Dict, List

from yogik.yk_config import HISTORY_MAX
from yogik.yk_models import HistoryEntry, utcnow_iso

logger = logging.getLogger(__name__)


class HistoryLedger:
    def __init__(self, db, key: str, limit: int = HISTORY_MAX):
        self.db = db
        self.key = key
        self.limit = limit
        self._lock = threading.Lock()

    # ---------------- Storage ----------------

    def _load(self) -> List[HistoryEntry]:
        raw = self.db.get_json(self.key, [])
        if not isinstance(raw, list):
            logger.warning(f"History under '{self.key}' is not a list, starting empty")
            return []
        entries = []
        for item in raw:
            try:
                entries.append(HistoryEntry.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed history entry in '{self.key}': {e}")
        return entries

    def _save(self, entries: List[HistoryEntry]) -> None:
        self.db.set_json(self.key, [e.to_dict() for e in entries[:self.limit]])

    # ---------------- Operations ----------------

    def entries(self) -> List[HistoryEntry]:
        with self._lock:
            return self._load()

    def record_start(self, configuration: Dict[str, Any]) -> HistoryEntry:
        """Move (or insert) the configuration to the front with a zero outcome."""
        with self._lock:
            entries = [e for e in self._load() if e.configuration != configuration]
            entry = HistoryEntry(configuration=configuration)
            entries.insert(0, entry)
            self._save(entries)
            return entry

    def record_outcome(self, configuration: Dict[str, Any], count: int) -> bool:
        """Store the outcome on the matching entry and move it to the front. No entry, no-op."""
        with self._lock:
            entries = self._load()
            for i, entry in enumerate(entries):
                if entry.configuration == configuration:
                    entry.outcome_count = count
                    entry.last_used = utcnow_iso()
                    entries.insert(0, entries.pop(i))
                    self._save(entries)
                    return True
            return False

    def delete(self, entry_id: str) -> bool:
        with self._lock:
            entries = self._load()
            kept = [e for e in entries if e.id != entry_id]
            if len(kept) == len(entries):
                return False
            self._save(kept)
            return True

    def clear(self) -> None:
        with self._lock:
            self._save([])
