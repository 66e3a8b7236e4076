#!/usr/bin/env python3
"""
Database Manager for Yogik
Small JSON records (settings, recents, saved sequences and kriyas) stored by string key
"""

import json
import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, List

from yogik.yk_config import DB_PATH

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Thread-safe key/value store on sqlite"""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self._shared_conn = None
        self._shared_lock = threading.Lock()
        if db_path == ':memory:':
            # Every new connection to :memory: is a separate empty database, so keep one
            self._shared_conn = sqlite3.connect(db_path, check_same_thread=False)
            self._shared_conn.row_factory = sqlite3.Row
        else:
            directory = os.path.dirname(os.path.abspath(db_path))
            os.makedirs(directory, exist_ok=True)
        self._init_database()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections"""
        if self._shared_conn is not None:
            with self._shared_lock:
                try:
                    yield self._shared_conn
                    self._shared_conn.commit()
                except Exception:
                    self._shared_conn.rollback()
                    raise
            return

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self):
        """Create tables if they don't exist"""
        with self.get_connection() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    store_key TEXT PRIMARY KEY,
                    store_value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

    # ==================== RAW VALUES ====================

    def get_raw(self, key: str):
        with self.get_connection() as conn:
            row = conn.execute(
                'SELECT store_value FROM kv_store WHERE store_key = ?', (key,)
            ).fetchone()
            return row['store_value'] if row else None

    def set_raw(self, key: str, value: str) -> None:
        with self.get_connection() as conn:
            conn.execute('''
                INSERT INTO kv_store (store_key, store_value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(store_key) DO UPDATE SET
                    store_value = excluded.store_value,
                    updated_at = excluded.updated_at
            ''', (key, value, datetime.now(timezone.utc).isoformat()))

    # ==================== JSON RECORDS ====================

    def get_json(self, key: str, default: Any = None) -> Any:
        """
        Load a JSON record.

        Missing keys and undecodable values both return ``default``; the latter
        is logged as a warning and left in place.
        """
        raw = self.get_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupt value under '{key}', using default: {e}")
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value))

    def delete(self, key: str) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute('DELETE FROM kv_store WHERE store_key = ?', (key,))
            return cursor.rowcount > 0

    def keys(self) -> List[str]:
        with self.get_connection() as conn:
            rows = conn.execute('SELECT store_key FROM kv_store ORDER BY store_key').fetchall()
            return [row['store_key'] for row in rows]
