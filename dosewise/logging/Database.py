"""
Database Manager for DoseWise.

One SQLite file with two key/value tables:
- blob_store: whole-document values (adherence snapshot, classifier source)
- config: runtime control keys shared between dashboard and session

Each thread gets its own connection; WAL lets the dashboard read while the
session writes.
"""
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Optional

from dosewise.constants import (
    detection_enabled_key,
    enable_display_key,
    notifications_enabled_key,
    reset_requested_key,
)
from dosewise.utils.AppLogging import logger

_SCHEMA = """
CREATE TABLE IF NOT EXISTS blob_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT (datetime('now', 'localtime'))
);
CREATE TABLE IF NOT EXISTS config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT (datetime('now', 'localtime'))
);
"""

_DEFAULT_CONFIG = {
    detection_enabled_key: '0',
    reset_requested_key: '0',
    enable_display_key: '0',
    notifications_enabled_key: '1',
}

_UPSERT = (
    "INSERT INTO {table} (key, value, updated_at) VALUES (?, ?, datetime('now', 'localtime')) "
    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at"
)


class DatabaseManager:
    """Blob store + config table over a single SQLite file."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._local = threading.local()

        path = Path(db_path)
        is_new = not path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)

        with self._cursor() as cursor:
            cursor.executescript(_SCHEMA)
            cursor.executemany(
                "INSERT OR IGNORE INTO config (key, value) VALUES (?, ?)",
                list(_DEFAULT_CONFIG.items()),
            )
        logger.info(f"[DatabaseManager] {'Created' if is_new else 'Opened'} {db_path}")

    @property
    def _conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, 'conn', None)
        if conn is None:
            conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30.0)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            self._local.conn = conn
        return conn

    @contextmanager
    def _cursor(self):
        """Cursor committed on success, rolled back and re-raised on error."""
        conn = self._conn
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"[DatabaseManager] Query failed: {e}", exc_info=True)
            raise
        finally:
            cursor.close()

    def _get(self, table: str, key: str) -> Optional[str]:
        with self._cursor() as cursor:
            cursor.execute(f"SELECT value FROM {table} WHERE key = ?", (key,))
            row = cursor.fetchone()
        return row['value'] if row else None

    def _put(self, table: str, key: str, value: str) -> None:
        with self._cursor() as cursor:
            cursor.execute(_UPSERT.format(table=table), (key, value))

    # ------------------------------------------------------------------
    # Blob store
    # ------------------------------------------------------------------

    def get_blob(self, key: str) -> Optional[str]:
        return self._get("blob_store", key)

    def set_blob(self, key: str, value: str) -> None:
        """Overwrite the whole value stored under *key*."""
        self._put("blob_store", key, value)
        logger.debug(f"[DatabaseManager] Blob written: {key} ({len(value)} bytes)")

    def delete_blobs(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        with self._cursor() as cursor:
            cursor.executemany("DELETE FROM blob_store WHERE key = ?", [(key,) for key in keys])
        logger.info(f"[DatabaseManager] Blobs cleared: {', '.join(keys)}")

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def get_config(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._get("config", key)
        return default if value is None else value

    def set_config(self, key: str, value: str) -> None:
        self._put("config", key, value)
        logger.debug(f"[DatabaseManager] Config {key} = {value}")

    def get_all_config(self) -> Dict[str, str]:
        with self._cursor() as cursor:
            cursor.execute("SELECT key, value FROM config")
            return {row['key']: row['value'] for row in cursor.fetchall()}

    def close(self):
        """Close this thread's connection."""
        conn = getattr(self._local, 'conn', None)
        if conn is not None:
            conn.close()
            self._local.conn = None
