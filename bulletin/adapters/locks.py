"""
Send lock adapters.

Expiring leases keyed by newsletter. An expired lease can be taken
over, so a crashed sender never blocks a newsletter forever.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timedelta

from bulletin.adapters.clock import SystemClock
from bulletin.adapters.sqlite_db import SQLiteRepoBase
from bulletin.core.ports.time import TimePort

logger = logging.getLogger(__name__)


class InMemorySendLock:
    """Process-local lease lock."""

    def __init__(self, time: TimePort | None = None) -> None:
        self._time = time or SystemClock()
        self._lock = threading.Lock()
        self._leases: dict[str, datetime] = {}

    def acquire(self, key: str, ttl_seconds: int) -> bool:
        now = self._time.now_utc()
        with self._lock:
            expires_at = self._leases.get(key)
            if expires_at is not None and expires_at > now:
                return False
            if expires_at is not None:
                logger.warning("Taking over expired send lock %s", key)
            self._leases[key] = now + timedelta(seconds=ttl_seconds)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._leases.pop(key, None)

    def is_held(self, key: str) -> bool:
        with self._lock:
            expires_at = self._leases.get(key)
            return expires_at is not None and expires_at > self._time.now_utc()


class SQLiteSendLock(SQLiteRepoBase):
    """Lease lock shared through the ``send_locks`` table."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        time: TimePort | None = None,
    ):
        super().__init__(db_path, connection)
        self._time = time or SystemClock()

    def acquire(self, key: str, ttl_seconds: int) -> bool:
        now = self._time.now_utc()
        conn = self._get_conn()
        try:
            expired = conn.execute(
                "DELETE FROM send_locks WHERE key = ? AND expires_at <= ?",
                (key, now.isoformat()),
            )
            if expired.rowcount:
                logger.warning("Taking over expired send lock %s", key)
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO send_locks (key, acquired_at, expires_at)
                VALUES (?, ?, ?)
                """,
                (key, now.isoformat(), (now + timedelta(seconds=ttl_seconds)).isoformat()),
            )
            self._commit(conn)
            return cursor.rowcount == 1
        finally:
            if self._should_close():
                conn.close()

    def release(self, key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM send_locks WHERE key = ?", (key,))
            self._commit(conn)
        finally:
            if self._should_close():
                conn.close()
