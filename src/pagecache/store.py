#!/usr/bin/env python3
"""
Key-value store backends for the variant cache.

Implements:
- get(namespace, key) → value | None
- set(namespace, key, value, ttl)   (ttl 0 = never expires)
- clear_namespace(namespace) → entries removed
- clear_expired() → entries removed

Every backend is safe for concurrent use on its own; callers add no locking.
Backend failures are raised as StoreUnavailable so the caller decides how to
degrade.
"""

import logging
import os
import sqlite3
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """The underlying storage could not be read or written."""


class KeyValueStore(Protocol):
    def get(self, namespace: str, key: str) -> Optional[str]: ...

    def set(self, namespace: str, key: str, value: str, ttl: int = 0) -> None: ...

    def clear_namespace(self, namespace: str) -> int: ...

    def clear_expired(self) -> int: ...


def _expiry(now: float, ttl: int) -> Optional[int]:
    if ttl < 0:
        raise ValueError(f"ttl must be >= 0, got {ttl}")
    return int(now) + ttl if ttl else None


class MemoryStore:
    """Process-local store, one dict per namespace."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Tuple[str, Optional[int]]]] = {}

    def get(self, namespace: str, key: str) -> Optional[str]:
        with self._lock:
            bucket = self._data.get(namespace)
            if not bucket or key not in bucket:
                return None
            value, expires_at = bucket[key]
            if expires_at is not None and expires_at <= self._clock():
                del bucket[key]
                return None
            return value

    def set(self, namespace: str, key: str, value: str, ttl: int = 0) -> None:
        expires_at = _expiry(self._clock(), ttl)
        with self._lock:
            self._data.setdefault(namespace, {})[key] = (value, expires_at)

    def clear_namespace(self, namespace: str) -> int:
        with self._lock:
            bucket = self._data.pop(namespace, {})
        return len(bucket)

    def clear_expired(self) -> int:
        now = self._clock()
        cleared = 0
        with self._lock:
            for bucket in self._data.values():
                stale = [k for k, (_, exp) in bucket.items() if exp is not None and exp <= now]
                for key in stale:
                    del bucket[key]
                cleared += len(stale)
        return cleared


class SQLiteStore:
    """
    SQLite-backed store shared by every namespace.

    Design:
    - One row per (namespace, cache_key); INSERT OR REPLACE overwrites
    - expires_at NULL means the entry lives until its namespace is cleared
    - Clearing a namespace is a single DELETE, never a scan of other namespaces
    """

    def __init__(self, db_path: str = None, clock: Callable[[], float] = time.time):
        if db_path is None:
            db_path = os.path.expanduser("~/.cache/variants/responses.db")

        self.db_path = db_path
        self._clock = clock
        self._lock = threading.Lock()

        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            # Shared across request threads; access is serialised by self._lock
            self.conn = sqlite3.connect(db_path, check_same_thread=False, timeout=10.0)
            self.conn.row_factory = sqlite3.Row
            self._init_schema()
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailable(f"cannot open {db_path}: {e}") from e

        logger.info(f"SQLiteStore initialized at {db_path}")

    def _init_schema(self):
        """Create tables if they don't exist."""
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS cache_entries (
                namespace TEXT NOT NULL,
                cache_key TEXT NOT NULL,
                payload TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                expires_at INTEGER,
                PRIMARY KEY (namespace, cache_key)
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_cache_expires ON cache_entries(expires_at)")
        self.conn.commit()
        logger.debug("Schema initialized")

    def _execute(self, sql: str, params: tuple = (), fetch: bool = False):
        """Run one statement under the lock; return the first row or the rowcount."""
        try:
            with self._lock:
                cursor = self.conn.execute(sql, params)
                if fetch:
                    return cursor.fetchone()
                self.conn.commit()
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StoreUnavailable(str(e)) from e

    def get(self, namespace: str, key: str) -> Optional[str]:
        now = int(self._clock())
        row = self._execute("""
            SELECT payload FROM cache_entries
            WHERE namespace = ? AND cache_key = ?
              AND (expires_at IS NULL OR expires_at > ?)
            LIMIT 1
        """, (namespace, key, now), fetch=True)
        return row["payload"] if row else None

    def set(self, namespace: str, key: str, value: str, ttl: int = 0) -> None:
        now = self._clock()
        self._execute("""
            INSERT OR REPLACE INTO cache_entries
            (namespace, cache_key, payload, created_at, expires_at)
            VALUES (?, ?, ?, ?, ?)
        """, (namespace, key, value, int(now), _expiry(now, ttl)))

    def clear_namespace(self, namespace: str) -> int:
        return self._execute("DELETE FROM cache_entries WHERE namespace = ?", (namespace,))

    def clear_expired(self) -> int:
        now = int(self._clock())
        return self._execute(
            "DELETE FROM cache_entries WHERE expires_at IS NOT NULL AND expires_at <= ?", (now,)
        )

    def count(self, namespace: str = None) -> int:
        if namespace is None:
            row = self._execute("SELECT COUNT(*) AS count FROM cache_entries", fetch=True)
        else:
            row = self._execute(
                "SELECT COUNT(*) AS count FROM cache_entries WHERE namespace = ?", (namespace,), fetch=True
            )
        return row["count"]

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            logger.info("SQLiteStore closed")


def open_store(backend: str = "sqlite", path: str = None, clock: Callable[[], float] = time.time) -> KeyValueStore:
    """Build a store backend by name ("sqlite" or "memory")."""
    if backend == "memory":
        return MemoryStore(clock=clock)
    if backend == "sqlite":
        return SQLiteStore(str(path) if path is not None else None, clock=clock)
    raise ValueError(f"unknown store backend {backend!r}")
