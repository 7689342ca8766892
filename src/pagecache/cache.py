#!/usr/bin/env python3
"""
Variant Cache
Rendered pages keyed by fingerprint, in one reserved namespace.

Implements:
- get(fingerprint) → payload | None
- set(fingerprint, payload, ttl)
- clear_namespace()
- clear_expired()
- get_stats() → {hits, misses, writes, evictions, errors}
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

from .circuit_breaker import CircuitBreakerStore
from .store import KeyValueStore, StoreUnavailable

logger = logging.getLogger(__name__)

HOST_NAMESPACE = "default"
BREAKER_KEY = "store"


class VariantCache:
    """
    Namespaced view over a key-value store.

    Design principles:
    - Graceful degradation: a failed read is a miss, a failed write is dropped
    - Namespace isolation: clearing the host cache leaves this one alone,
      and clearing this one never touches the host's entries
    - Repeated store failures trip a breaker so requests stop waiting on it
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = "resource_custom",
        ttl: int = 0,
        breaker: Optional[CircuitBreakerStore] = None,
    ):
        if not namespace or namespace == HOST_NAMESPACE:
            raise ValueError(f"namespace must be non-empty and differ from {HOST_NAMESPACE!r}")
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")

        self.store = store
        self.namespace = namespace
        self.ttl = ttl
        self.breaker = breaker or CircuitBreakerStore()
        self._stats_lock = threading.Lock()

        self.stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "evictions": 0,
            "errors": 0,
            "skipped": 0,
            "start_time": time.time(),
        }

    def _count(self, name: str, amount: int = 1) -> None:
        with self._stats_lock:
            self.stats[name] += amount

    def _available(self, operation: str) -> bool:
        if self.breaker.can_attempt(BREAKER_KEY):
            return True
        self._count("skipped")
        logger.debug(f"Store breaker open, skipping {operation} in {self.namespace}")
        return False

    def _record_failure(self, operation: str, error: Exception) -> None:
        self._count("errors")
        logger.warning(f"Variant cache {operation} error in {self.namespace}: {error}")
        if self.breaker.record_failure(BREAKER_KEY, str(error)):
            logger.warning(f"Store breaker tripped for {self.namespace}")

    def get(self, fingerprint: str) -> Optional[str]:
        """Return the cached payload, or None on miss or store failure."""
        if not self._available("get"):
            self._count("misses")
            return None

        try:
            payload = self.store.get(self.namespace, fingerprint)
        except StoreUnavailable as e:
            self._record_failure("get", e)
            self._count("misses")
            return None

        self.breaker.record_success(BREAKER_KEY)
        if payload is None:
            self._count("misses")
            return None

        self._count("hits")
        return payload

    def set(self, fingerprint: str, payload: str, ttl: Optional[int] = None) -> bool:
        """
        Store payload under fingerprint, overwriting any previous entry.

        Args:
            fingerprint: Key built by FingerprintBuilder
            payload: Rendered output
            ttl: Seconds to live; None uses the cache default, 0 never expires

        Returns:
            True on success, False when the write was dropped
        """
        ttl = self.ttl if ttl is None else ttl
        if not self._available("set"):
            return False

        try:
            self.store.set(self.namespace, fingerprint, payload, ttl)
        except StoreUnavailable as e:
            self._record_failure("set", e)
            return False

        self.breaker.record_success(BREAKER_KEY)
        self._count("writes")
        logger.debug(f"Cached {fingerprint} in {self.namespace} (ttl={ttl}s)")
        return True

    def clear_namespace(self) -> int:
        """Remove every entry in the namespace; returns the number removed."""
        try:
            cleared = self.store.clear_namespace(self.namespace)
        except StoreUnavailable as e:
            self._record_failure("clear", e)
            return 0

        self._count("evictions", cleared)
        logger.info(f"Cleared {cleared} cache entries from {self.namespace}")
        return cleared

    def clear_expired(self) -> int:
        """Remove expired entries. Should be called periodically."""
        try:
            cleared = self.store.clear_expired()
        except StoreUnavailable as e:
            self._record_failure("clear_expired", e)
            return 0

        if cleared > 0:
            self._count("evictions", cleared)
            logger.info(f"Cleared {cleared} expired cache entries")
        return cleared

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._stats_lock:
            stats = dict(self.stats)
        total_requests = stats["hits"] + stats["misses"]
        hit_rate = (stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            "namespace": self.namespace,
            "hits": stats["hits"],
            "misses": stats["misses"],
            "hit_rate_percent": round(hit_rate, 1),
            "total_requests": total_requests,
            "writes": stats["writes"],
            "evictions": stats["evictions"],
            "errors": stats["errors"],
            "skipped": stats["skipped"],
            "uptime_seconds": int(time.time() - stats["start_time"]),
        }
