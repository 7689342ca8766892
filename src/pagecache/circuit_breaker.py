"""Circuit breaker for key-value store access."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional


@dataclass
class BreakerState:
    failures: int = 0
    tripped_until: float = 0.0
    last_error: Optional[str] = None

    def reset(self) -> None:
        self.failures = 0
        self.tripped_until = 0.0
        self.last_error = None


class CircuitBreakerStore:
    def __init__(self, max_failures: int = 3, ttl_sec: int = 30, clock: Callable[[], float] = time.time) -> None:
        self._max_failures = max_failures
        self._ttl_sec = ttl_sec
        self._clock = clock
        self._lock = threading.Lock()
        self._store: Dict[str, BreakerState] = {}

    def _get(self, key: str) -> BreakerState:
        # Callers hold self._lock
        return self._store.setdefault(key, BreakerState())

    def can_attempt(self, key: str) -> bool:
        with self._lock:
            state = self._get(key)
            return self._clock() >= state.tripped_until

    def record_success(self, key: str) -> None:
        with self._lock:
            self._get(key).reset()

    def record_failure(self, key: str, error: Optional[str] = None) -> bool:
        """Count a failure; return True when this failure trips the breaker."""
        with self._lock:
            state = self._get(key)
            state.failures += 1
            state.last_error = error
            if state.failures >= self._max_failures:
                state.tripped_until = self._clock() + self._ttl_sec
                state.failures = 0
                return True
            return False

    def get_state(self, key: str) -> BreakerState:
        with self._lock:
            return self._get(key)
