"""Per-scope quota circuit breaker.

Once every candidate of a scope has come back rate-limited, further calls
for that scope are short-circuited until the breaker's ``until`` passes.
Breakers live in a ``BreakerRegistry`` owned by the application
(``app.state.ai_breakers``) and are handed to each generation client.
"""

from __future__ import annotations

import logging
import math
from threading import Lock

logger = logging.getLogger(__name__)


class CircuitBreaker:
    def __init__(self, scope: str) -> None:
        self.scope = scope
        self._until: float | None = None
        self._lock = Lock()

    @property
    def until(self) -> float | None:
        return self._until

    def is_open(self, now: float) -> bool:
        with self._lock:
            if self._until is None:
                return False
            if now >= self._until:
                self._until = None
                return False
            return True

    def remaining_seconds(self, now: float) -> int:
        with self._lock:
            if self._until is None or now >= self._until:
                return 0
            return int(math.ceil(self._until - now))

    def trip(self, seconds: float, now: float) -> None:
        if seconds <= 0:
            return
        with self._lock:
            until = now + seconds
            # Never shorten an existing block.
            if self._until is None or until > self._until:
                self._until = until
        logger.warning("AI scope %r blocked for %.0fs after quota exhaustion", self.scope, seconds)

    def reset(self) -> None:
        with self._lock:
            self._until = None


class BreakerRegistry:
    def __init__(self) -> None:
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = Lock()

    def get(self, scope: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(scope)
            if breaker is None:
                breaker = CircuitBreaker(scope)
                self._breakers[scope] = breaker
            return breaker

    def reset(self) -> None:
        with self._lock:
            for breaker in self._breakers.values():
                breaker.reset()
