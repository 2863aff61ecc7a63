import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class _Counter:
    attempts: int = 0
    lockout_until: float = 0.0


@dataclass(frozen=True)
class LockoutStatus:
    locked: bool
    minutes_remaining: int = 0


class LoginAttemptLimiter:
    """Consecutive failed-login counter per username, local to this process.

    Every read-modify-write happens under one lock so concurrent failures for
    the same username are each counted once and the switch into lockout is
    decided from a single consistent view of the counter.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        lockout: timedelta = timedelta(minutes=10),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout.total_seconds()
        self._clock = clock
        self._lock = threading.Lock()
        self._counters: dict[str, _Counter] = {}

    def _status(self, counter: _Counter | None, now: float) -> LockoutStatus:
        if counter is None or counter.lockout_until <= now:
            return LockoutStatus(locked=False)
        remaining = counter.lockout_until - now
        return LockoutStatus(locked=True, minutes_remaining=max(1, math.ceil(remaining / 60)))

    def before_attempt(self, username: str) -> LockoutStatus:
        now = self._clock()
        with self._lock:
            return self._status(self._counters.get(username), now)

    def record_failure(self, username: str) -> LockoutStatus:
        now = self._clock()
        with self._lock:
            counter = self._counters.setdefault(username, _Counter())
            counter.attempts += 1
            if counter.attempts < self.max_attempts:
                return LockoutStatus(locked=False)
            counter.attempts = 0
            counter.lockout_until = now + self.lockout_seconds
            status = self._status(counter, now)
        logger.warning("User %s locked out for %d minutes after repeated failures", username, status.minutes_remaining)
        return status

    def record_success(self, username: str) -> None:
        with self._lock:
            self._counters.pop(username, None)

    def attempts(self, username: str) -> int:
        with self._lock:
            counter = self._counters.get(username)
            return counter.attempts if counter else 0

    def prune(self) -> int:
        """Drop counters that hold neither failures nor an active lockout."""
        now = self._clock()
        with self._lock:
            stale = [name for name, c in self._counters.items() if c.attempts == 0 and c.lockout_until <= now]
            for name in stale:
                del self._counters[name]
        return len(stale)
