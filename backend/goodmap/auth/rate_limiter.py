import hashlib
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from goodmap.core.config import settings


@dataclass
class _AttemptLog:
    failures: List[float] = field(default_factory=list)
    locked_until: Optional[float] = None


class RateLimiter:
    """Thread-safe admin login limiter with lockout.

    Failed attempts are tracked per email (hashed, so raw addresses are not
    kept in memory). Reaching ``login_attempts_limit`` failures inside
    ``window_seconds`` locks the email out for ``lockout_minutes``.
    """

    def __init__(
        self,
        login_attempts_limit: int = 5,
        lockout_minutes: int = 5,
        window_seconds: float = 300,
        clock: Callable[[], float] = time.time
    ):
        self._lock = threading.Lock()
        self._logs: Dict[str, _AttemptLog] = {}
        self._clock = clock

        self.login_attempts_limit = login_attempts_limit
        self.lockout_seconds = lockout_minutes * 60
        self.window_seconds = window_seconds

    @staticmethod
    def _key(email: str) -> str:
        return hashlib.sha256(email.strip().lower().encode()).hexdigest()[:16]

    def check_login_attempts(self, email: str) -> Tuple[bool, Optional[datetime]]:
        """Return ``(allowed, locked_until)`` for the next login attempt."""
        now = self._clock()
        with self._lock:
            key = self._key(email)
            log = self._logs.get(key)
            if log is None:
                return True, None

            if log.locked_until is not None:
                if now < log.locked_until:
                    return False, datetime.fromtimestamp(log.locked_until)
                # Lockout over, start counting from scratch
                del self._logs[key]
                return True, None

            log.failures = [t for t in log.failures if t > now - self.window_seconds]
            if not log.failures:
                del self._logs[key]
                return True, None
            if len(log.failures) < self.login_attempts_limit:
                return True, None

            log.locked_until = now + self.lockout_seconds
            return False, datetime.fromtimestamp(log.locked_until)

    def record_login_attempt(self, email: str, success: bool):
        """Successful logins wipe the history; failures are timestamped."""
        now = self._clock()
        with self._lock:
            key = self._key(email)
            if success:
                self._logs.pop(key, None)
            else:
                self._prune_locked(now)
                self._logs.setdefault(key, _AttemptLog()).failures.append(now)

    def _is_stale(self, log: _AttemptLog, now: float) -> bool:
        if log.locked_until is not None and now < log.locked_until:
            return False
        return all(t <= now - self.window_seconds for t in log.failures)

    def _prune_locked(self, now: float):
        """Forget emails with no failures in the window and no active lockout."""
        stale = [key for key, log in self._logs.items() if self._is_stale(log, now)]
        for key in stale:
            del self._logs[key]

    def reset(self):
        with self._lock:
            self._logs.clear()

    def get_stats(self) -> Dict[str, int]:
        """Get rate limiter statistics."""
        now = self._clock()
        with self._lock:
            self._prune_locked(now)
            return {
                "tracked_emails": len(self._logs),
                "active_lockouts": sum(
                    1 for log in self._logs.values() if log.locked_until is not None and log.locked_until > now
                ),
                "failed_attempts": sum(len(log.failures) for log in self._logs.values())
            }


# Global rate limiter instance
rate_limiter = RateLimiter(
    login_attempts_limit=settings.max_login_attempts,
    lockout_minutes=settings.lockout_duration_minutes,
)
