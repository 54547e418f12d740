"""Fixed-window rate limiter for anonymous generation traffic.

Counts admitted requests per client key in fixed windows (default 100
per 24h). Entries are created lazily, reset when their window expires,
and evicted by a periodic sweep.

All store access goes through one lock so that concurrent checks and
sweeps never lose updates.
"""

import math
import threading
import time
from typing import Callable, Dict, Mapping, Optional

import structlog

from notes_ai.models.config import RateLimitSettings
from notes_ai.models.rate_limit import RateLimitDecision, RateLimitEntry
from notes_ai.observability.metrics import RATE_LIMIT_DECISIONS, RATE_LIMIT_ENTRIES

logger = structlog.get_logger()

UNKNOWN_CLIENT = "unknown"


def client_key_from_headers(headers: Mapping[str, str]) -> str:
    """Derive the rate limit key from request headers.

    Uses the first X-Forwarded-For address, then X-Real-IP, then the
    shared "unknown" bucket.

    Args:
        headers: Case-insensitive header mapping (or lower-cased dict)
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return UNKNOWN_CLIENT


class RateLimiter:
    """Fixed-window request counter keyed by client identity."""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            max_requests: Admitted requests per window per key
            window_seconds: Window duration
            clock: Clock in seconds (monotonic by default)
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._store: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: RateLimitSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> "RateLimiter":
        return cls(
            max_requests=settings.max_requests,
            window_seconds=settings.window_seconds,
            clock=clock,
        )

    def check(self, client_key: str) -> RateLimitDecision:
        """Admit or deny one request for ``client_key``.

        Admitted requests increment the counter; denied requests do not.

        Returns:
            Decision with ``remaining`` (admitted) or
            ``retry_after_seconds`` (denied)
        """
        with self._lock:
            now = self._clock()
            entry = self._store.get(client_key)

            if entry is None or now - entry.window_start > self.window_seconds:
                entry = RateLimitEntry(count=0, window_start=now)
                self._store[client_key] = entry

            if entry.count >= self.max_requests:
                reset_at = entry.window_start + self.window_seconds
                retry_after = math.ceil(reset_at - now)
                decision = RateLimitDecision(
                    allowed=False,
                    limit=self.max_requests,
                    retry_after_seconds=retry_after,
                )
            else:
                entry.count += 1
                decision = RateLimitDecision(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - entry.count,
                )

            RATE_LIMIT_ENTRIES.set(len(self._store))

        if decision.allowed:
            RATE_LIMIT_DECISIONS.labels(decision="allowed").inc()
        else:
            RATE_LIMIT_DECISIONS.labels(decision="denied").inc()
            logger.warning(
                "rate_limit_exceeded",
                client_key=client_key,
                retry_after_seconds=decision.retry_after_seconds,
            )
        return decision

    def sweep(self) -> int:
        """Evict entries whose window has fully expired.

        Returns:
            Number of evicted entries
        """
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, entry in self._store.items()
                if now - entry.window_start > self.window_seconds
            ]
            for key in expired:
                del self._store[key]
            remaining = len(self._store)
            RATE_LIMIT_ENTRIES.set(remaining)

        if expired:
            logger.info("rate_limit_sweep", evicted=len(expired), tracked=remaining)
        return len(expired)

    def get_entry(self, client_key: str) -> Optional[RateLimitEntry]:
        """Snapshot of the entry for ``client_key`` (None if untracked)."""
        with self._lock:
            entry = self._store.get(client_key)
            if entry is None:
                return None
            return RateLimitEntry(count=entry.count, window_start=entry.window_start)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


def rate_limit_headers(
    decision: RateLimitDecision,
    now: Optional[float] = None,
) -> Dict[str, str]:
    """Response headers describing a rate limit decision.

    Args:
        decision: Decision returned by RateLimiter.check
        now: Wall clock in seconds (time.time() if None)
    """
    headers = {"X-RateLimit-Limit": str(decision.limit)}
    if decision.allowed:
        headers["X-RateLimit-Remaining"] = str(decision.remaining or 0)
        return headers

    retry_after = decision.retry_after_seconds or 0
    wall_now = time.time() if now is None else now
    headers["Retry-After"] = str(retry_after)
    headers["X-RateLimit-Reset"] = str(int((wall_now + retry_after) * 1000))
    return headers
