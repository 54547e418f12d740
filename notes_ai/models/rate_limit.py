"""Rate limiting data models

Defines the fixed-window counter entry owned by the rate limiter store
and the decision returned for each inbound request.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class RateLimitEntry:
    """Counter for one client key within the current window.

    Attributes:
        count: Requests admitted in the current window
        window_start: Clock reading (seconds) when the window started
    """

    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check.

    Admitted requests carry ``remaining``; denied requests carry
    ``retry_after_seconds``.
    """

    allowed: bool
    limit: int
    remaining: Optional[int] = None
    retry_after_seconds: Optional[int] = None
