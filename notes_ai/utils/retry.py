"""Retry Handler Utility

Implements bounded exponential backoff for transient generation failures.

Features:
- Attempts 0..=retry_attempts (retry_attempts=2 means up to 3 tries)
- Exponential backoff: delay = retry_delay_seconds * 2^attempt
- Optional jitter and max delay cap
- Retry decisions read GenerationError.retryable only
- Built-in structured logging and metrics for observability
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from notes_ai.models.llm import RetryConfig
from notes_ai.observability.metrics import LLM_RETRIES_TOTAL
from notes_ai.services.llm.exceptions import GenerationError

logger = structlog.get_logger(__name__)


T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class RetryHandler:
    """Async retry handler with exponential backoff.

    Runs the wrapped call sequentially; two attempts never overlap.
    The backoff suspension is an ``asyncio.sleep`` and is cancelled
    together with the caller's task.
    """

    def __init__(
        self,
        config: RetryConfig,
        sleep: Optional[SleepFunc] = None,
    ) -> None:
        """Initialize retry handler with configuration.

        Args:
            config: Retry configuration with attempts, delays, and jitter
            sleep: Awaitable sleep used between attempts (default asyncio.sleep)
        """
        self.config = config
        self._sleep: SleepFunc = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        """Total tries including the initial attempt."""
        return self.config.retry_attempts + 1

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay before the attempt following ``attempt``.

        Uses exponential backoff with optional jitter:
        - Base delay: config.retry_delay_seconds * 2^attempt
        - Jitter: ±config.jitter_factor of base delay
        - Cap: config.max_delay_seconds

        Args:
            attempt: Attempt that just failed (0-indexed)

        Returns:
            Delay in seconds to wait before next attempt
        """
        base_delay = self.config.retry_delay_seconds * (2**attempt)

        if self.config.jitter_factor > 0:
            jitter = base_delay * self.config.jitter_factor
            base_delay = base_delay + random.uniform(-jitter, jitter)

        return max(0.0, min(base_delay, self.config.max_delay_seconds))

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        on_retry: Optional[Callable[[int, GenerationError, float], None]] = None,
    ) -> T:
        """Execute function with retry logic.

        Args:
            func: Async function performing one attempt
            on_retry: Optional callback called before each retry with
                     (attempt_number, error, delay_seconds)

        Returns:
            Result of successful function execution

        Raises:
            GenerationError: Non-retryable error, or the last error once
                attempts are exhausted
        """
        attempt = 0
        while True:
            try:
                return await func()
            except GenerationError as e:
                if not e.retryable:
                    raise

                if attempt >= self.config.retry_attempts:
                    logger.warning(
                        "retry_exhausted",
                        attempts=attempt + 1,
                        error_kind=e.kind.value,
                        error_message=str(e),
                    )
                    raise

                delay = self.calculate_delay(attempt)

                logger.warning(
                    "retry_attempt",
                    attempt=attempt + 1,
                    max_attempts=self.max_attempts,
                    error_kind=e.kind.value,
                    error_message=str(e),
                    delay_seconds=delay,
                )
                LLM_RETRIES_TOTAL.labels(error_kind=e.kind.value).inc()

                if on_retry is not None:
                    on_retry(attempt + 1, e, delay)

                await self._sleep(delay)
                attempt += 1
