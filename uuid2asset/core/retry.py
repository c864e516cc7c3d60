"""
Retry policy used by the download engine for transient failures.
"""

import asyncio
import logging

log = logging.getLogger(__name__)


class RetryPolicy:
    """
    Decides whether and how long to wait before retrying a failed fetch.

    The default retries forever at a fixed interval. Setting `max_attempts`
    bounds the number of tries, and a `backoff_factor` above 1.0 grows the
    delay exponentially up to `max_delay`.
    """

    def __init__(
        self,
        delay: float = 5.0,
        max_attempts: int | None = None,
        backoff_factor: float = 1.0,
        max_delay: float | None = None,
    ):
        """
        Args:
            delay: Delay in seconds before the first retry.
            max_attempts: Total tries per task, or None to retry indefinitely.
            backoff_factor: Delay multiplier applied for each further retry.
            max_delay: Upper bound for the delay, if any.
        """
        self.delay = delay
        self.max_attempts = max_attempts
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay

    @property
    def is_unbounded(self) -> bool:
        return self.max_attempts is None

    def should_retry(self, attempt: int) -> bool:
        """Returns True if another try is allowed after `attempt` tries failed."""
        return self.max_attempts is None or attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Returns the wait in seconds after the given (1-based) failed attempt."""
        delay = self.delay * (self.backoff_factor ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    async def wait(self, attempt: int) -> None:
        await asyncio.sleep(self.delay_for(attempt))

    def __repr__(self) -> str:
        limit = "unbounded" if self.max_attempts is None else self.max_attempts
        return (
            f"RetryPolicy(delay={self.delay}, max_attempts={limit}, "
            f"backoff_factor={self.backoff_factor})"
        )
