"""Retry policy for outbound chat messages."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_SECONDS = 1.0
DEFAULT_RATE_LIMIT_MARGIN_SECONDS = 1.0


class DeliveryError(RuntimeError):
    """Raised when the chat channel rejects or fails a send.

    `retry_after` carries the wait (in seconds) the channel asked for when it
    rate-limited the call.
    """

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    @property
    def is_rate_limited(self) -> bool:
        return self.retry_after is not None


class DeliveryRetrier:
    """Retry an async send with rate-limit awareness and exponential backoff.

    A rate-limited failure waits the requested time plus a safety margin and
    does not grow the backoff; any other failure waits
    `base_delay * 2 ** (n - 1)` for its n-th occurrence. Every failure counts
    toward `max_attempts`, after which the last error is re-raised.
    """

    def __init__(
        self,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        rate_limit_margin: float = DEFAULT_RATE_LIMIT_MARGIN_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.rate_limit_margin = rate_limit_margin
        self._sleep = sleep

    async def run(self, operation: Callable[[], Awaitable[T]], name: str = "send") -> T:
        """Await *operation* until it succeeds or the attempts run out."""
        backoff_failures = 0

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except DeliveryError as exc:
                if attempt == self.max_attempts:
                    logger.error("%s failed after %d attempts: %s", name, attempt, exc)
                    raise

                if exc.retry_after is not None:
                    wait = exc.retry_after + self.rate_limit_margin
                    logger.debug("%s rate limited; waiting %.1fs before retry", name, wait)
                else:
                    backoff_failures += 1
                    wait = self.base_delay * 2 ** (backoff_failures - 1)
                    logger.debug(
                        "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                        name,
                        attempt,
                        self.max_attempts,
                        exc,
                        wait,
                    )
                await self._sleep(wait)

        raise AssertionError("unreachable")  # pragma: no cover
