"""Retry loop shared by every vendor call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from jimeng_client.errors import JimengError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry a call and how long to wait in between."""
    max_retries: int
    delay: float
    max_delay: float | None = None
    exponential: bool = False

    def wait_for(self, failures: int) -> float:
        """Seconds to wait after the given number of failed attempts (1-based)."""
        if not self.exponential:
            return self.delay
        wait = self.delay * (2 ** (failures - 1))
        return min(wait, self.max_delay) if self.max_delay is not None else wait


def image_policy(retries: int) -> RetryPolicy:
    """Exponential backoff from 1s, capped at 10s."""
    return RetryPolicy(max_retries=retries, delay=1.0, max_delay=10.0, exponential=True)


def fixed_policy(delay: float, retries: int = 1) -> RetryPolicy:
    return RetryPolicy(max_retries=retries, delay=delay)


RATE_LIMIT_HINT = (
    "Request rate limited by the vendor. Wait a few minutes before submitting again; "
    "the video endpoints accept roughly one request per minute."
)


async def call_with_retry(
    label: str,
    policy: RetryPolicy,
    op: Callable[[], Awaitable[T]],
    sleep: Sleep,
) -> T:
    """Run ``op`` until it succeeds, fails with a non-retriable error or the budget runs out.

    The last error is re-raised; a rate-limit error carries a back-off hint.
    """
    attempts = max(policy.max_retries, 0) + 1
    for attempt in range(1, attempts + 1):
        try:
            return await op()
        except JimengError as e:
            if not e.retriable:
                raise
            logger.warning("%s attempt %d/%d failed: %s", label, attempt, attempts, e)
            if attempt >= attempts:
                if isinstance(e, RateLimitError):
                    raise RateLimitError(
                        f"{RATE_LIMIT_HINT} ({e.message})",
                        status_code=e.status_code,
                        code=e.code,
                    ) from e
                raise
            wait = policy.wait_for(attempt)
            logger.info("%s: retrying in %.1fs", label, wait)
            await sleep(wait)
