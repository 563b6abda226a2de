"""
Backoff and retry for exchange calls and stream reconnects.

`ExponentialBackoff` only computes delays; callers own the loop. The REST
client wraps single requests with `retry_async`, and the trade stream asks
the same calculator how long to wait before the next connect.
"""

import asyncio
import functools
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)

JITTER_FRACTION = 0.25


class RetryError(Exception):
    """A retried call kept failing. `last_exception` holds the final cause."""

    def __init__(self, message: str, last_exception: BaseException):
        super().__init__(message)
        self.last_exception = last_exception


@dataclass(frozen=True)
class ExponentialBackoff:
    """
    Delay before retry number `attempt` (0-based):

        min(base * multiplier ** attempt, max_delay)

    spread by up to ±25% when `jitter` is on, never negative.
    """

    base: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    jitter: bool = True

    def calculate(self, attempt: int) -> float:
        delay = min(self.base * self.multiplier**attempt, self.max_delay)
        if self.jitter:
            delay *= 1.0 + random.uniform(-JITTER_FRACTION, JITTER_FRACTION)
        return max(0.0, delay)


AsyncFn = Callable[..., Awaitable[Any]]


def retry_async(
    max_attempts: int = 3,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    backoff: Optional[ExponentialBackoff] = None,
) -> Callable[[AsyncFn], AsyncFn]:
    """
    Retry an async callable while it raises one of `exceptions`.

    Other errors propagate on the spot. Once `max_attempts` calls have
    failed the last error is wrapped in `RetryError`.

    Example:
        >>> fetch = retry_async(max_attempts=2, exceptions=RETRYABLE_ERRORS)(fetcher._request_once)
        >>> data = await fetch(url, params)
    """
    delays = backoff or ExponentialBackoff()

    def decorator(func: AsyncFn) -> AsyncFn:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    attempt += 1
                    if attempt >= max_attempts:
                        message = f"{func.__name__} failed after {attempt} attempts. Last error: {e}"
                        logger.error(message)
                        raise RetryError(message, e) from e

                    delay = delays.calculate(attempt - 1)
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_attempts} failed ({e}), "
                        f"retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
