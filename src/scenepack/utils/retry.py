"""Retry helpers for provider calls."""

import asyncio
import functools
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_async(
    max_retries: int = 3,
    delay: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] | None = None,
):
    """Retry an async callable with a fixed delay between attempts.

    The wrapped call runs once plus up to ``max_retries`` more times. Any
    exception triggers a retry; the last one propagates unchanged.

    Args:
        max_retries: Additional attempts after the first failure
        delay: Seconds to wait before each retry
        sleep: Awaitable sleep used between attempts (defaults to asyncio.sleep)
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            do_sleep = sleep or asyncio.sleep
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if attempt >= max_retries:
                        logger.error(
                            f"{func.__name__} failed after {attempt + 1} attempts: {e}"
                        )
                        raise
                    attempt += 1
                    logger.warning(
                        f"{func.__name__} failed ({e}), retry {attempt}/{max_retries} "
                        f"in {delay}s"
                    )
                    await do_sleep(delay)

        return wrapper

    return decorator


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> T:
    """Run ``func`` under :func:`retry_async` without decorating it."""
    wrapped = retry_async(max_retries=max_retries, delay=delay, sleep=sleep)(func)
    return await wrapped()
