"""Async utility functions and helpers."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

from .logging import get_structured_logger

logger = get_structured_logger(__name__)

T = TypeVar("T")


async def retry_async(
    coro_factory: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,),
) -> T:
    """Retry an async callable with exponential backoff.

    ``coro_factory`` is called once per attempt so that every attempt gets a
    fresh coroutine. Exceptions not listed in ``exceptions`` propagate
    immediately.
    """
    last_exception: Optional[BaseException] = None
    current_delay = delay

    for attempt in range(max_retries + 1):
        try:
            return await coro_factory()
        except exceptions as e:
            last_exception = e

            if attempt == max_retries:
                logger.error(f"All {max_retries + 1} attempts failed")
                break

            logger.warning(
                f"Attempt {attempt + 1} failed, retrying in {current_delay}s: {str(e)}"
            )
            await asyncio.sleep(current_delay)
            current_delay *= backoff_factor

    raise last_exception
