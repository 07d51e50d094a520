"""Exponential backoff for adapter calls."""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, TypeVar

from ..exceptions import TransientServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_attempts: int = 3,
    base_delay: float = 2.0,
    retry_on: tuple[type[BaseException], ...] = (TransientServiceError,),
    **kwargs: Any,
) -> T:
    """Execute a function, retrying retryable failures with exponential backoff.

    The delay before retry ``n`` (0-based) is ``base_delay * 2 ** n``.
    Exceptions not listed in ``retry_on`` propagate immediately.

    Args:
        func: Function to execute (sync or async).
        *args: Positional arguments for the function.
        max_attempts: Total number of attempts, including the first.
        base_delay: Delay in seconds before the first retry.
        retry_on: Exception types that are worth retrying.
        **kwargs: Keyword arguments for the function.

    Returns:
        The function result on success.

    Raises:
        The last exception if all attempts fail.
    """
    last_exception: Optional[BaseException] = None

    for attempt in range(max_attempts):
        try:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result
        except retry_on as e:
            last_exception = e
            if attempt < max_attempts - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    "Attempt %d/%d failed: %s. Retrying in %.1fs...",
                    attempt + 1,
                    max_attempts,
                    str(e),
                    delay,
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    "All %d attempts failed. Last error: %s",
                    max_attempts,
                    str(e),
                )

    if last_exception is None:
        raise ValueError("max_attempts must be at least 1")
    raise last_exception
