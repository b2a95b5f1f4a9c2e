"""Linear backoff retry for async calls."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_linear_backoff(
    func: Callable[[], Awaitable[T]],
    attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``func`` up to ``attempts`` times.

    The wait before retry ``n`` (1-based) is ``base_delay * n``. The last
    exception is re-raised once attempts are exhausted.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return await func()
        except retry_on as e:
            if attempt == attempts:
                _logger.error(f"All {attempts} attempts failed: {str(e)}")
                raise
            delay = base_delay * attempt
            _logger.warning(f"Attempt {attempt} failed. Retrying in {delay}s. Error: {str(e)}")
            await sleep(delay)
