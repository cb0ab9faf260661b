import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from features.config import Config

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def retry(
    operation: Callable[[], Awaitable[T]],
    attempts: int = Config.RETRY_ATTEMPTS,
    delay: float = Config.RETRY_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    Run operation up to `attempts` times.

    After the Nth failure waits delay * N before the next try. The last
    exception is re-raised unchanged once attempts are exhausted.
    """
    attempts = max(1, attempts)
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            if attempt < attempts:
                wait_time = delay * attempt
                logger.warning(f"Retry {attempt}/{attempts} after {wait_time}s: {e}")
                await sleep(wait_time)

    raise last_error
