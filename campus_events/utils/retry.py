"""
Retry with exponential backoff for units of work that lose an optimistic race.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from ..utils.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """How often and how patiently a unit of work is re-run."""
    max_attempts: int = 3
    base_delay: float = 0.05
    max_delay: float = 1.0
    exponential_base: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given 0-based failed attempt."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            # Spread writers that lost the same race.
            delay *= 0.5 + random.random() * 0.5
        return delay


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    retryable_exceptions: Tuple[Type[BaseException], ...] = (ConcurrencyError,),
) -> T:
    """
    Await ``func`` until it succeeds or ``config.max_attempts`` runs fail.

    Only ``retryable_exceptions`` trigger another run; anything else, and the
    last retryable failure, propagates unchanged.
    """
    name = getattr(func, "__name__", repr(func))
    attempt = 0
    while True:
        try:
            result = await func()
        except retryable_exceptions as e:
            if attempt + 1 >= config.max_attempts:
                logger.error(f"{name} failed after {config.max_attempts} attempts: {e}")
                raise
            delay = config.delay_for(attempt)
            logger.warning(f"{name} attempt {attempt + 1} failed ({e}); retrying in {delay:.2f}s")
            attempt += 1
            await asyncio.sleep(delay)
        else:
            if attempt:
                logger.info(f"{name} succeeded on attempt {attempt + 1}")
            return result
