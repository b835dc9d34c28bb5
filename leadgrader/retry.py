"""
Retry utilities with exponential backoff for leadgrader.
Used around feed navigation, where Maps occasionally drops a request or
renders the results pane late.
"""

import time
import random
import logging
from typing import Callable, TypeVar, Tuple, Type

from .config import RetryConfig
from .maps_feed import FeedError

T = TypeVar("T")

FEED_FAULTS: Tuple[Type[Exception], ...] = (FeedError,)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Seconds to wait before retry number attempt + 1.

    base * exponential_base ** attempt, capped at max_delay_seconds,
    then spread by up to 25% either way when jitter is on.
    """
    delay = min(
        config.base_delay_seconds * (config.exponential_base ** attempt),
        config.max_delay_seconds,
    )
    if config.jitter:
        delay *= random.uniform(0.75, 1.25)
    return delay


def retry_with_backoff(
    func: Callable[[], T],
    config: RetryConfig,
    exceptions: Tuple[Type[Exception], ...] = FEED_FAULTS,
    logger: logging.Logger = None,
    operation_name: str = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call func until it succeeds or config.max_retries retries are used up.

    Only exceptions listed in exceptions are retried; by default that is
    a feed fault. Anything else propagates on the first occurrence. When
    retries run out the last fault is re-raised.
    """
    op_name = operation_name or getattr(func, "__name__", "operation")
    attempts = config.max_retries + 1

    for attempt in range(attempts):
        try:
            return func()
        except exceptions as e:
            if attempt == attempts - 1:
                if logger:
                    logger.error(f"{op_name} gave up after {attempts} attempts: {e}")
                raise

            delay = calculate_delay(attempt, config)
            if logger:
                logger.warning(
                    f"{op_name} failed ({attempt + 1}/{attempts}): "
                    f"{type(e).__name__}: {e}. Retrying in {delay:.1f}s"
                )
            sleep(delay)
