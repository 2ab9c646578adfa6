"""Retry with linear backoff for transient external failures"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar
import logging

from .errors import TransferError

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def retry_operation(operation: Callable[[], Awaitable[T]],
                          max_attempts: int = 3,
                          delay: float = 1.0) -> T:
    """
    Await `operation()` up to `max_attempts` times, sleeping
    `delay * attempt` seconds between tries.

    TransferErrors that describe the data itself (integrity, missing
    chunks, malformed records) are raised on the first attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except TransferError as e:
            if not e.transient:
                raise
            last_error = e
        except Exception as e:
            last_error = e

        if attempt == max_attempts:
            break

        logger.warning(f"Attempt {attempt}/{max_attempts} failed: {last_error}")
        await asyncio.sleep(delay * attempt)

    raise last_error
