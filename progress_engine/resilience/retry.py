"""Retry logic with exponential backoff and jitter

Implements retry logic for progress transactions that:
1. Only retries transient errors (write conflicts, serialization failures)
2. Uses exponential backoff with jitter so racing writers spread out
3. Gives up after max retries to avoid infinite loops
"""

import asyncio
import random
import logging
from typing import Callable, Any, Optional, TypeVar

from progress_engine import config
from progress_engine.exceptions import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Retry configuration
MAX_RETRIES = config.TRANSACTION_MAX_RETRIES
BASE_DELAY = config.TRANSACTION_RETRY_BASE_DELAY  # seconds
MAX_DELAY = 2.0  # seconds
JITTER = 0.1  # 10% random jitter


def is_retryable_error(exc: Exception) -> bool:
    """
    Determine if error is transient and should be retried.

    Retryable errors:
    - ConflictError (another transaction touched the same user's records)
    - psycopg serialization failures / deadlocks not yet wrapped

    Non-retryable errors:
    - Store unavailable
    - Query / validation errors

    Args:
        exc: The exception to check

    Returns:
        True if error should be retried, False otherwise
    """
    if isinstance(exc, ConflictError):
        return True

    # Raw driver errors (check by class name to avoid import)
    if exc.__class__.__name__ in ['SerializationFailure', 'DeadlockDetected']:
        return True

    return False


def calculate_backoff(attempt: int) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Formula: delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY) + jitter
    Jitter is random value between -10% and +10% of delay

    Args:
        attempt: The retry attempt number (0-indexed)

    Returns:
        Delay in seconds
    """
    delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)

    jitter_amount = random.uniform(-JITTER * delay, JITTER * delay)
    final_delay = delay + jitter_amount

    return max(final_delay, 0.0)


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: Optional[int] = None,
    operation: Optional[str] = None,
    **kwargs: Any
) -> T:
    """
    Retry async function with exponential backoff.

    Only retries transient errors. Gives up after max_retries attempts.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts (default: MAX_RETRIES)
        operation: Name used in logs and metrics (default: func.__name__)
        *args, **kwargs: Arguments to pass to func

    Returns:
        Result from func

    Raises:
        Last exception if all retries exhausted or non-retryable error

    Example:
        update = await retry_with_backoff(store._attempt, user_id, fn, max_retries=5)
    """
    if max_retries is None:
        max_retries = MAX_RETRIES
    name = operation or func.__name__

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if not is_retryable_error(e):
                raise

            if attempt == max_retries:
                logger.error(
                    f"[RETRY] All {max_retries} retries exhausted for {name}"
                )
                raise

            backoff = calculate_backoff(attempt)

            from progress_engine.resilience.metrics import record_retry
            record_retry(name)

            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_retries} for {name} "
                f"after {backoff:.3f}s (error: {type(e).__name__})"
            )

            await asyncio.sleep(backoff)

    raise RuntimeError("Retry logic failed unexpectedly")
