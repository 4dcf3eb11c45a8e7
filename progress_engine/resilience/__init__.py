"""Resilience patterns for progress store transactions

Retry logic for conflicting transactions and metrics collection.
"""

from progress_engine.resilience.retry import retry_with_backoff, is_retryable_error
from progress_engine.resilience.metrics import (
    record_transaction,
    record_conflict,
    record_retry,
    record_completion,
    record_achievement_unlocked,
)

__all__ = [
    # Retry
    "retry_with_backoff",
    "is_retryable_error",
    # Metrics
    "record_transaction",
    "record_conflict",
    "record_retry",
    "record_completion",
    "record_achievement_unlocked",
]
