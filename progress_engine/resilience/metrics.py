"""Prometheus metrics for progress transactions

Exposes metrics for transaction outcomes, conflicts, retries,
processed completions and unlocked achievements.
"""

import logging
from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)

# Transactions counter
# Labels: operation (process_completion/record_quiz_passed/...), status (committed/conflict/failed)
progress_transactions_total = Counter(
    'progress_transactions_total',
    'Total number of progress transaction attempts',
    ['operation', 'status']
)

# Transaction duration histogram
progress_transaction_duration = Histogram(
    'progress_transaction_duration_seconds',
    'Duration of progress transaction attempts in seconds',
    ['operation'],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, float('inf'))
)

# Conflicts counter
progress_conflicts_total = Counter(
    'progress_conflicts_total',
    'Total number of progress transaction conflicts',
    ['operation']
)

# Retry attempts counter
progress_retries_total = Counter(
    'progress_retries_total',
    'Total number of progress transaction retries',
    ['operation']
)

# Completion events counter
# Labels: verified (true/false), perfect_day (true/false)
completions_processed_total = Counter(
    'completions_processed_total',
    'Total number of processed task completion events',
    ['verified', 'perfect_day']
)

# Unlocks counter
achievements_unlocked_total = Counter(
    'achievements_unlocked_total',
    'Total number of achievements unlocked',
    ['achievement_id']
)


def record_transaction(operation: str, status: str, duration: float) -> None:
    """
    Record a progress transaction attempt.

    Args:
        operation: Operation name (process_completion, record_quiz_passed, ...)
        status: committed, conflict or failed
        duration: Attempt duration in seconds
    """
    try:
        progress_transactions_total.labels(operation=operation, status=status).inc()
        progress_transaction_duration.labels(operation=operation).observe(duration)
        logger.debug(f"[METRICS] Transaction {operation}: {status}, duration: {duration:.3f}s")
    except Exception as e:
        logger.error(f"Failed to record transaction metrics: {e}")


def record_conflict(operation: str) -> None:
    """Record a transaction conflict."""
    try:
        progress_conflicts_total.labels(operation=operation).inc()
        logger.debug(f"[METRICS] Conflict in {operation}")
    except Exception as e:
        logger.error(f"Failed to record conflict: {e}")


def record_retry(operation: str) -> None:
    """Record a retry attempt."""
    try:
        progress_retries_total.labels(operation=operation).inc()
        logger.debug(f"[METRICS] Retry attempt for {operation}")
    except Exception as e:
        logger.error(f"Failed to record retry: {e}")


def record_completion(verified: bool, perfect_day: bool) -> None:
    """Record a committed completion event."""
    try:
        completions_processed_total.labels(
            verified=str(verified).lower(),
            perfect_day=str(perfect_day).lower()
        ).inc()
    except Exception as e:
        logger.error(f"Failed to record completion: {e}")


def record_achievement_unlocked(achievement_id: str) -> None:
    """Record an achievement unlock."""
    try:
        achievements_unlocked_total.labels(achievement_id=achievement_id).inc()
        logger.debug(f"[METRICS] Achievement unlocked: {achievement_id}")
    except Exception as e:
        logger.error(f"Failed to record achievement unlock: {e}")
