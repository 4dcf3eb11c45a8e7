"""
Streak Calculation

A streak counts consecutive calendar days with at least one completed
task. Day boundaries come from the injected clock's timezone.
"""

from typing import Optional
from datetime import datetime, timedelta
import logging

from progress_engine.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)


def compute_next_streak(
    last_completion_date: Optional[datetime],
    current_streak: int,
    clock: Clock,
    completed_at: Optional[datetime] = None
) -> int:
    """
    Streak value after a completion recorded at ``completed_at``

    Logic:
    - No previous completion: streak starts at 1
    - Previous completion today: unchanged (counted once per day)
    - Previous completion yesterday: streak continues (+1)
    - Any larger gap, or a last completion dated in the future: reset to 1

    Args:
        last_completion_date: When the previous completion was recorded
        current_streak: Streak before this completion
        clock: Resolves calendar days
        completed_at: When this completion happened (defaults to clock.now())

    Returns:
        New streak value
    """
    if last_completion_date is None:
        return 1

    today = clock.local_date(completed_at) if completed_at is not None else clock.today()
    last_day = clock.local_date(last_completion_date)

    if last_day == today:
        return current_streak

    if last_day == today - timedelta(days=1):
        return current_streak + 1

    if last_day > today:
        logger.warning(
            f"Last completion {last_completion_date.isoformat()} is after today ({today}), resetting streak"
        )
    return 1
