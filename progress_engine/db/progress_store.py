"""
Progress Store Adapter

Wraps a durable store holding one progress record per user and one
achievement record per (user, achievement). All mutations after
initialization go through ``run_progress_transaction``: the caller
supplies a pure function from a snapshot to the writes to apply, and
the adapter commits them all-or-nothing, re-running the function on
fresh state when a concurrent writer got there first.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from progress_engine.exceptions import ConflictError, ValidationError
from progress_engine import config
from progress_engine.gamification.catalog import AchievementCatalog, load_catalog
from progress_engine.models.achievement import (
    AchievementRecord,
    ProgressSnapshot,
    ProgressUpdate,
    UserProgress,
)
from progress_engine.resilience.metrics import record_conflict, record_transaction
from progress_engine.resilience.retry import retry_with_backoff

logger = logging.getLogger(__name__)

TransactionFn = Callable[[ProgressSnapshot], ProgressUpdate]


def validate_user_id(user_id: str) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id must be a non-empty string", field="user_id", value=user_id)
    return user_id


class ProgressStore(ABC):
    """Base class for progress store adapters"""

    def __init__(
        self,
        catalog: Optional[AchievementCatalog] = None,
        max_retries: Optional[int] = None
    ):
        """
        Args:
            catalog: Achievement definitions (defaults to ACHIEVEMENT_CATALOG_PATH, else the built-in catalog)
            max_retries: Conflict retries per transaction (defaults to TRANSACTION_MAX_RETRIES)
        """
        self.catalog = catalog if catalog is not None else load_catalog(config.ACHIEVEMENT_CATALOG_PATH)
        self.max_retries = max_retries

    @abstractmethod
    async def initialize_user_progress(self, user_id: str) -> bool:
        """
        Create zeroed progress and locked achievement records if absent

        Idempotent. Catalog entries added after a user was initialized
        get their locked record back-filled; existing records are left
        untouched.

        Returns:
            True if the progress record was created by this call
        """

    @abstractmethod
    async def get_user_progress(self, user_id: str) -> Optional[UserProgress]:
        """Current progress record, or None"""

    @abstractmethod
    async def get_achievement_records(self, user_id: str) -> dict[str, AchievementRecord]:
        """All achievement records for user, keyed by achievement id"""

    @abstractmethod
    async def _attempt_transaction(self, user_id: str, fn: TransactionFn, operation: str) -> ProgressUpdate:
        """
        One read-compute-commit attempt

        Raises:
            ConflictError: A concurrent transaction changed the user's records
        """

    async def run_progress_transaction(
        self,
        user_id: str,
        fn: TransactionFn,
        operation: str = "progress_transaction"
    ) -> ProgressUpdate:
        """
        Run ``fn`` against a snapshot of the user's state and commit its writes

        ``fn`` may be called more than once; it must not have side effects
        outside its return value.

        Args:
            user_id: User ID
            fn: Pure function snapshot -> ProgressUpdate
            operation: Name used in logs and metrics

        Returns:
            The committed ProgressUpdate

        Raises:
            ConflictError: Retries exhausted
            StoreUnavailableError: Store unreachable
            QueryError: Store rejected a statement
        """
        validate_user_id(user_id)
        return await retry_with_backoff(
            self._timed_attempt,
            user_id,
            fn,
            operation,
            max_retries=self.max_retries,
            operation=operation
        )

    async def _timed_attempt(self, user_id: str, fn: TransactionFn, operation: str) -> ProgressUpdate:
        started = time.perf_counter()
        try:
            update = await self._attempt_transaction(user_id, fn, operation)
        except ConflictError:
            record_conflict(operation)
            record_transaction(operation, "conflict", time.perf_counter() - started)
            raise
        except Exception:
            record_transaction(operation, "failed", time.perf_counter() - started)
            raise

        record_transaction(operation, "committed", time.perf_counter() - started)
        return update

    @staticmethod
    def _check_update(user_id: str, update: ProgressUpdate) -> None:
        if update.progress.user_id != user_id:
            raise ValidationError(
                f"Transaction for {user_id} produced progress for {update.progress.user_id}",
                field="user_id",
                value=update.progress.user_id
            )
