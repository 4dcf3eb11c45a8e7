"""
In-memory progress store

Optimistic concurrency: every user has a version number that each
commit bumps. A transaction remembers the version it read and fails
with ConflictError if it changed before commit. Nothing is persisted
across process restarts.
"""

import asyncio
import logging
from typing import Optional

from progress_engine.db.progress_store import ProgressStore, TransactionFn, validate_user_id
from progress_engine.exceptions import ConflictError
from progress_engine.models.achievement import (
    AchievementRecord,
    ProgressSnapshot,
    ProgressUpdate,
    UserProgress,
)
from progress_engine.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


class InMemoryProgressStore(ProgressStore):
    """Process-local progress store with optimistic versioning"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._progress: dict[str, UserProgress] = {}
        self._records: dict[str, dict[str, AchievementRecord]] = {}
        self._versions: dict[str, int] = {}
        self._lock = asyncio.Lock()

    def version(self, user_id: str) -> int:
        return self._versions.get(user_id, 0)

    async def initialize_user_progress(self, user_id: str) -> bool:
        validate_user_id(user_id)
        async with self._lock:
            created = user_id not in self._progress
            if created:
                self._progress[user_id] = UserProgress(user_id=user_id, last_updated=now_utc())

            records = self._records.setdefault(user_id, {})
            missing = [d for d in self.catalog if d.id not in records]
            for definition in missing:
                records[definition.id] = AchievementRecord.locked(definition)

            if created or missing:
                self._versions[user_id] = self.version(user_id) + 1

        if created:
            logger.info(f"Initialized progress for user {user_id} with {len(missing)} achievements")
        elif missing:
            logger.info(f"Back-filled {len(missing)} achievement records for user {user_id}")
        return created

    async def get_user_progress(self, user_id: str) -> Optional[UserProgress]:
        progress = self._progress.get(user_id)
        return progress.model_copy() if progress else None

    async def get_achievement_records(self, user_id: str) -> dict[str, AchievementRecord]:
        return {
            key: record.model_copy()
            for key, record in self._records.get(user_id, {}).items()
        }

    async def _attempt_transaction(self, user_id: str, fn: TransactionFn, operation: str) -> ProgressUpdate:
        read_version = self.version(user_id)
        snapshot = ProgressSnapshot(
            user_id=user_id,
            progress=await self.get_user_progress(user_id),
            records=await self.get_achievement_records(user_id),
        )

        # Stand-in for the store round-trip; lets racing transactions interleave
        await asyncio.sleep(0)

        update = fn(snapshot)
        self._check_update(user_id, update)

        async with self._lock:
            if self.version(user_id) != read_version:
                raise ConflictError(
                    f"Progress for user {user_id} changed during {operation}",
                    user_id=user_id,
                    operation=operation,
                    context={"read_version": read_version, "current_version": self.version(user_id)}
                )

            self._progress[user_id] = update.progress.model_copy()
            records = self._records.setdefault(user_id, {})
            for key, record in update.records.items():
                existing = records.get(key)
                if existing is not None and existing.is_unlocked:
                    # Unlocks are one-way
                    continue
                records[key] = record.model_copy()
            self._versions[user_id] = read_version + 1

        return update
