"""PostgreSQL progress store

Each progress transaction runs at SERIALIZABLE isolation; PostgreSQL
aborts the loser of a concurrent read-modify-write with a
serialization failure, which surfaces as ConflictError and is retried
by the base class.
"""
import logging
from typing import Optional

import psycopg

from progress_engine.db.connection import Database, db
from progress_engine.db.progress_store import ProgressStore, TransactionFn, validate_user_id
from progress_engine.exceptions import wrap_external_exception
from progress_engine.gamification.catalog import AchievementCatalog
from progress_engine.models.achievement import (
    AchievementRecord,
    ProgressSnapshot,
    ProgressUpdate,
    UserProgress,
)

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS user_progress (
    user_id TEXT PRIMARY KEY,
    last_task_completion_date TIMESTAMPTZ,
    current_streak INTEGER NOT NULL DEFAULT 0 CHECK (current_streak >= 0),
    longest_streak INTEGER NOT NULL DEFAULT 0 CHECK (longest_streak >= 0),
    total_tasks_completed INTEGER NOT NULL DEFAULT 0 CHECK (total_tasks_completed >= 0),
    perfect_days_count INTEGER NOT NULL DEFAULT 0 CHECK (perfect_days_count >= 0),
    quizzes_passed_count INTEGER NOT NULL DEFAULT 0 CHECK (quizzes_passed_count >= 0),
    total_roadmaps_completed INTEGER NOT NULL DEFAULT 0 CHECK (total_roadmaps_completed >= 0),
    last_updated TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (longest_streak >= current_streak)
);

CREATE TABLE IF NOT EXISTS user_achievements (
    user_id TEXT NOT NULL REFERENCES user_progress(user_id) ON DELETE CASCADE,
    achievement_id TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    icon TEXT NOT NULL,
    category TEXT NOT NULL,
    criteria_type TEXT NOT NULL,
    criteria_value INTEGER NOT NULL,
    is_verified BOOLEAN NOT NULL DEFAULT FALSE,
    current_progress INTEGER NOT NULL DEFAULT 0 CHECK (current_progress >= 0),
    unlocked_at TIMESTAMPTZ,
    PRIMARY KEY (user_id, achievement_id)
);
"""

_PROGRESS_COLUMNS = """
    user_id, last_task_completion_date, current_streak, longest_streak,
    total_tasks_completed, perfect_days_count, quizzes_passed_count,
    total_roadmaps_completed, last_updated
"""

_RECORD_COLUMNS = """
    achievement_id, name, description, icon, category, criteria_type,
    criteria_value, is_verified, current_progress, unlocked_at
"""

_UPSERT_PROGRESS = """
    INSERT INTO user_progress (
        user_id, last_task_completion_date, current_streak, longest_streak,
        total_tasks_completed, perfect_days_count, quizzes_passed_count,
        total_roadmaps_completed, last_updated
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s, CURRENT_TIMESTAMP))
    ON CONFLICT (user_id) DO UPDATE SET
        last_task_completion_date = EXCLUDED.last_task_completion_date,
        current_streak = EXCLUDED.current_streak,
        longest_streak = EXCLUDED.longest_streak,
        total_tasks_completed = EXCLUDED.total_tasks_completed,
        perfect_days_count = EXCLUDED.perfect_days_count,
        quizzes_passed_count = EXCLUDED.quizzes_passed_count,
        total_roadmaps_completed = EXCLUDED.total_roadmaps_completed,
        last_updated = EXCLUDED.last_updated
"""

# Unlocked rows are never rewritten
_UPSERT_RECORD = """
    INSERT INTO user_achievements (
        user_id, achievement_id, name, description, icon, category,
        criteria_type, criteria_value, is_verified, current_progress, unlocked_at
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (user_id, achievement_id) DO UPDATE SET
        current_progress = EXCLUDED.current_progress,
        unlocked_at = EXCLUDED.unlocked_at
    WHERE user_achievements.unlocked_at IS NULL
"""

_INSERT_RECORD_IF_ABSENT = """
    INSERT INTO user_achievements (
        user_id, achievement_id, name, description, icon, category,
        criteria_type, criteria_value, is_verified, current_progress, unlocked_at
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (user_id, achievement_id) DO NOTHING
"""


def _progress_params(progress: UserProgress) -> tuple:
    return (
        progress.user_id,
        progress.last_task_completion_date,
        progress.current_streak,
        progress.longest_streak,
        progress.total_tasks_completed,
        progress.perfect_days_count,
        progress.quizzes_passed_count,
        progress.total_roadmaps_completed,
        progress.last_updated,
    )


def _record_params(user_id: str, record: AchievementRecord) -> tuple:
    return (
        user_id,
        record.achievement_id,
        record.name,
        record.description,
        record.icon,
        record.category.value,
        record.criteria_type,
        record.criteria_value,
        record.is_verified,
        record.current_progress,
        record.unlocked_at,
    )


class PostgresProgressStore(ProgressStore):
    """Progress store backed by PostgreSQL via psycopg"""

    def __init__(
        self,
        database: Database = db,
        catalog: Optional[AchievementCatalog] = None,
        max_retries: Optional[int] = None
    ):
        super().__init__(catalog=catalog, max_retries=max_retries)
        self.db = database

    async def ensure_schema(self) -> None:
        """Create tables if they don't exist"""
        try:
            async with self.db.connection() as conn:
                async with conn.transaction():
                    await conn.execute(SCHEMA_SQL)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="ensure_schema")
        logger.info("Progress schema ready")

    async def initialize_user_progress(self, user_id: str) -> bool:
        validate_user_id(user_id)
        try:
            async with self.db.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute(
                            """
                            INSERT INTO user_progress (user_id)
                            VALUES (%s)
                            ON CONFLICT (user_id) DO NOTHING
                            RETURNING user_id
                            """,
                            (user_id,)
                        )
                        created = await cur.fetchone() is not None

                        await cur.executemany(
                            _INSERT_RECORD_IF_ABSENT,
                            [
                                _record_params(user_id, AchievementRecord.locked(d))
                                for d in self.catalog
                            ]
                        )
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="initialize_user_progress", user_id=user_id)

        if created:
            logger.info(f"Initialized progress for user {user_id} with {len(self.catalog)} achievements")
        return created

    async def get_user_progress(self, user_id: str) -> Optional[UserProgress]:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        f"SELECT {_PROGRESS_COLUMNS} FROM user_progress WHERE user_id = %s",
                        (user_id,)
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_user_progress", user_id=user_id)

        return UserProgress(**row) if row else None

    async def get_achievement_records(self, user_id: str) -> dict[str, AchievementRecord]:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        f"SELECT {_RECORD_COLUMNS} FROM user_achievements WHERE user_id = %s",
                        (user_id,)
                    )
                    rows = await cur.fetchall()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_achievement_records", user_id=user_id)

        return {row["achievement_id"]: AchievementRecord(**row) for row in rows}

    async def _attempt_transaction(self, user_id: str, fn: TransactionFn, operation: str) -> ProgressUpdate:
        try:
            async with self.db.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE")

                        await cur.execute(
                            f"SELECT {_PROGRESS_COLUMNS} FROM user_progress WHERE user_id = %s FOR UPDATE",
                            (user_id,)
                        )
                        row = await cur.fetchone()

                        await cur.execute(
                            f"SELECT {_RECORD_COLUMNS} FROM user_achievements WHERE user_id = %s",
                            (user_id,)
                        )
                        record_rows = await cur.fetchall()

                        snapshot = ProgressSnapshot(
                            user_id=user_id,
                            progress=UserProgress(**row) if row else None,
                            records={r["achievement_id"]: AchievementRecord(**r) for r in record_rows},
                        )

                        update = fn(snapshot)
                        self._check_update(user_id, update)

                        await cur.execute(_UPSERT_PROGRESS, _progress_params(update.progress))
                        if update.records:
                            await cur.executemany(
                                _UPSERT_RECORD,
                                [_record_params(user_id, r) for r in update.records.values()]
                            )
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation=operation, user_id=user_id)

        return update
