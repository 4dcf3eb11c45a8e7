"""
Achievement System

Processes task-completion events: updates the user's streak and
counters and unlocks every achievement whose criteria the new totals
meet, all inside one store transaction.

Features:
- Streak, total task and perfect day tracking
- Verification gating for proof-backed achievements
- Progress tracking for locked achievements
- Exactly-once unlocks under concurrent or retried events
"""

from typing import TYPE_CHECKING, Dict, List, Optional
from datetime import datetime
import logging

from progress_engine import config
from progress_engine.exceptions import UnknownCriteriaTypeError
from progress_engine.gamification.catalog import AchievementCatalog
from progress_engine.gamification.streak_system import compute_next_streak
from progress_engine.models.achievement import (
    AchievementDefinition,
    AchievementRecord,
    AchievementStatus,
    AchievementSummary,
    CriteriaType,
    ProgressSnapshot,
    ProgressUpdate,
    UnlockedAchievement,
    UserProgress,
)
from progress_engine.resilience.metrics import record_achievement_unlocked, record_completion
from progress_engine.utils.datetime_helpers import Clock, SystemClock

if TYPE_CHECKING:
    from progress_engine.db.progress_store import ProgressStore

logger = logging.getLogger(__name__)


def select_metric(criteria_type: str, progress: UserProgress) -> int:
    """
    Progress value an achievement of ``criteria_type`` is measured against

    Raises:
        UnknownCriteriaTypeError: Criteria type has no matching metric
    """
    if criteria_type == CriteriaType.STREAK_DAYS:
        return progress.current_streak
    elif criteria_type == CriteriaType.TOTAL_TASKS:
        return progress.total_tasks_completed
    elif criteria_type == CriteriaType.PERFECT_DAYS:
        return progress.perfect_days_count
    elif criteria_type == CriteriaType.QUIZZES_PASSED:
        return progress.quizzes_passed_count
    elif criteria_type == CriteriaType.ROADMAP_COMPLETED:
        return progress.total_roadmaps_completed

    raise UnknownCriteriaTypeError(
        f"Unknown criteria type: {criteria_type}",
        criteria_type=criteria_type
    )


def should_unlock(
    definition: AchievementDefinition,
    metric_value: int,
    is_verified_completion: bool,
    is_perfect_day: bool
) -> bool:
    """
    Unlock rule for a locked achievement

    The metric must reach the threshold, verified achievements need a
    verified event, and perfect-day achievements only unlock on an
    event that itself completes a perfect day.
    """
    if metric_value < definition.criteria_value:
        return False
    if definition.is_verified and not is_verified_completion:
        return False
    if definition.criteria_type == CriteriaType.PERFECT_DAYS and not is_perfect_day:
        return False
    return True


def evaluate_achievements(
    catalog: AchievementCatalog,
    progress: UserProgress,
    records: Dict[str, AchievementRecord],
    is_verified_completion: bool,
    is_perfect_day: bool,
    now: datetime,
    criteria_type: Optional[str] = None
) -> tuple[Dict[str, AchievementRecord], List[UnlockedAchievement]]:
    """
    Evaluate every catalog rule against updated progress

    Args:
        catalog: Achievement definitions
        progress: Progress after this event's updates
        records: Current records keyed by achievement id (missing ones treated as locked)
        is_verified_completion: Whether the event was verified
        is_perfect_day: Whether the event completed a perfect day
        now: Unlock timestamp
        criteria_type: Only evaluate rules of this type (missing records are still created)

    Returns:
        (changed records keyed by id, newly unlocked achievements)
    """
    changed: Dict[str, AchievementRecord] = {}
    unlocked: List[UnlockedAchievement] = []

    for definition in catalog:
        record = records.get(definition.id)
        if record is None:
            record = AchievementRecord.locked(definition)
            changed[definition.id] = record

        # Unlocks are one-way
        if record.is_unlocked:
            continue

        if criteria_type is not None and definition.criteria_type != criteria_type:
            continue

        try:
            metric_value = select_metric(definition.criteria_type, progress)
        except UnknownCriteriaTypeError:
            logger.warning(
                f"Skipping achievement {definition.id}: unknown criteria type {definition.criteria_type}"
            )
            continue

        if should_unlock(definition, metric_value, is_verified_completion, is_perfect_day):
            record = record.model_copy(update={
                "unlocked_at": now,
                "current_progress": definition.criteria_value,
            })
            unlocked.append(UnlockedAchievement.from_definition(definition, now))
        else:
            record = record.model_copy(update={"current_progress": metric_value})

        changed[definition.id] = record

    return changed, unlocked


class AchievementEvaluator:
    """
    Entry point for progress updates.

    Responsibilities:
    - Per-event streak and counter updates
    - Achievement unlock evaluation
    - Read-side progress and achievement listings
    """

    def __init__(
        self,
        store: "ProgressStore",
        catalog: Optional[AchievementCatalog] = None,
        clock: Optional[Clock] = None
    ):
        """
        Args:
            store: Progress store adapter
            catalog: Achievement definitions (defaults to the store's catalog)
            clock: Source of "now" and "today" (defaults to SystemClock in PROGRESS_TIMEZONE)
        """
        self.store = store
        self.catalog = catalog if catalog is not None else store.catalog
        self.clock = clock or SystemClock(config.PROGRESS_TIMEZONE)

    async def initialize_user_progress(self, user_id: str) -> None:
        """Ensure progress and achievement records exist for user (call on login)"""
        await self.store.initialize_user_progress(user_id)

    async def process_completion(
        self,
        user_id: str,
        is_verified_completion: bool = False,
        is_perfect_day: bool = False
    ) -> List[UnlockedAchievement]:
        """
        Record one completed task and unlock any newly earned achievements

        Must be called at most once per genuine completion; a repeated
        call counts another task.

        Args:
            user_id: User ID
            is_verified_completion: Completion met the stricter verification standard
            is_perfect_day: Completion finished every task in today's plan

        Returns:
            Achievements that became unlocked as a direct result of this call

        Raises:
            ConflictError: Concurrent updates kept conflicting after all retries
            StoreUnavailableError: Store unreachable; nothing was written
            QueryError: Store rejected a statement; nothing was written
        """
        def apply(snapshot: ProgressSnapshot) -> ProgressUpdate:
            now = self.clock.now()
            progress = self._current_progress(snapshot)

            new_streak = compute_next_streak(
                progress.last_task_completion_date,
                progress.current_streak,
                self.clock,
                completed_at=now
            )
            updated = progress.model_copy(update={
                "last_task_completion_date": now,
                "current_streak": new_streak,
                "longest_streak": max(progress.longest_streak, new_streak),
                "total_tasks_completed": progress.total_tasks_completed + 1,
                "perfect_days_count": progress.perfect_days_count + (1 if is_perfect_day else 0),
                "last_updated": now,
            })

            records, unlocked = evaluate_achievements(
                self.catalog,
                updated,
                snapshot.records,
                is_verified_completion,
                is_perfect_day,
                now
            )
            return ProgressUpdate(progress=updated, records=records, unlocked=unlocked)

        update = await self.store.run_progress_transaction(user_id, apply, operation="process_completion")

        record_completion(is_verified_completion, is_perfect_day)
        self._log_unlocks(user_id, update.unlocked)
        logger.info(
            f"Processed completion for user {user_id}: streak {update.progress.current_streak}, "
            f"total tasks {update.progress.total_tasks_completed}, "
            f"{len(update.unlocked)} achievement(s) unlocked"
        )
        return update.unlocked

    async def record_quiz_passed(self, user_id: str) -> List[UnlockedAchievement]:
        """
        Count a passed quiz and unlock quiz-based achievements

        A passed quiz is treated as verified proof. Only quiz-based rules
        are evaluated; streak, task totals and the last completion date
        are left alone.

        Returns:
            Newly unlocked achievements
        """
        return await self._bump_counter(
            user_id,
            "quizzes_passed_count",
            CriteriaType.QUIZZES_PASSED,
            is_verified_completion=True,
            operation="record_quiz_passed"
        )

    async def record_roadmap_completed(self, user_id: str) -> List[UnlockedAchievement]:
        """
        Count a fully completed roadmap and unlock roadmap achievements

        Returns:
            Newly unlocked achievements
        """
        return await self._bump_counter(
            user_id,
            "total_roadmaps_completed",
            CriteriaType.ROADMAP_COMPLETED,
            is_verified_completion=False,
            operation="record_roadmap_completed"
        )

    async def get_user_progress(self, user_id: str) -> Optional[UserProgress]:
        """Current progress for user, or None if never initialized"""
        return await self.store.get_user_progress(user_id)

    async def get_user_achievements(self, user_id: str) -> AchievementSummary:
        """
        Get user's achievements with progress

        Ordering: unlocked first, then by category, then by threshold.
        Catalog entries without a stored record are listed as locked
        with no progress.

        Returns:
            AchievementSummary
        """
        records = await self.store.get_achievement_records(user_id)

        statuses = []
        for definition in self.catalog:
            record = records.get(definition.id)
            unlocked_at = record.unlocked_at if record else None
            current = record.current_progress if record else 0
            if unlocked_at:
                percentage = 100
            else:
                percentage = min(100, int(current / definition.criteria_value * 100))

            statuses.append(AchievementStatus(
                **definition.model_dump(),
                current_progress=current,
                percentage=percentage,
                unlocked_at=unlocked_at,
            ))

        statuses.sort(key=lambda s: (not s.is_unlocked, s.category.value, s.criteria_value))

        unlocked = [s for s in statuses if s.is_unlocked]
        locked = [s for s in statuses if not s.is_unlocked]
        return AchievementSummary(
            unlocked=unlocked,
            locked=locked,
            total_unlocked=len(unlocked),
            total_achievements=len(self.catalog),
        )

    async def _bump_counter(
        self,
        user_id: str,
        field: str,
        criteria_type: CriteriaType,
        is_verified_completion: bool,
        operation: str
    ) -> List[UnlockedAchievement]:
        # Only rules measured by the bumped counter; streak and task rules wait for a completion
        def apply(snapshot: ProgressSnapshot) -> ProgressUpdate:
            now = self.clock.now()
            progress = self._current_progress(snapshot)
            updated = progress.model_copy(update={
                field: getattr(progress, field) + 1,
                "last_updated": now,
            })
            records, unlocked = evaluate_achievements(
                self.catalog,
                updated,
                snapshot.records,
                is_verified_completion,
                False,
                now,
                criteria_type=criteria_type.value
            )
            return ProgressUpdate(progress=updated, records=records, unlocked=unlocked)

        update = await self.store.run_progress_transaction(user_id, apply, operation=operation)
        self._log_unlocks(user_id, update.unlocked)
        logger.info(f"Incremented {field} for user {user_id} to {getattr(update.progress, field)}")
        return update.unlocked

    @staticmethod
    def _current_progress(snapshot: ProgressSnapshot) -> UserProgress:
        if snapshot.progress is not None:
            return snapshot.progress

        # Initialization was skipped; start from zero inside this transaction
        logger.warning(f"Progress for user {snapshot.user_id} does not exist, initializing in place")
        return UserProgress(user_id=snapshot.user_id)

    @staticmethod
    def _log_unlocks(user_id: str, unlocked: List[UnlockedAchievement]) -> None:
        for achievement in unlocked:
            record_achievement_unlocked(achievement.id)
            logger.info(f"User {user_id} unlocked achievement: {achievement.id} ({achievement.name})")


def format_achievement_unlock_message(achievement: UnlockedAchievement) -> str:
    """
    Format achievement unlock message for celebration

    Args:
        achievement: Achievement returned by process_completion()

    Returns:
        Formatted celebration message
    """
    return f"""🎉 ACHIEVEMENT UNLOCKED! 🎉

{achievement.icon} {achievement.name}

{achievement.description}

Keep up the amazing work! 💪"""
