"""Achievement and progress models"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime


class AchievementCategory(str, Enum):
    """Achievement categories"""
    STREAK = "streak"
    TASK_COMPLETION = "task_completion"
    ROADMAP = "roadmap"
    TOPIC_MASTERY = "topic_mastery"


class CriteriaType(str, Enum):
    """Which progress metric an achievement is measured against"""
    STREAK_DAYS = "streak_days"
    TOTAL_TASKS = "total_tasks"
    PERFECT_DAYS = "perfect_days"
    QUIZZES_PASSED = "quizzes_passed"
    ROADMAP_COMPLETED = "roadmap_completed"


class AchievementDefinition(BaseModel):
    """Achievement definition (catalog entry)"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str
    icon: str
    category: AchievementCategory
    # Kept as a plain string so catalogs with newer rule types still load
    criteria_type: str
    criteria_value: int = Field(ge=1)
    is_verified: bool = False


class AchievementRecord(BaseModel):
    """A user's lock/unlock state for one achievement"""
    achievement_id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    criteria_type: str
    criteria_value: int
    is_verified: bool
    current_progress: int = Field(default=0, ge=0)
    unlocked_at: Optional[datetime] = None

    @property
    def is_unlocked(self) -> bool:
        return self.unlocked_at is not None

    @classmethod
    def locked(cls, definition: AchievementDefinition) -> "AchievementRecord":
        """Fresh locked record for a catalog entry"""
        return cls(
            achievement_id=definition.id,
            name=definition.name,
            description=definition.description,
            icon=definition.icon,
            category=definition.category,
            criteria_type=definition.criteria_type,
            criteria_value=definition.criteria_value,
            is_verified=definition.is_verified,
        )


class UnlockedAchievement(BaseModel):
    """Achievement newly unlocked by a single call"""
    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    criteria_type: str
    criteria_value: int
    is_verified: bool
    unlocked_at: datetime

    @classmethod
    def from_definition(cls, definition: AchievementDefinition, unlocked_at: datetime) -> "UnlockedAchievement":
        return cls(**definition.model_dump(), unlocked_at=unlocked_at)


class UserProgress(BaseModel):
    """Per-user streak and counter state"""
    user_id: str
    last_task_completion_date: Optional[datetime] = None
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    total_tasks_completed: int = Field(default=0, ge=0)
    perfect_days_count: int = Field(default=0, ge=0)
    quizzes_passed_count: int = Field(default=0, ge=0)
    total_roadmaps_completed: int = Field(default=0, ge=0)
    last_updated: Optional[datetime] = None

    @model_validator(mode="after")
    def _longest_covers_current(self) -> "UserProgress":
        if self.longest_streak < self.current_streak:
            raise ValueError("longest_streak must be >= current_streak")
        return self


class ProgressSnapshot(BaseModel):
    """State handed to a progress transaction function"""
    user_id: str
    progress: Optional[UserProgress] = None
    records: dict[str, AchievementRecord] = Field(default_factory=dict)


class ProgressUpdate(BaseModel):
    """
    Writes produced by a progress transaction function.

    ``records`` holds only the records that changed; ``unlocked`` is the
    caller-facing result and is not persisted.
    """
    progress: UserProgress
    records: dict[str, AchievementRecord] = Field(default_factory=dict)
    unlocked: list[UnlockedAchievement] = Field(default_factory=list)


class AchievementStatus(BaseModel):
    """One row of a user's achievement listing"""
    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    criteria_type: str
    criteria_value: int
    is_verified: bool
    current_progress: int
    percentage: int
    unlocked_at: Optional[datetime] = None

    @property
    def is_unlocked(self) -> bool:
        return self.unlocked_at is not None


class AchievementSummary(BaseModel):
    """User's achievements split by lock state"""
    unlocked: list[AchievementStatus]
    locked: list[AchievementStatus]
    total_unlocked: int
    total_achievements: int
