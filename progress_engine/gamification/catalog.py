"""
Achievement Catalog

Immutable table of achievement definitions evaluated on every
completion event. Catalogs are built once and shared read-only across
evaluations; pass one into the evaluator and the store instead of
importing a global.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from progress_engine.exceptions import ValidationError
from progress_engine.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    CriteriaType,
)

logger = logging.getLogger(__name__)

_definitions_adapter = TypeAdapter(list[AchievementDefinition])


class AchievementCatalog:
    """Ordered, read-only collection of achievement definitions"""

    __slots__ = ("_definitions", "_by_id")

    def __init__(self, definitions: Iterable[AchievementDefinition]):
        definitions = tuple(definitions)
        by_id = {}
        for definition in definitions:
            if definition.id in by_id:
                raise ValidationError(
                    f"Duplicate achievement id '{definition.id}'",
                    field="id",
                    value=definition.id
                )
            by_id[definition.id] = definition
        object.__setattr__(self, "_definitions", definitions)
        object.__setattr__(self, "_by_id", by_id)

    def __setattr__(self, name, value):
        raise AttributeError("AchievementCatalog is immutable")

    def __iter__(self) -> Iterator[AchievementDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, achievement_id: object) -> bool:
        return achievement_id in self._by_id

    def get(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return self._by_id.get(achievement_id)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(d.id for d in self._definitions)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "AchievementCatalog":
        """
        Load a catalog from a JSON file holding a list of definitions

        Args:
            path: File path

        Returns:
            AchievementCatalog

        Raises:
            ValidationError: If the file is not a valid definition list
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            definitions = _definitions_adapter.validate_python(raw)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            raise ValidationError(
                f"Invalid achievement catalog {path}: {e}",
                field="catalog",
                value=str(path),
                cause=e
            )

        catalog = cls(definitions)
        logger.info(f"Loaded {len(catalog)} achievement definitions from {path}")
        return catalog


DEFAULT_CATALOG = AchievementCatalog([
    # Streak-based
    AchievementDefinition(
        id="habit_spark",
        name="Habit Spark",
        description="Complete tasks for 3 days straight.",
        icon="🔥",
        category=AchievementCategory.STREAK,
        criteria_type=CriteriaType.STREAK_DAYS.value,
        criteria_value=3,
        is_verified=False,
    ),
    AchievementDefinition(
        id="rhythm_seeker",
        name="Rhythm Seeker",
        description="Achieve a 7-day verified streak.",
        icon="🎶",
        category=AchievementCategory.STREAK,
        criteria_type=CriteriaType.STREAK_DAYS.value,
        criteria_value=7,
        is_verified=True,
    ),
    AchievementDefinition(
        id="flow_state",
        name="Flow State",
        description="Achieve a 14-day verified streak.",
        icon="💧",
        category=AchievementCategory.STREAK,
        criteria_type=CriteriaType.STREAK_DAYS.value,
        criteria_value=14,
        is_verified=True,
    ),
    AchievementDefinition(
        id="unbroken_chain",
        name="Unbroken Chain",
        description="Achieve a 30-day streak.",
        icon="⛓️",
        category=AchievementCategory.STREAK,
        criteria_type=CriteriaType.STREAK_DAYS.value,
        criteria_value=30,
        is_verified=False,
    ),
    # Task completion milestones
    AchievementDefinition(
        id="task_initiate",
        name="Task Initiate",
        description="Complete your first verified task.",
        icon="🪄",
        category=AchievementCategory.TASK_COMPLETION,
        criteria_type=CriteriaType.TOTAL_TASKS.value,
        criteria_value=1,
        is_verified=True,
    ),
    AchievementDefinition(
        id="daily_dynamo",
        name="Daily Dynamo",
        description="Achieve 5 days of 100% daily task completion.",
        icon="🔄",
        category=AchievementCategory.TASK_COMPLETION,
        criteria_type=CriteriaType.PERFECT_DAYS.value,
        criteria_value=5,
        is_verified=True,
    ),
    AchievementDefinition(
        id="momentum_rider",
        name="Momentum Rider",
        description="Complete 20 tasks with proof.",
        icon="🧭",
        category=AchievementCategory.TASK_COMPLETION,
        criteria_type=CriteriaType.TOTAL_TASKS.value,
        criteria_value=20,
        is_verified=True,
    ),
    AchievementDefinition(
        id="relentless",
        name="Relentless",
        description="Complete 50 tasks.",
        icon="🦾",
        category=AchievementCategory.TASK_COMPLETION,
        criteria_type=CriteriaType.TOTAL_TASKS.value,
        criteria_value=50,
        is_verified=False,
    ),
    # Roadmaps
    AchievementDefinition(
        id="zero_inbox",
        name="Zero Inbox",
        description="Finish an entire roadmap on time.",
        icon="📂",
        category=AchievementCategory.ROADMAP,
        criteria_type=CriteriaType.ROADMAP_COMPLETED.value,
        criteria_value=1,
        is_verified=False,
    ),
    # Topic mastery
    AchievementDefinition(
        id="first_spark_quiz",
        name="First Spark",
        description="Pass your first quiz on any roadmap topic.",
        icon="✨",
        category=AchievementCategory.TOPIC_MASTERY,
        criteria_type=CriteriaType.QUIZZES_PASSED.value,
        criteria_value=1,
        is_verified=True,
    ),
])


def load_catalog(path: Optional[Union[str, Path]] = None) -> AchievementCatalog:
    """Catalog from ``path`` if given, else the built-in one"""
    if path is None:
        return DEFAULT_CATALOG
    return AchievementCatalog.from_json(path)
