"""Global test fixtures and utilities for progress-engine tests"""
import pytest
from datetime import datetime, timezone

from progress_engine.db.memory_store import InMemoryProgressStore
from progress_engine.gamification.achievement_system import AchievementEvaluator
from progress_engine.gamification.catalog import AchievementCatalog, DEFAULT_CATALOG
from progress_engine.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    CriteriaType,
)
from progress_engine.resilience import retry
from progress_engine.utils.datetime_helpers import FrozenClock


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "u1"


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def frozen_clock():
    """Clock frozen at midday so +/- a few hours stays on the same date"""
    return FrozenClock(datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


# ============================================================================
# Retry Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    """Retry conflicts immediately"""
    monkeypatch.setattr(retry, "BASE_DELAY", 0.0)


# ============================================================================
# Catalog & Store Fixtures
# ============================================================================

@pytest.fixture
def catalog():
    """Built-in achievement catalog"""
    return DEFAULT_CATALOG


@pytest.fixture
def small_catalog():
    """Catalog with one rule per behaviour under test"""
    return AchievementCatalog([
        AchievementDefinition(
            id="first_task",
            name="First Task",
            description="Complete one task.",
            icon="✅",
            category=AchievementCategory.TASK_COMPLETION,
            criteria_type=CriteriaType.TOTAL_TASKS.value,
            criteria_value=1,
            is_verified=False,
        ),
        AchievementDefinition(
            id="verified_first_task",
            name="Verified First Task",
            description="Complete one verified task.",
            icon="🪄",
            category=AchievementCategory.TASK_COMPLETION,
            criteria_type=CriteriaType.TOTAL_TASKS.value,
            criteria_value=1,
            is_verified=True,
        ),
        AchievementDefinition(
            id="first_perfect_day",
            name="First Perfect Day",
            description="Finish a whole day's plan, verified.",
            icon="🌟",
            category=AchievementCategory.TASK_COMPLETION,
            criteria_type=CriteriaType.PERFECT_DAYS.value,
            criteria_value=1,
            is_verified=True,
        ),
    ])


@pytest.fixture
def store(catalog):
    """Fresh in-memory store using the built-in catalog"""
    return InMemoryProgressStore(catalog=catalog, max_retries=5)


@pytest.fixture
def evaluator(store, frozen_clock):
    """Evaluator over the in-memory store with a frozen clock"""
    return AchievementEvaluator(store, clock=frozen_clock)
