"""Tests for the achievement catalog"""
import json
import pytest

from progress_engine.exceptions import ValidationError
from progress_engine.gamification.catalog import (
    AchievementCatalog,
    DEFAULT_CATALOG,
    load_catalog,
)
from progress_engine.models.achievement import AchievementCategory, AchievementDefinition


def _definition(achievement_id, **overrides):
    data = {
        "id": achievement_id,
        "name": achievement_id.title(),
        "description": "Test achievement",
        "icon": "🏅",
        "category": AchievementCategory.STREAK,
        "criteria_type": "streak_days",
        "criteria_value": 2,
    }
    data.update(overrides)
    return AchievementDefinition(**data)


class TestDefaultCatalog:
    """Built-in definitions"""

    def test_contains_expected_achievements(self):
        assert len(DEFAULT_CATALOG) == 10
        assert DEFAULT_CATALOG.ids == (
            "habit_spark",
            "rhythm_seeker",
            "flow_state",
            "unbroken_chain",
            "task_initiate",
            "daily_dynamo",
            "momentum_rider",
            "relentless",
            "zero_inbox",
            "first_spark_quiz",
        )

    def test_verified_flags(self):
        verified = {d.id for d in DEFAULT_CATALOG if d.is_verified}
        assert verified == {
            "rhythm_seeker",
            "flow_state",
            "task_initiate",
            "daily_dynamo",
            "momentum_rider",
            "first_spark_quiz",
        }

    def test_lookup(self):
        definition = DEFAULT_CATALOG.get("habit_spark")
        assert definition.criteria_type == "streak_days"
        assert definition.criteria_value == 3
        assert "habit_spark" in DEFAULT_CATALOG
        assert "nope" not in DEFAULT_CATALOG
        assert DEFAULT_CATALOG.get("nope") is None


class TestCatalogImmutability:
    """Catalogs and their entries are read-only"""

    def test_cannot_set_attributes(self):
        with pytest.raises(AttributeError):
            DEFAULT_CATALOG._definitions = ()

    def test_definitions_are_frozen(self):
        definition = DEFAULT_CATALOG.get("relentless")
        with pytest.raises(Exception):
            definition.criteria_value = 1

    def test_source_list_mutation_does_not_leak(self):
        definitions = [_definition("a")]
        catalog = AchievementCatalog(definitions)
        definitions.append(_definition("b"))
        assert catalog.ids == ("a",)


class TestCatalogValidation:
    """Construction and loading errors"""

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            AchievementCatalog([_definition("a"), _definition("a")])
        assert exc_info.value.field == "id"

    def test_zero_threshold_rejected(self):
        with pytest.raises(Exception):
            _definition("a", criteria_value=0)

    def test_empty_catalog_allowed(self):
        catalog = AchievementCatalog([])
        assert len(catalog) == 0
        assert list(catalog) == []


class TestCatalogLoading:
    """JSON catalog files"""

    def test_from_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([
            {
                "id": "two_quizzes",
                "name": "Quiz Pair",
                "description": "Pass two quizzes.",
                "icon": "📚",
                "category": "topic_mastery",
                "criteria_type": "quizzes_passed",
                "criteria_value": 2,
                "is_verified": True,
            }
        ]), encoding="utf-8")

        catalog = AchievementCatalog.from_json(path)

        assert catalog.ids == ("two_quizzes",)
        assert catalog.get("two_quizzes").category == AchievementCategory.TOPIC_MASTERY

    def test_from_json_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValidationError):
            AchievementCatalog.from_json(path)

    def test_from_json_invalid_definition(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([{"id": "x"}]), encoding="utf-8")

        with pytest.raises(ValidationError):
            AchievementCatalog.from_json(path)

    def test_from_json_missing_file(self, tmp_path):
        with pytest.raises(ValidationError):
            AchievementCatalog.from_json(tmp_path / "missing.json")

    def test_load_catalog_default(self):
        assert load_catalog() is DEFAULT_CATALOG
        assert load_catalog(None) is DEFAULT_CATALOG
