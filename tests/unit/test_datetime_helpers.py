"""Tests for datetime helpers and clocks"""
from datetime import date, datetime, timezone

from progress_engine.utils.datetime_helpers import (
    UTC,
    FrozenClock,
    SystemClock,
    ensure_utc,
    now_utc,
)


def test_now_utc_is_aware():
    assert now_utc().tzinfo is not None
    assert now_utc().utcoffset().total_seconds() == 0


def test_ensure_utc_naive_assumed_utc():
    result = ensure_utc(datetime(2024, 1, 15, 8, 0))
    assert result == datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_offset():
    from zoneinfo import ZoneInfo

    local = datetime(2024, 1, 15, 8, 0, tzinfo=ZoneInfo("America/New_York"))
    assert ensure_utc(local) == datetime(2024, 1, 15, 13, 0, tzinfo=UTC)


def test_ensure_utc_none():
    assert ensure_utc(None) is None


def test_frozen_clock_advance():
    clock = FrozenClock(datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc))

    assert clock.today() == date(2024, 1, 15)
    clock.advance(hours=2)
    assert clock.today() == date(2024, 1, 16)


def test_clock_local_date_uses_timezone():
    clock = FrozenClock(datetime(2024, 1, 15, 3, 0, tzinfo=timezone.utc), tz="America/New_York")

    assert clock.today() == date(2024, 1, 14)


def test_system_clock_defaults_to_utc():
    clock = SystemClock()
    assert clock.tz.key == "UTC"
    assert clock.now().tzinfo is not None


def test_frozen_clock_set_normalizes_to_utc():
    clock = FrozenClock(datetime(2024, 1, 15, tzinfo=timezone.utc))

    clock.set(datetime(2024, 3, 1, 9, 30))

    assert clock.now() == datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
