"""Tests for retry logic"""
import pytest
from unittest.mock import AsyncMock, patch

from psycopg import errors as pg_errors

from progress_engine.exceptions import ConflictError, QueryError, StoreUnavailableError
from progress_engine.resilience import retry
from progress_engine.resilience.retry import (
    calculate_backoff,
    is_retryable_error,
    retry_with_backoff,
)


class TestRetryableErrors:
    """Only transient conflicts are retried"""

    def test_conflict_error_is_retryable(self):
        assert is_retryable_error(ConflictError("race"))

    def test_raw_serialization_failure_is_retryable(self):
        assert is_retryable_error(pg_errors.SerializationFailure("could not serialize"))
        assert is_retryable_error(pg_errors.DeadlockDetected("deadlock"))

    def test_other_errors_not_retryable(self):
        assert not is_retryable_error(StoreUnavailableError())
        assert not is_retryable_error(QueryError("bad sql"))
        assert not is_retryable_error(ValueError("nope"))


class TestBackoff:
    """Exponential backoff with jitter"""

    def test_backoff_grows_exponentially(self, monkeypatch):
        monkeypatch.setattr(retry, "BASE_DELAY", 0.1)
        monkeypatch.setattr(retry, "JITTER", 0.0)

        assert calculate_backoff(0) == pytest.approx(0.1)
        assert calculate_backoff(1) == pytest.approx(0.2)
        assert calculate_backoff(2) == pytest.approx(0.4)

    def test_backoff_capped(self, monkeypatch):
        monkeypatch.setattr(retry, "BASE_DELAY", 0.1)
        monkeypatch.setattr(retry, "JITTER", 0.0)

        assert calculate_backoff(20) == pytest.approx(retry.MAX_DELAY)

    def test_jitter_stays_in_range(self, monkeypatch):
        monkeypatch.setattr(retry, "BASE_DELAY", 1.0)

        for _ in range(50):
            delay = calculate_backoff(0)
            assert 0.9 <= delay <= 1.1


class TestRetryWithBackoff:
    """retry_with_backoff behaviour"""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        func = AsyncMock(return_value="ok")

        result = await retry_with_backoff(func, "a", key="b")

        assert result == "ok"
        func.assert_awaited_once_with("a", key="b")

    @pytest.mark.asyncio
    async def test_retries_conflicts_until_success(self):
        func = AsyncMock(side_effect=[ConflictError("race"), ConflictError("race"), "ok"])

        with patch("progress_engine.resilience.metrics.record_retry") as record_retry:
            result = await retry_with_backoff(func, max_retries=3, operation="process_completion")

        assert result == "ok"
        assert func.await_count == 3
        assert record_retry.call_count == 2
        record_retry.assert_called_with("process_completion")

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        func = AsyncMock(side_effect=ConflictError("race"))

        with pytest.raises(ConflictError):
            await retry_with_backoff(func, max_retries=2)

        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self):
        func = AsyncMock(side_effect=ConflictError("race"))

        with pytest.raises(ConflictError):
            await retry_with_backoff(func, max_retries=0)

        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_non_retryable_raised_immediately(self):
        func = AsyncMock(side_effect=StoreUnavailableError())

        with pytest.raises(StoreUnavailableError):
            await retry_with_backoff(func, max_retries=5)

        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_default_max_retries(self, monkeypatch):
        monkeypatch.setattr(retry, "MAX_RETRIES", 1)
        func = AsyncMock(side_effect=ConflictError("race"))

        with pytest.raises(ConflictError):
            await retry_with_backoff(func)

        assert func.await_count == 2
