"""
Tests for the retry wrapper.
"""

from unittest.mock import AsyncMock, call, patch

import pytest
from pydantic import ValidationError

from seva.errors import (
    FailedPreconditionError,
    NotFoundError,
    PermissionDeniedError,
    UnknownError,
)
from seva.retry import RetryPolicy, with_retry


@pytest.fixture
def mock_sleep():
    with patch("seva.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_returns_first_success_without_sleeping(self, mock_sleep):
        operation = AsyncMock(return_value="done")

        result = await with_retry(operation, RetryPolicy(), "op")

        assert result == "done"
        operation.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_error_is_retried_with_backoff(self, mock_sleep):
        operation = AsyncMock(side_effect=UnknownError("store unavailable"))
        policy = RetryPolicy(max_attempts=3, base_delay_seconds=0.1)

        with pytest.raises(UnknownError, match="store unavailable"):
            await with_retry(operation, policy, "op")

        assert operation.await_count == 3
        assert mock_sleep.await_args_list == [call(0.2), call(0.4)]

    @pytest.mark.asyncio
    async def test_transient_failures_then_success(self, mock_sleep):
        operation = AsyncMock(
            side_effect=[UnknownError("flaky"), RuntimeError("timeout"), 7]
        )

        result = await with_retry(operation, RetryPolicy(max_attempts=3))

        assert result == 7
        assert operation.await_count == 3
        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            PermissionDeniedError("Only temple admins can do that"),
            FailedPreconditionError("Service is full"),
        ],
    )
    async def test_non_retryable_errors_surface_immediately(
        self, mock_sleep, error
    ):
        operation = AsyncMock(side_effect=error)

        with pytest.raises(type(error)):
            await with_retry(operation, RetryPolicy(max_attempts=5))

        operation.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_found_is_retried(self, mock_sleep):
        operation = AsyncMock(side_effect=NotFoundError("Service not found"))

        with pytest.raises(NotFoundError):
            await with_retry(operation, RetryPolicy(max_attempts=2))

        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_single_attempt_policy_never_sleeps(self, mock_sleep):
        operation = AsyncMock(side_effect=UnknownError("down"))

        with pytest.raises(UnknownError):
            await with_retry(operation, RetryPolicy(max_attempts=1))

        operation.assert_awaited_once()
        mock_sleep.assert_not_awaited()


class TestRetryPolicy:
    def test_delay_doubles_per_attempt(self):
        policy = RetryPolicy(base_delay_seconds=0.5)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValidationError):
            RetryPolicy(max_attempts=0)

    def test_rejects_negative_delay(self):
        with pytest.raises(ValidationError):
            RetryPolicy(base_delay_seconds=-1)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SEVA_RETRY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("SEVA_RETRY_BASE_DELAY", "0.25")

        policy = RetryPolicy.from_env()

        assert policy.max_attempts == 5
        assert policy.base_delay_seconds == 0.25

    def test_defaults_without_env(self, monkeypatch):
        monkeypatch.delenv("SEVA_RETRY_MAX_ATTEMPTS", raising=False)
        monkeypatch.delenv("SEVA_RETRY_BASE_DELAY", raising=False)
        assert RetryPolicy.from_env() == RetryPolicy()

    def test_to_temporal(self):
        temporal_policy = RetryPolicy(
            max_attempts=4, base_delay_seconds=1
        ).to_temporal()

        assert temporal_policy.maximum_attempts == 4
        assert temporal_policy.initial_interval.total_seconds() == 2
        assert temporal_policy.backoff_coefficient == 2.0
        assert set(temporal_policy.non_retryable_error_types) == {
            "PermissionDeniedError",
            "FailedPreconditionError",
        }

    def test_to_temporal_extra_non_retryable(self):
        temporal_policy = RetryPolicy().to_temporal(
            also_non_retryable=["NotFoundError"]
        )

        assert "NotFoundError" in temporal_policy.non_retryable_error_types
        assert "PermissionDeniedError" in (
            temporal_policy.non_retryable_error_types
        )
