"""
Tests for environment configuration and the Temporal connection helper.
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from temporalio.service import RPCError, RPCStatusCode

from seva import config


def unavailable() -> RPCError:
    return RPCError("connection refused", RPCStatusCode.UNAVAILABLE, b"")


class TestEnvironment:
    def test_reconcile_temple_ids(self, monkeypatch):
        monkeypatch.setenv("SEVA_RECONCILE_TEMPLE_IDS", "temple-1, temple-2,,")
        assert config.reconcile_temple_ids() == ["temple-1", "temple-2"]

        monkeypatch.delenv("SEVA_RECONCILE_TEMPLE_IDS")
        assert config.reconcile_temple_ids() == []

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("YES", True), ("1", True), ("false", False)],
    )
    def test_env_flag(self, monkeypatch, raw, expected):
        monkeypatch.setenv("SEVA_ENFORCE_CAPACITY", raw)
        assert config.env_flag("SEVA_ENFORCE_CAPACITY") is expected

    def test_env_flag_default(self, monkeypatch):
        monkeypatch.delenv("SEVA_ENFORCE_CAPACITY", raising=False)
        assert config.env_flag("SEVA_ENFORCE_CAPACITY") is False
        assert config.env_flag("SEVA_ENFORCE_CAPACITY", default=True) is True

    def test_overrides_win_over_environment(self, monkeypatch):
        monkeypatch.setenv("TEMPORAL_ENDPOINT", "temporal.internal:7233")
        monkeypatch.delenv("SEVA_TASK_QUEUE", raising=False)

        assert config.temporal_endpoint() == "temporal.internal:7233"
        assert config.temporal_endpoint("localhost:7233") == "localhost:7233"
        assert config.task_queue() == config.DEFAULT_TASK_QUEUE

    def test_unknown_log_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        config.setup_logging()

        assert logging.getLogger().level == logging.INFO


class TestConnectTemporal:
    @pytest.mark.asyncio
    async def test_retries_until_connected(self):
        client = MagicMock()
        with patch(
            "seva.config.Client.connect",
            new_callable=AsyncMock,
            side_effect=[unavailable(), unavailable(), client],
        ) as connect, patch(
            "seva.config.asyncio.sleep", new_callable=AsyncMock
        ) as sleep:
            result = await config.connect_temporal(
                "localhost:7233", attempts=5, delay_seconds=2
            )

        assert result is client
        assert connect.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [2, 2]
        assert connect.await_args.kwargs["namespace"] == "default"

    @pytest.mark.asyncio
    async def test_raises_last_error_when_attempts_run_out(self):
        with patch(
            "seva.config.Client.connect",
            new_callable=AsyncMock,
            side_effect=[unavailable(), unavailable()],
        ), patch(
            "seva.config.asyncio.sleep", new_callable=AsyncMock
        ) as sleep:
            with pytest.raises(RPCError):
                await config.connect_temporal(
                    "localhost:7233", attempts=2, delay_seconds=1
                )

        # No sleep after the final attempt
        assert sleep.await_count == 1
