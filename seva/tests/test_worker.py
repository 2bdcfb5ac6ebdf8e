"""
Tests for worker helpers: schedule registration and configuration.
"""

from unittest.mock import AsyncMock

import pytest
from temporalio.client import ScheduleAlreadyRunningError

from seva.worker import ensure_reconcile_schedules, run_worker


class TestEnsureReconcileSchedules:
    @pytest.mark.asyncio
    async def test_creates_one_schedule_per_temple(self):
        client = AsyncMock()

        await ensure_reconcile_schedules(
            client, ["temple-1", "temple-2"], "seva-task-queue", 30
        )

        schedule_ids = [
            c.args[0] for c in client.create_schedule.await_args_list
        ]
        assert schedule_ids == [
            "seva-reconcile-temple-1",
            "seva-reconcile-temple-2",
        ]
        schedule = client.create_schedule.await_args_list[0].args[1]
        assert schedule.action.task_queue == "seva-task-queue"
        assert schedule.spec.intervals[0].every.total_seconds() == 1800

    @pytest.mark.asyncio
    async def test_existing_schedule_is_left_alone(self):
        client = AsyncMock()
        client.create_schedule.side_effect = [
            ScheduleAlreadyRunningError(),
            None,
        ]

        await ensure_reconcile_schedules(
            client, ["temple-1", "temple-2"], "seva-task-queue", 60
        )

        assert client.create_schedule.await_count == 2


@pytest.mark.asyncio
async def test_worker_requires_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        await run_worker()
