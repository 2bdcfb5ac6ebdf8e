"""
Tests for the reconciliation workflow, its activity proxy and activities.

These tests focus on verifying the orchestration of activities by workflows,
not on testing business logic which should be tested in use case tests.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from temporalio.exceptions import ActivityError, ApplicationError

from seva.domain import ParticipantCounts, ReconciliationReport
from seva.errors import NotFoundError, UnknownError
from seva.repos.postgresql import PostgreSQLRegistrationRepository
from seva.repos.temporal import TemporalPostgreSQLParticipantCounterRepository
from seva.repos.temporal.proxies import (
    WorkflowParticipantCounterRepositoryProxy,
)
from seva.retry import RetryPolicy
from seva.workflows import ReconcileParticipantCountsWorkflow

LIST_ACTIVITY = "seva.reconcile.participant_counter.postgresql.list_service_ids"
RECALCULATE_ACTIVITY = (
    "seva.reconcile.participant_counter.postgresql.recalculate_counts"
)


def activity_failure(cause: Exception) -> ActivityError:
    error = ActivityError(
        "Activity task failed",
        scheduled_event_id=5,
        started_event_id=6,
        identity="worker-1",
        activity_type=RECALCULATE_ACTIVITY,
        activity_id="2",
        retry_state=None,
    )
    error.__cause__ = cause
    return error


class TestReconcileParticipantCountsWorkflow:
    @pytest.mark.asyncio
    async def test_recounts_every_service_of_the_temple(self):
        """The workflow lists the services, then recounts each one."""
        with patch(
            "temporalio.workflow.execute_activity",
            side_effect=[
                ["svc-1", "svc-2"],
                {"current": 2, "pending": 1},
                {"current": 0, "pending": 3},
            ],
        ) as mock_execute_activity:
            report = await ReconcileParticipantCountsWorkflow().run(
                "temple-1"
            )

        assert report == ReconciliationReport(
            temple_id="temple-1",
            counts={
                "svc-1": ParticipantCounts(current=2, pending=1),
                "svc-2": ParticipantCounts(current=0, pending=3),
            },
        )
        names = [c.args[0] for c in mock_execute_activity.call_args_list]
        assert names == [
            LIST_ACTIVITY,
            RECALCULATE_ACTIVITY,
            RECALCULATE_ACTIVITY,
        ]
        assert mock_execute_activity.call_args_list[1].kwargs["args"] == [
            "temple-1",
            "svc-1",
        ]

    @pytest.mark.asyncio
    async def test_temple_without_services(self):
        with patch(
            "temporalio.workflow.execute_activity", side_effect=[[]]
        ) as mock_execute_activity:
            report = await ReconcileParticipantCountsWorkflow().run(
                "temple-1"
            )

        assert report.counts == {}
        mock_execute_activity.assert_called_once()

    @pytest.mark.asyncio
    async def test_delegates_to_use_case(self):
        expected = ReconciliationReport(temple_id="temple-1")
        with patch(
            "seva.usecase.ParticipantReconciliationUseCase"
        ) as mock_use_case_class:
            mock_use_case = AsyncMock()
            mock_use_case.reconcile_temple.return_value = expected
            mock_use_case_class.return_value = mock_use_case

            report = await ReconcileParticipantCountsWorkflow().run(
                "temple-1", RetryPolicy(max_attempts=5)
            )

        assert report is expected
        mock_use_case.reconcile_temple.assert_awaited_once_with("temple-1")
        counter_repo = mock_use_case_class.call_args.kwargs["counter_repo"]
        assert isinstance(
            counter_repo, WorkflowParticipantCounterRepositoryProxy
        )
        assert counter_repo.retry_policy.maximum_attempts == 5

    @pytest.mark.asyncio
    async def test_deleted_service_is_skipped(self):
        with patch(
            "temporalio.workflow.execute_activity",
            side_effect=[
                ["svc-gone", "svc-2"],
                activity_failure(
                    ApplicationError("Service not found", type="NotFoundError")
                ),
                {"current": 1, "pending": 0},
            ],
        ):
            report = await ReconcileParticipantCountsWorkflow().run(
                "temple-1"
            )

        assert report.skipped == ["svc-gone"]
        assert report.counts == {"svc-2": ParticipantCounts(current=1)}

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        with patch(
            "temporalio.workflow.execute_activity",
            side_effect=UnknownError("database unavailable"),
        ):
            with pytest.raises(UnknownError):
                await ReconcileParticipantCountsWorkflow().run("temple-1")


class TestWorkflowParticipantCounterRepositoryProxy:
    @pytest.mark.asyncio
    async def test_activity_options(self):
        proxy = WorkflowParticipantCounterRepositoryProxy(
            RetryPolicy(max_attempts=4)
        )
        with patch(
            "temporalio.workflow.execute_activity",
            return_value={"current": 1, "pending": 0},
        ) as mock_execute_activity:
            counts = await proxy.recalculate_counts("temple-1", "svc-1")

        assert counts == ParticipantCounts(current=1, pending=0)
        kwargs = mock_execute_activity.call_args.kwargs
        assert kwargs["start_to_close_timeout"].total_seconds() == 30
        assert kwargs["retry_policy"].maximum_attempts == 4
        assert "NotFoundError" in kwargs["retry_policy"].non_retryable_error_types

    @pytest.mark.asyncio
    async def test_other_activity_failures_are_not_translated(self):
        proxy = WorkflowParticipantCounterRepositoryProxy()
        failure = activity_failure(
            ApplicationError("deadlock detected", type="UnknownError")
        )
        with patch(
            "temporalio.workflow.execute_activity", side_effect=failure
        ):
            with pytest.raises(ActivityError):
                await proxy.recalculate_counts("temple-1", "svc-1")

    @pytest.mark.asyncio
    async def test_missing_service_raises_not_found(self):
        proxy = WorkflowParticipantCounterRepositoryProxy()
        failure = activity_failure(
            ApplicationError("Service not found", type="NotFoundError")
        )
        with patch(
            "temporalio.workflow.execute_activity", side_effect=failure
        ):
            with pytest.raises(NotFoundError, match="Service not found"):
                await proxy.recalculate_counts("temple-1", "svc-1")


class TestTemporalPostgreSQLParticipantCounterRepository:
    @pytest.mark.asyncio
    async def test_activities_delegate_to_postgresql_repository(self):
        postgresql_repo = MagicMock(spec=PostgreSQLRegistrationRepository)
        postgresql_repo.list_service_ids = AsyncMock(return_value=["svc-1"])
        postgresql_repo.recalculate_counts = AsyncMock(
            return_value=ParticipantCounts(current=3, pending=0)
        )
        activities = TemporalPostgreSQLParticipantCounterRepository(
            postgresql_repo
        )

        assert await activities.list_service_ids("temple-1") == ["svc-1"]
        assert await activities.recalculate_counts(
            "temple-1", "svc-1"
        ) == ParticipantCounts(current=3, pending=0)
        postgresql_repo.recalculate_counts.assert_awaited_once_with(
            "temple-1", "svc-1"
        )
