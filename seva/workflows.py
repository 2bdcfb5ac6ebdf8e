"""
Temporal workflows for seva.

Workflows orchestrate use cases in a deterministic manner; all store access
goes through activity proxies.
"""

import logging
from typing import Optional

from temporalio import workflow

from .domain import ReconciliationReport
from .repos.temporal.proxies.participant_counter import (
    WorkflowParticipantCounterRepositoryProxy,
)
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


@workflow.defn
class ReconcileParticipantCountsWorkflow:
    """
    Rebuilds the participant counters of every service in one temple from
    the registrations that reference them.

    Started on an interval by the worker's schedule, or on demand by
    ``seva-reconcile --workflow``.
    """

    @workflow.run
    async def run(
        self,
        temple_id: str,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> ReconciliationReport:
        logger.info(
            "Starting ReconcileParticipantCountsWorkflow",
            extra={"temple_id": temple_id},
        )

        counter_repo = WorkflowParticipantCounterRepositoryProxy(
            retry_policy=retry_policy
        )

        from seva.usecase import ParticipantReconciliationUseCase

        use_case = ParticipantReconciliationUseCase(counter_repo=counter_repo)

        try:
            report = await use_case.reconcile_temple(temple_id)
        except Exception as e:
            logger.error(
                "ReconcileParticipantCountsWorkflow failed",
                extra={"temple_id": temple_id, "error": str(e)},
                exc_info=True,
            )
            raise

        logger.info(
            "ReconcileParticipantCountsWorkflow completed",
            extra={
                "temple_id": temple_id,
                "service_count": len(report.counts),
            },
        )
        return report
