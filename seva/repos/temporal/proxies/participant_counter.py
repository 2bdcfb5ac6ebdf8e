"""
Workflow-specific proxy for the PostgreSQL ParticipantCounterRepository.
This class is used *inside* Temporal workflows to call activities, so every
database access happens in an activity and the workflow stays
deterministic.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from temporalio import workflow
from temporalio.exceptions import ActivityError, ApplicationError

from seva.domain import ParticipantCounts
from seva.errors import NotFoundError
from seva.repositories import ParticipantCounterRepository
from seva.retry import RetryPolicy

logger = logging.getLogger(__name__)


class WorkflowParticipantCounterRepositoryProxy(ParticipantCounterRepository):
    """
    Workflow implementation of ParticipantCounterRepository that calls
    PostgreSQL activities.
    """

    def __init__(self, retry_policy: Optional[RetryPolicy] = None):
        self.activity_timeout = timedelta(seconds=30)
        policy = retry_policy or RetryPolicy()
        self.retry_policy = policy.to_temporal()
        # A service deleted mid-run stays deleted
        self.recount_retry_policy = policy.to_temporal(
            also_non_retryable=[NotFoundError.__name__]
        )
        logger.debug("Initialized WorkflowParticipantCounterRepositoryProxy")

    async def list_service_ids(self, temple_id: str) -> List[str]:
        logger.debug(
            "Workflow: Calling list_service_ids activity",
            extra={"temple_id": temple_id},
        )
        result = await workflow.execute_activity(
            "seva.reconcile.participant_counter.postgresql.list_service_ids",
            temple_id,
            start_to_close_timeout=self.activity_timeout,
            retry_policy=self.retry_policy,
        )
        return list(result)

    async def recalculate_counts(
        self, temple_id: str, service_id: str
    ) -> ParticipantCounts:
        logger.debug(
            "Workflow: Calling recalculate_counts activity",
            extra={"temple_id": temple_id, "service_id": service_id},
        )
        try:
            raw_result = await workflow.execute_activity(
                "seva.reconcile.participant_counter.postgresql"
                ".recalculate_counts",
                args=[temple_id, service_id],
                start_to_close_timeout=self.activity_timeout,
                retry_policy=self.recount_retry_policy,
            )
        except ActivityError as e:
            cause = e.cause
            if (
                isinstance(cause, ApplicationError)
                and cause.type == NotFoundError.__name__
            ):
                raise NotFoundError(cause.message) from e
            raise
        result = ParticipantCounts.model_validate(raw_result)
        logger.debug(
            "Workflow: recalculate_counts activity completed",
            extra={
                "service_id": service_id,
                "current": result.current,
                "pending": result.pending,
            },
        )
        return result
