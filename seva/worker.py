"""
Temporal worker for seva.

Hosts the participant reconciliation workflow and the PostgreSQL activities
it calls, and keeps one interval schedule per configured temple so counters
are rebuilt periodically.
"""

import asyncio
import logging
import os
from datetime import timedelta
from typing import Any, Callable, Sequence, cast

import asyncpg
from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleIntervalSpec,
    ScheduleSpec,
)
from temporalio.worker import Worker

from . import config
from .repos.postgresql import PostgreSQLRegistrationRepository, create_schema
from .repos.temporal import TemporalPostgreSQLParticipantCounterRepository
from .retry import RetryPolicy
from .workflows import ReconcileParticipantCountsWorkflow

logger = logging.getLogger(__name__)


async def ensure_reconcile_schedules(
    client: Client,
    temple_ids: Sequence[str],
    task_queue: str,
    interval_minutes: int,
) -> None:
    """Create one interval schedule per temple unless it already exists."""
    retry_policy = RetryPolicy.from_env()
    for temple_id in temple_ids:
        schedule_id = f"seva-reconcile-{temple_id}"
        schedule = Schedule(
            action=ScheduleActionStartWorkflow(
                ReconcileParticipantCountsWorkflow.run,
                args=[temple_id, retry_policy],
                id=f"reconcile-{temple_id}",
                task_queue=task_queue,
            ),
            spec=ScheduleSpec(
                intervals=[
                    ScheduleIntervalSpec(
                        every=timedelta(minutes=interval_minutes)
                    )
                ]
            ),
        )
        try:
            await client.create_schedule(schedule_id, schedule)
            logger.info(
                "Created reconciliation schedule",
                extra={
                    "schedule_id": schedule_id,
                    "interval_minutes": interval_minutes,
                },
            )
        except ScheduleAlreadyRunningError:
            logger.info(
                "Reconciliation schedule already exists",
                extra={"schedule_id": schedule_id},
            )


async def run_worker() -> None:
    """
    Run the Temporal worker.

    Reads DATABASE_URL, TEMPORAL_ENDPOINT, SEVA_TASK_QUEUE,
    SEVA_RECONCILE_TEMPLE_IDS and SEVA_RECONCILE_INTERVAL_MINUTES.
    """
    config.setup_logging()

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL must be set to run the worker")

    temporal_endpoint = config.temporal_endpoint()
    task_queue = config.task_queue()
    interval_minutes = config.reconcile_interval_minutes()

    logger.info(
        "Starting seva worker",
        extra={
            "temporal_endpoint": temporal_endpoint,
            "task_queue": task_queue,
        },
    )

    client = await config.connect_temporal(temporal_endpoint)

    pool = await asyncpg.create_pool(database_url)
    try:
        await create_schema(pool)

        registration_repo = PostgreSQLRegistrationRepository(pool)
        temporal_counter_repo = TemporalPostgreSQLParticipantCounterRepository(
            postgresql_repo=registration_repo
        )
        activities = [
            temporal_counter_repo.list_service_ids,
            temporal_counter_repo.recalculate_counts,
        ]

        await ensure_reconcile_schedules(
            client,
            config.reconcile_temple_ids(),
            task_queue,
            interval_minutes,
        )

        worker = Worker(
            client,
            task_queue=task_queue,
            workflows=[ReconcileParticipantCountsWorkflow],
            activities=cast(Sequence[Callable[..., Any]], activities),
        )
        logger.info(
            "Starting worker execution",
            extra={"activity_count": len(activities)},
        )
        await worker.run()
    finally:
        await pool.close()


def main() -> None:
    """Entry point for ``seva-worker``."""
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
