"""
CLI for rebuilding participant counters.

Counters on a service are derived from its registrations. This command
recounts them for every service of the given temples, either directly
against PostgreSQL or by starting the reconciliation workflow on the
Temporal worker.
"""

import asyncio
import logging
import os
import sys
import uuid
from typing import List, Optional, Tuple

import asyncpg
import click

from seva import config
from seva.domain import ReconciliationReport
from seva.repos.postgresql import PostgreSQLRegistrationRepository
from seva.retry import RetryPolicy
from seva.usecase import ParticipantReconciliationUseCase
from seva.workflows import ReconcileParticipantCountsWorkflow

logger = logging.getLogger(__name__)


async def _reconcile_directly(
    temple_ids: Tuple[str, ...], database_url: str
) -> List[ReconciliationReport]:
    pool = await asyncpg.create_pool(database_url)
    try:
        use_case = ParticipantReconciliationUseCase(
            counter_repo=PostgreSQLRegistrationRepository(pool)
        )
        return [
            await use_case.reconcile_temple(temple_id)
            for temple_id in temple_ids
        ]
    finally:
        await pool.close()


async def _reconcile_with_workflow(
    temple_ids: Tuple[str, ...], temporal_endpoint: str, task_queue: str
) -> List[ReconciliationReport]:
    client = await config.connect_temporal(
        temporal_endpoint, attempts=3, delay_seconds=2
    )
    retry_policy = RetryPolicy.from_env()

    reports = []
    for temple_id in temple_ids:
        workflow_id = f"reconcile-{temple_id}-manual-{uuid.uuid4().hex[:8]}"
        click.echo(f"Starting workflow {workflow_id}")
        handle = await client.start_workflow(
            ReconcileParticipantCountsWorkflow.run,
            args=[temple_id, retry_policy],
            id=workflow_id,
            task_queue=task_queue,
        )
        result = await handle.result()
        reports.append(ReconciliationReport.model_validate(result))
    return reports


def _print_report(report: ReconciliationReport) -> None:
    click.echo(f"Temple {report.temple_id}: {len(report.counts)} services")
    for service_id, counts in sorted(report.counts.items()):
        click.echo(
            f"  {service_id}: current={counts.current} "
            f"pending={counts.pending}"
        )
    for service_id in report.skipped:
        click.echo(f"  {service_id}: skipped, service no longer exists")


@click.command()
@click.option(
    "--temple-id",
    "temple_ids",
    multiple=True,
    required=True,
    help="Temple whose services are recounted (repeatable)",
)
@click.option(
    "--workflow",
    "use_workflow",
    is_flag=True,
    help="Run through the Temporal worker instead of the database directly",
)
@click.option(
    "--database-url",
    default=None,
    help="PostgreSQL DSN (defaults to DATABASE_URL)",
)
@click.option(
    "--temporal-endpoint",
    default=None,
    help="Temporal server address (defaults to TEMPORAL_ENDPOINT or "
    f"{config.DEFAULT_TEMPORAL_ENDPOINT})",
)
@click.option(
    "--task-queue",
    default=None,
    help="Task queue (defaults to SEVA_TASK_QUEUE or "
    f"{config.DEFAULT_TASK_QUEUE})",
)
def main(
    temple_ids: Tuple[str, ...],
    use_workflow: bool,
    database_url: Optional[str],
    temporal_endpoint: Optional[str],
    task_queue: Optional[str],
) -> None:
    """Recalculate participant counters for the given temples."""
    config.setup_logging()

    try:
        if use_workflow:
            reports = asyncio.run(
                _reconcile_with_workflow(
                    temple_ids,
                    config.temporal_endpoint(temporal_endpoint),
                    config.task_queue(task_queue),
                )
            )
        else:
            database_url = database_url or os.environ.get("DATABASE_URL")
            if not database_url:
                click.echo(
                    "Error: --database-url or DATABASE_URL is required",
                    err=True,
                )
                sys.exit(2)
            reports = asyncio.run(_reconcile_directly(temple_ids, database_url))
    except Exception as e:
        logger.error(
            "Reconciliation failed",
            extra={"temple_ids": list(temple_ids), "error": str(e)},
            exc_info=True,
        )
        click.echo(f"Reconciliation failed: {e}", err=True)
        sys.exit(1)

    for report in reports:
        _print_report(report)
    click.echo("Reconciliation completed successfully!")


if __name__ == "__main__":
    main()
