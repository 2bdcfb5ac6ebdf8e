"""
Temporal Activity implementation of ParticipantCounterRepository.
Delegates calls to a concrete PostgreSQLRegistrationRepository instance.
"""

import logging
from typing import List

from temporalio import activity

from seva.domain import ParticipantCounts
from seva.repositories import ParticipantCounterRepository
from seva.repos.postgresql.registration import (
    PostgreSQLRegistrationRepository,
)

logger = logging.getLogger(__name__)


class TemporalPostgreSQLParticipantCounterRepository(
    ParticipantCounterRepository
):
    """
    Temporal Activity implementation of ParticipantCounterRepository.
    Delegates calls to a concrete PostgreSQLRegistrationRepository instance.
    """

    def __init__(self, postgresql_repo: PostgreSQLRegistrationRepository):
        """
        Initialize with a concrete PostgreSQLRegistrationRepository.

        Args:
            postgresql_repo: The concrete repository to delegate calls to
        """
        self._postgresql_repo = postgresql_repo
        logger.info(
            "TemporalPostgreSQLParticipantCounterRepository initialized "
            "with %s",
            postgresql_repo.__class__.__name__,
        )

    @activity.defn(
        name="seva.reconcile.participant_counter.postgresql.list_service_ids"
    )
    async def list_service_ids(self, temple_id: str) -> List[str]:
        """Activity to list the ids of every service in a temple."""
        logger.info(
            "Activity: Listing service ids", extra={"temple_id": temple_id}
        )
        return await self._postgresql_repo.list_service_ids(temple_id)

    @activity.defn(
        name="seva.reconcile.participant_counter.postgresql.recalculate_counts"
    )
    async def recalculate_counts(
        self, temple_id: str, service_id: str
    ) -> ParticipantCounts:
        """Activity to recount one service's registrations."""
        logger.info(
            "Activity: Recalculating participant counters",
            extra={"temple_id": temple_id, "service_id": service_id},
        )
        return await self._postgresql_repo.recalculate_counts(
            temple_id, service_id
        )
