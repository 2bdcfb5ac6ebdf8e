"""
PostgreSQL implementation of RegistrationRepository.

Lock order is always service row first, registration row second. Every
compound operation therefore resolves the service id before taking any
lock, then locks the service with ``SELECT ... FOR UPDATE`` and re-reads
the registration under that lock.
"""

import logging
import uuid
from typing import Any, List, Mapping, Optional

from asyncpg import Connection, Pool, UniqueViolationError

from seva.domain import (
    ParticipantCounts,
    ParticipantDelta,
    RegistrationStatus,
    ServiceRegistration,
    StatusTransition,
    participant_delta,
    utcnow,
)
from seva.errors import (
    AlreadyExistsError,
    FailedPreconditionError,
    NotFoundError,
)
from seva.repositories import RegistrationRepository

from .service import lock_service

logger = logging.getLogger(__name__)


def row_to_registration(row: Mapping[str, Any]) -> ServiceRegistration:
    return ServiceRegistration.model_validate_json(row["data"])


async def _apply_delta(
    conn: Connection,
    temple_id: str,
    service_id: str,
    delta: ParticipantDelta,
) -> None:
    await conn.execute(
        """
        UPDATE services
        SET current_participants = GREATEST(current_participants + $3, 0),
            pending_participants = GREATEST(pending_participants + $4, 0),
            updated_at = $5
        WHERE temple_id = $1 AND service_id = $2
        """,
        temple_id,
        service_id,
        delta.current,
        delta.pending,
        utcnow(),
    )


class PostgreSQLRegistrationRepository(RegistrationRepository):
    """
    PostgreSQL implementation of RegistrationRepository.
    Registrations and the counters on their services change in one
    transaction.
    """

    def __init__(self, pool: Pool):
        """
        Initialize with an asyncpg connection pool.

        Args:
            pool: asyncpg connection pool for database operations
        """
        self.pool = pool
        logger.debug("Initialized PostgreSQLRegistrationRepository")

    async def generate_id(self) -> str:
        return str(uuid.uuid4())

    async def get(self, registration_id: str) -> Optional[ServiceRegistration]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT data FROM service_registrations
                WHERE registration_id = $1
                """,
                registration_id,
            )
        return row_to_registration(row) if row else None

    async def create_pending(
        self,
        registration_id: str,
        user_id: str,
        temple_id: str,
        service_id: str,
        message: Optional[str] = None,
    ) -> ServiceRegistration:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                service = await lock_service(conn, temple_id, service_id)

                existing = await conn.fetchval(
                    """
                    SELECT registration_id FROM service_registrations
                    WHERE user_id = $1 AND service_id = $2
                    """,
                    user_id,
                    service_id,
                )
                if existing is not None:
                    raise AlreadyExistsError(
                        "You are already registered for this service"
                    )
                if service is None:
                    raise NotFoundError("Service not found")

                registration = ServiceRegistration.pending_for(
                    registration_id, user_id, service, message
                )
                try:
                    await conn.execute(
                        """
                        INSERT INTO service_registrations (
                            registration_id, user_id, temple_id, service_id,
                            status, created_at, data
                        ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                        """,
                        registration.id,
                        registration.user_id,
                        registration.temple_id,
                        registration.service_id,
                        registration.status.value,
                        registration.created_at,
                        registration.model_dump_json(),
                    )
                except UniqueViolationError as e:
                    raise AlreadyExistsError(
                        "You are already registered for this service"
                    ) from e

                await _apply_delta(
                    conn,
                    temple_id,
                    service_id,
                    participant_delta(None, RegistrationStatus.PENDING),
                )

        logger.info(
            "Created pending registration in PostgreSQL",
            extra={
                "registration_id": registration_id,
                "user_id": user_id,
                "service_id": service_id,
            },
        )
        return registration

    async def transition_status(
        self,
        registration_id: str,
        new_status: RegistrationStatus,
        enforce_capacity: bool = False,
    ) -> StatusTransition:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                current = await self._read_registration(conn, registration_id)
                service = await lock_service(
                    conn, current.temple_id, current.service_id
                )
                if service is None:
                    raise NotFoundError("Service not found")
                current = await self._locked_row(conn, registration_id)

                old_status = current.status
                if (
                    enforce_capacity
                    and new_status == RegistrationStatus.APPROVED
                    and old_status != RegistrationStatus.APPROVED
                    and service.is_full
                ):
                    raise FailedPreconditionError(
                        "Service has reached its maximum participants"
                    )

                updated = current.model_copy(
                    update={"status": new_status, "updated_at": utcnow()}
                )
                await conn.execute(
                    """
                    UPDATE service_registrations
                    SET status = $2, data = $3
                    WHERE registration_id = $1
                    """,
                    registration_id,
                    new_status.value,
                    updated.model_dump_json(),
                )

                delta = participant_delta(old_status, new_status)
                await _apply_delta(
                    conn, current.temple_id, current.service_id, delta
                )

        logger.info(
            "Transitioned registration status in PostgreSQL",
            extra={
                "registration_id": registration_id,
                "old_status": old_status.value,
                "new_status": new_status.value,
            },
        )
        return StatusTransition(
            registration=updated,
            old_status=old_status,
            new_status=new_status,
            delta=delta,
        )

    async def delete(self, registration_id: str) -> ServiceRegistration:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                current = await self._read_registration(conn, registration_id)
                service = await lock_service(
                    conn, current.temple_id, current.service_id
                )
                current = await self._locked_row(conn, registration_id)

                if service is not None:
                    await _apply_delta(
                        conn,
                        current.temple_id,
                        current.service_id,
                        participant_delta(current.status, None),
                    )
                await conn.execute(
                    """
                    DELETE FROM service_registrations
                    WHERE registration_id = $1
                    """,
                    registration_id,
                )

        logger.info(
            "Deleted registration from PostgreSQL",
            extra={
                "registration_id": registration_id,
                "status": current.status.value,
            },
        )
        return current

    async def list_for_user(self, user_id: str) -> List[ServiceRegistration]:
        return await self._fetch(
            "WHERE user_id = $1 ORDER BY created_at DESC", user_id
        )

    async def list_for_temple(
        self, temple_id: str
    ) -> List[ServiceRegistration]:
        return await self._fetch(
            "WHERE temple_id = $1 ORDER BY created_at DESC", temple_id
        )

    async def list_for_service(
        self, temple_id: str, service_id: str
    ) -> List[ServiceRegistration]:
        return await self._fetch(
            "WHERE temple_id = $1 AND service_id = $2 "
            "ORDER BY created_at DESC",
            temple_id,
            service_id,
        )

    async def list_service_ids(self, temple_id: str) -> List[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT service_id FROM services
                WHERE temple_id = $1
                ORDER BY service_id
                """,
                temple_id,
            )
        return [row["service_id"] for row in rows]

    async def recalculate_counts(
        self, temple_id: str, service_id: str
    ) -> ParticipantCounts:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                if await lock_service(conn, temple_id, service_id) is None:
                    raise NotFoundError("Service not found")

                row = await conn.fetchrow(
                    """
                    SELECT
                        COUNT(*) FILTER (WHERE status = 'approved')
                            AS current,
                        COUNT(*) FILTER (WHERE status = 'pending')
                            AS pending
                    FROM service_registrations
                    WHERE temple_id = $1 AND service_id = $2
                    """,
                    temple_id,
                    service_id,
                )
                counts = ParticipantCounts(
                    current=row["current"], pending=row["pending"]
                )
                await conn.execute(
                    """
                    UPDATE services
                    SET current_participants = $3,
                        pending_participants = $4,
                        updated_at = $5
                    WHERE temple_id = $1 AND service_id = $2
                    """,
                    temple_id,
                    service_id,
                    counts.current,
                    counts.pending,
                    utcnow(),
                )

        logger.info(
            "Recalculated participant counters in PostgreSQL",
            extra={
                "service_id": service_id,
                "current": counts.current,
                "pending": counts.pending,
            },
        )
        return counts

    async def _read_registration(
        self, conn: Connection, registration_id: str
    ) -> ServiceRegistration:
        # Unlocked: only the immutable temple and service ids are used
        row = await conn.fetchrow(
            "SELECT data FROM service_registrations WHERE registration_id = $1",
            registration_id,
        )
        if row is None:
            raise NotFoundError("Registration not found")
        return row_to_registration(row)

    async def _locked_row(
        self, conn: Connection, registration_id: str
    ) -> ServiceRegistration:
        row = await conn.fetchrow(
            """
            SELECT data FROM service_registrations
            WHERE registration_id = $1
            FOR UPDATE
            """,
            registration_id,
        )
        if row is None:
            raise NotFoundError("Registration not found")
        return row_to_registration(row)

    async def _fetch(
        self, clause: str, *args: Any
    ) -> List[ServiceRegistration]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT data FROM service_registrations {clause}", *args
            )
        return [row_to_registration(row) for row in rows]
