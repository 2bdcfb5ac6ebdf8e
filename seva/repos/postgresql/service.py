"""
PostgreSQL implementation of ServiceRepository.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, List, Mapping, Optional

from asyncpg import Connection, Pool

from seva.domain import Service, ServiceUpdate, utcnow
from seva.errors import FailedPreconditionError, NotFoundError
from seva.repositories import ServiceRepository
from seva.validation import build_domain_model

logger = logging.getLogger(__name__)

SERVICE_COLUMNS = (
    "data, current_participants, pending_participants, updated_at"
)


def row_to_service(row: Mapping[str, Any]) -> Service:
    """Merge the authoritative counter columns over the stored document."""
    service = Service.model_validate_json(row["data"])
    return service.model_copy(
        update={
            "current_participants": row["current_participants"],
            "pending_participants": row["pending_participants"],
            "updated_at": row["updated_at"],
        }
    )


async def lock_service(
    conn: Connection, temple_id: str, service_id: str
) -> Optional[Service]:
    """Read a service row and hold its lock until the transaction ends.

    Every compound operation on a service's registrations takes this lock
    first, so writers touching the same service are serialized.
    """
    row = await conn.fetchrow(
        f"""
        SELECT {SERVICE_COLUMNS}
        FROM services
        WHERE temple_id = $1 AND service_id = $2
        FOR UPDATE
        """,
        temple_id,
        service_id,
    )
    return row_to_service(row) if row else None


class PostgreSQLServiceRepository(ServiceRepository):
    """
    PostgreSQL implementation of ServiceRepository.
    Uses PostgreSQL for persistence of services.
    """

    def __init__(self, pool: Pool):
        """
        Initialize with an asyncpg connection pool.

        Args:
            pool: asyncpg connection pool for database operations
        """
        self.pool = pool
        logger.debug("Initialized PostgreSQLServiceRepository")

    async def generate_id(self) -> str:
        """Generate a unique service ID using uuid4"""
        return str(uuid.uuid4())

    async def get(self, temple_id: str, service_id: str) -> Optional[Service]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {SERVICE_COLUMNS}
                FROM services
                WHERE temple_id = $1 AND service_id = $2
                """,
                temple_id,
                service_id,
            )
        return row_to_service(row) if row else None

    async def create(self, service: Service) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO services (
                    temple_id, service_id, current_participants,
                    pending_participants, updated_at, data
                ) VALUES ($1, $2, $3, $4, $5, $6)
                """,
                service.temple_id,
                service.id,
                service.current_participants,
                service.pending_participants,
                service.updated_at,
                service.model_dump_json(),
            )

        logger.info(
            "Saved service to PostgreSQL",
            extra={"service_id": service.id, "temple_id": service.temple_id},
        )

    async def apply_update(
        self, temple_id: str, service_id: str, update: ServiceUpdate
    ) -> Optional[Service]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                current = await lock_service(conn, temple_id, service_id)
                if current is None:
                    return None

                fields = current.model_dump()
                fields.update(update.model_dump(exclude_unset=True))
                fields["updated_at"] = utcnow()
                updated = build_domain_model(Service, **fields)

                # Counter columns are left alone
                await conn.execute(
                    """
                    UPDATE services
                    SET data = $3, updated_at = $4
                    WHERE temple_id = $1 AND service_id = $2
                    """,
                    temple_id,
                    service_id,
                    updated.model_dump_json(),
                    updated.updated_at,
                )

        logger.info(
            "Updated service in PostgreSQL",
            extra={
                "service_id": service_id,
                "fields": sorted(update.changed_fields()),
            },
        )
        return updated

    async def delete(
        self, temple_id: str, service_id: str, force: bool = False
    ) -> int:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                if await lock_service(conn, temple_id, service_id) is None:
                    raise NotFoundError("Service not found")

                registration_count = await conn.fetchval(
                    """
                    SELECT COUNT(*) FROM service_registrations
                    WHERE temple_id = $1 AND service_id = $2
                    """,
                    temple_id,
                    service_id,
                )
                if registration_count and not force:
                    raise FailedPreconditionError(
                        f"Service has {registration_count} registrations; "
                        "delete with force to remove them"
                    )

                await conn.execute(
                    """
                    DELETE FROM service_registrations
                    WHERE temple_id = $1 AND service_id = $2
                    """,
                    temple_id,
                    service_id,
                )
                await conn.execute(
                    """
                    DELETE FROM services
                    WHERE temple_id = $1 AND service_id = $2
                    """,
                    temple_id,
                    service_id,
                )

        logger.info(
            "Deleted service from PostgreSQL",
            extra={
                "service_id": service_id,
                "temple_id": temple_id,
                "registrations_removed": registration_count,
            },
        )
        return int(registration_count)

    async def list(
        self,
        temple_id: str,
        after: Optional[datetime] = None,
        limit: int = 12,
    ) -> List[Service]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {SERVICE_COLUMNS}
                FROM services
                WHERE temple_id = $1
                  AND ($2::timestamptz IS NULL OR updated_at < $2)
                ORDER BY updated_at DESC
                LIMIT $3
                """,
                temple_id,
                after,
                limit,
            )

        services = []
        for row in rows:
            try:
                services.append(row_to_service(row))
            except Exception as e:
                logger.warning(
                    f"Failed to parse service data: {e}",
                    extra={"temple_id": temple_id},
                )
        return services
