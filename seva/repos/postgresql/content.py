"""
PostgreSQL implementations of ServiceTypeRepository and EventRepository.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from asyncpg import Pool

from seva.domain import Event, EventParticipant, ServiceType, utcnow
from seva.errors import (
    AlreadyExistsError,
    FailedPreconditionError,
    NotFoundError,
)
from seva.repositories import EventRepository, ServiceTypeRepository

logger = logging.getLogger(__name__)


class PostgreSQLServiceTypeRepository(ServiceTypeRepository):
    def __init__(self, pool: Pool):
        self.pool = pool

    async def generate_id(self) -> str:
        return str(uuid.uuid4())

    async def get(
        self, temple_id: str, service_type_id: str
    ) -> Optional[ServiceType]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT data FROM service_types
                WHERE temple_id = $1 AND service_type_id = $2
                """,
                temple_id,
                service_type_id,
            )
        return ServiceType.model_validate_json(row["data"]) if row else None

    async def find_by_name(
        self, temple_id: str, name: str
    ) -> Optional[ServiceType]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT data FROM service_types
                WHERE temple_id = $1 AND name = $2
                LIMIT 1
                """,
                temple_id,
                name,
            )
        return ServiceType.model_validate_json(row["data"]) if row else None

    async def save(self, service_type: ServiceType) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO service_types (
                    temple_id, service_type_id, name, data
                ) VALUES ($1, $2, $3, $4)
                ON CONFLICT (temple_id, service_type_id)
                DO UPDATE SET name = EXCLUDED.name, data = EXCLUDED.data
                """,
                service_type.temple_id,
                service_type.id,
                service_type.name,
                service_type.model_dump_json(),
            )

    async def delete(self, temple_id: str, service_type_id: str) -> bool:
        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                """
                DELETE FROM service_types
                WHERE temple_id = $1 AND service_type_id = $2
                RETURNING service_type_id
                """,
                temple_id,
                service_type_id,
            )
        return deleted is not None

    async def list(self, temple_id: str) -> List[ServiceType]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT data FROM service_types
                WHERE temple_id = $1
                ORDER BY name
                """,
                temple_id,
            )
        return [ServiceType.model_validate_json(row["data"]) for row in rows]


class PostgreSQLEventRepository(EventRepository):
    def __init__(self, pool: Pool):
        self.pool = pool

    async def generate_id(self) -> str:
        return str(uuid.uuid4())

    async def get(self, temple_id: str, event_id: str) -> Optional[Event]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT data FROM events
                WHERE temple_id = $1 AND event_id = $2
                """,
                temple_id,
                event_id,
            )
        return Event.model_validate_json(row["data"]) if row else None

    async def save(self, event: Event) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO events (temple_id, event_id, start_date, data)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (temple_id, event_id)
                DO UPDATE SET
                    start_date = EXCLUDED.start_date,
                    data = jsonb_set(
                        EXCLUDED.data,
                        '{participants}',
                        COALESCE(events.data->'participants', '[]')
                    )
                """,
                event.temple_id,
                event.id,
                event.start_date,
                event.model_dump_json(),
            )
        logger.info(
            "Saved event to PostgreSQL",
            extra={"event_id": event.id, "temple_id": event.temple_id},
        )

    async def delete(self, temple_id: str, event_id: str) -> bool:
        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                """
                DELETE FROM events
                WHERE temple_id = $1 AND event_id = $2
                RETURNING event_id
                """,
                temple_id,
                event_id,
            )
        return deleted is not None

    async def list(
        self,
        temple_id: str,
        before: Optional[datetime] = None,
        limit: int = 12,
    ) -> List[Event]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT data FROM events
                WHERE temple_id = $1
                  AND ($2::timestamptz IS NULL OR start_date < $2)
                ORDER BY start_date DESC
                LIMIT $3
                """,
                temple_id,
                before,
                limit,
            )
        return [Event.model_validate_json(row["data"]) for row in rows]

    async def add_participant(
        self, temple_id: str, event_id: str, participant: EventParticipant
    ) -> Event:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                event = await self._lock_event(conn, temple_id, event_id)
                if not event.registration_required:
                    raise FailedPreconditionError(
                        "Event does not take registrations"
                    )
                if event.participant(participant.user_id) is not None:
                    raise AlreadyExistsError(
                        "You are already registered for this event"
                    )
                if event.is_full:
                    raise FailedPreconditionError("Event is at full capacity")

                updated = event.model_copy(
                    update={
                        "participants": [*event.participants, participant],
                        "updated_at": utcnow(),
                    }
                )
                await self._write_event(conn, updated)

        logger.info(
            "Added event participant in PostgreSQL",
            extra={"event_id": event_id, "user_id": participant.user_id},
        )
        return updated

    async def remove_participant(
        self, temple_id: str, event_id: str, user_id: str
    ) -> Event:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                event = await self._lock_event(conn, temple_id, event_id)
                if event.participant(user_id) is None:
                    raise NotFoundError(
                        "User is not registered for this event"
                    )
                updated = event.model_copy(
                    update={
                        "participants": [
                            p
                            for p in event.participants
                            if p.user_id != user_id
                        ],
                        "updated_at": utcnow(),
                    }
                )
                await self._write_event(conn, updated)
        return updated

    async def _lock_event(self, conn, temple_id: str, event_id: str) -> Event:
        row = await conn.fetchrow(
            """
            SELECT data FROM events
            WHERE temple_id = $1 AND event_id = $2
            FOR UPDATE
            """,
            temple_id,
            event_id,
        )
        if row is None:
            raise NotFoundError("Event not found")
        return Event.model_validate_json(row["data"])

    async def _write_event(self, conn, event: Event) -> None:
        await conn.execute(
            """
            UPDATE events SET data = $3
            WHERE temple_id = $1 AND event_id = $2
            """,
            event.temple_id,
            event.id,
            event.model_dump_json(),
        )
