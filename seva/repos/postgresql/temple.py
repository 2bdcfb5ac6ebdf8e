"""
PostgreSQL implementations of TempleRepository and AdminRepository.
"""

import logging
import uuid
from typing import List, Optional

from asyncpg import Pool, UniqueViolationError

from seva.domain import AdminRecord, MemberRole, Temple, TempleMember
from seva.errors import AlreadyExistsError
from seva.repositories import AdminRepository, TempleRepository

logger = logging.getLogger(__name__)

TEMPLE_SCOPED_TABLES = (
    "service_registrations",
    "services",
    "temple_members",
    "service_types",
    "events",
)


class PostgreSQLTempleRepository(TempleRepository):
    def __init__(self, pool: Pool):
        self.pool = pool
        logger.debug("Initialized PostgreSQLTempleRepository")

    async def generate_id(self) -> str:
        return str(uuid.uuid4())

    async def get(self, temple_id: str) -> Optional[Temple]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM temples WHERE temple_id = $1", temple_id
            )
        return Temple.model_validate_json(row["data"]) if row else None

    async def save(self, temple: Temple) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO temples (temple_id, name, data)
                VALUES ($1, $2, $3)
                ON CONFLICT (temple_id)
                DO UPDATE SET name = EXCLUDED.name, data = EXCLUDED.data
                """,
                temple.id,
                temple.name,
                temple.model_dump_json(),
            )

    async def delete(self, temple_id: str) -> bool:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                deleted = await conn.fetchval(
                    "DELETE FROM temples WHERE temple_id = $1 "
                    "RETURNING temple_id",
                    temple_id,
                )
                if deleted is None:
                    return False
                for table in TEMPLE_SCOPED_TABLES:
                    await conn.execute(
                        f"DELETE FROM {table} WHERE temple_id = $1",
                        temple_id,
                    )

        logger.info(
            "Deleted temple and scoped documents from PostgreSQL",
            extra={"temple_id": temple_id},
        )
        return True

    async def list_all(self) -> List[Temple]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT data FROM temples ORDER BY name")
        return [Temple.model_validate_json(row["data"]) for row in rows]

    async def add_member(
        self,
        temple_id: str,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> TempleMember:
        member = TempleMember(
            id=str(uuid.uuid4()),
            temple_id=temple_id,
            user_id=user_id,
            role=role,
        )
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO temple_members (temple_id, user_id, data)
                    VALUES ($1, $2, $3)
                    """,
                    temple_id,
                    user_id,
                    member.model_dump_json(),
                )
        except UniqueViolationError as e:
            raise AlreadyExistsError(
                "User is already a member of this temple"
            ) from e
        return member

    async def get_member(
        self, temple_id: str, user_id: str
    ) -> Optional[TempleMember]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT data FROM temple_members
                WHERE temple_id = $1 AND user_id = $2
                """,
                temple_id,
                user_id,
            )
        return TempleMember.model_validate_json(row["data"]) if row else None

    async def remove_member(self, temple_id: str, user_id: str) -> bool:
        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                """
                DELETE FROM temple_members
                WHERE temple_id = $1 AND user_id = $2
                RETURNING user_id
                """,
                temple_id,
                user_id,
            )
        return deleted is not None

    async def list_members(self, temple_id: str) -> List[TempleMember]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT data FROM temple_members WHERE temple_id = $1",
                temple_id,
            )
        return [TempleMember.model_validate_json(row["data"]) for row in rows]

    async def list_member_temple_ids(self, user_id: str) -> List[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT temple_id FROM temple_members
                WHERE user_id = $1
                ORDER BY temple_id
                """,
                user_id,
            )
        return [row["temple_id"] for row in rows]


class PostgreSQLAdminRepository(AdminRepository):
    def __init__(self, pool: Pool):
        self.pool = pool

    async def get(self, uid: str) -> Optional[AdminRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM admins WHERE uid = $1", uid
            )
        return AdminRecord.model_validate_json(row["data"]) if row else None

    async def save(self, record: AdminRecord) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO admins (uid, temple_id, data)
                VALUES ($1, $2, $3)
                ON CONFLICT (uid)
                DO UPDATE SET
                    temple_id = EXCLUDED.temple_id,
                    data = EXCLUDED.data
                """,
                record.uid,
                record.temple_id,
                record.model_dump_json(),
            )
        logger.info(
            "Saved admin record to PostgreSQL",
            extra={"uid": record.uid, "temple_id": record.temple_id},
        )

    async def delete(self, uid: str) -> bool:
        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                "DELETE FROM admins WHERE uid = $1 RETURNING uid", uid
            )
        return deleted is not None

    async def list_for_temple(self, temple_id: str) -> List[AdminRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT data FROM admins WHERE temple_id = $1", temple_id
            )
        return [AdminRecord.model_validate_json(row["data"]) for row in rows]
