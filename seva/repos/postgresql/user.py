"""
PostgreSQL implementations of the per-user repositories: notifications,
quick links, profiles and bearer-token identity.
"""

import logging
import uuid
from typing import List, Optional

from asyncpg import Pool

from seva.domain import Notification, QuickLink, UserProfile
from seva.repositories import (
    IdentityRepository,
    NotificationRepository,
    ProfileRepository,
    QuickLinkRepository,
)

logger = logging.getLogger(__name__)


class PostgreSQLNotificationRepository(NotificationRepository):
    def __init__(self, pool: Pool):
        self.pool = pool

    async def generate_id(self) -> str:
        return str(uuid.uuid4())

    async def create(self, notification: Notification) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO notifications (
                    notification_id, user_id, read, created_at, data
                ) VALUES ($1, $2, $3, $4, $5)
                """,
                notification.id,
                notification.user_id,
                notification.read,
                notification.timestamp,
                notification.model_dump_json(),
            )

    async def get(self, notification_id: str) -> Optional[Notification]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM notifications WHERE notification_id = $1",
                notification_id,
            )
        return Notification.model_validate_json(row["data"]) if row else None

    async def list_for_user(self, user_id: str) -> List[Notification]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT data FROM notifications
                WHERE user_id = $1
                ORDER BY created_at DESC
                """,
                user_id,
            )
        return [Notification.model_validate_json(row["data"]) for row in rows]

    async def mark_read(self, notification_id: str) -> bool:
        async with self.pool.acquire() as conn:
            updated = await conn.fetchval(
                """
                UPDATE notifications
                SET read = TRUE,
                    data = jsonb_set(data, '{read}', 'true'::jsonb)
                WHERE notification_id = $1
                RETURNING notification_id
                """,
                notification_id,
            )
        return updated is not None

    async def mark_all_read(self, user_id: str) -> int:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                UPDATE notifications
                SET read = TRUE,
                    data = jsonb_set(data, '{read}', 'true'::jsonb)
                WHERE user_id = $1 AND read = FALSE
                RETURNING notification_id
                """,
                user_id,
            )
        return len(rows)

    async def delete(self, notification_id: str) -> bool:
        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                """
                DELETE FROM notifications WHERE notification_id = $1
                RETURNING notification_id
                """,
                notification_id,
            )
        return deleted is not None

    async def delete_all(self, user_id: str) -> int:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                DELETE FROM notifications WHERE user_id = $1
                RETURNING notification_id
                """,
                user_id,
            )
        return len(rows)


class PostgreSQLQuickLinkRepository(QuickLinkRepository):
    def __init__(self, pool: Pool):
        self.pool = pool

    async def generate_id(self) -> str:
        return str(uuid.uuid4())

    async def get(self, link_id: str) -> Optional[QuickLink]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM quick_links WHERE link_id = $1", link_id
            )
        return QuickLink.model_validate_json(row["data"]) if row else None

    async def save(self, link: QuickLink) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO quick_links (link_id, user_id, created_at, data)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (link_id) DO UPDATE SET data = EXCLUDED.data
                """,
                link.id,
                link.user_id,
                link.created_at,
                link.model_dump_json(),
            )

    async def delete(self, link_id: str) -> bool:
        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                "DELETE FROM quick_links WHERE link_id = $1 RETURNING link_id",
                link_id,
            )
        return deleted is not None

    async def list_for_user(self, user_id: str) -> List[QuickLink]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT data FROM quick_links
                WHERE user_id = $1
                ORDER BY created_at
                """,
                user_id,
            )
        return [QuickLink.model_validate_json(row["data"]) for row in rows]


class PostgreSQLIdentityRepository(IdentityRepository):
    """Looks bearer tokens up in ``auth_tokens``; expired tokens are
    treated as unknown."""

    def __init__(self, pool: Pool):
        self.pool = pool

    async def verify_token(self, token: str) -> Optional[str]:
        async with self.pool.acquire() as conn:
            user_id = await conn.fetchval(
                """
                SELECT user_id FROM auth_tokens
                WHERE token = $1
                  AND (expires_at IS NULL OR expires_at > now())
                """,
                token,
            )
        if user_id is None:
            logger.debug("Unknown or expired bearer token")
        return user_id  # type: ignore[no-any-return]


class PostgreSQLProfileRepository(ProfileRepository):
    def __init__(self, pool: Pool):
        self.pool = pool

    async def get(self, uid: str) -> Optional[UserProfile]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM user_profiles WHERE uid = $1", uid
            )
        return UserProfile.model_validate_json(row["data"]) if row else None

    async def save(self, profile: UserProfile) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO user_profiles (uid, data) VALUES ($1, $2)
                ON CONFLICT (uid) DO UPDATE SET data = EXCLUDED.data
                """,
                profile.uid,
                profile.model_dump_json(),
            )
