"""
PostgreSQL schema for the seva repositories.

Each table keeps the full domain document in a JSONB ``data`` column next to
the columns that queries filter, order or lock on. For services the counter
columns and ``updated_at`` are authoritative and are merged over the
document on read, so counter increments never rewrite the JSON.
"""

import logging

from asyncpg import Pool

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS temples (
        temple_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        data JSONB NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS services (
        temple_id TEXT NOT NULL,
        service_id TEXT NOT NULL,
        current_participants INTEGER NOT NULL DEFAULT 0
            CHECK (current_participants >= 0),
        pending_participants INTEGER NOT NULL DEFAULT 0
            CHECK (pending_participants >= 0),
        updated_at TIMESTAMPTZ NOT NULL,
        data JSONB NOT NULL,
        PRIMARY KEY (temple_id, service_id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS services_temple_updated_idx
        ON services (temple_id, updated_at DESC)
    """,
    """
    CREATE TABLE IF NOT EXISTS service_registrations (
        registration_id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        temple_id TEXT NOT NULL,
        service_id TEXT NOT NULL,
        status TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        data JSONB NOT NULL,
        UNIQUE (user_id, service_id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS service_registrations_service_idx
        ON service_registrations (temple_id, service_id, status)
    """,
    """
    CREATE TABLE IF NOT EXISTS temple_members (
        temple_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        data JSONB NOT NULL,
        PRIMARY KEY (temple_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS admins (
        uid TEXT PRIMARY KEY,
        temple_id TEXT,
        data JSONB NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS service_types (
        temple_id TEXT NOT NULL,
        service_type_id TEXT NOT NULL,
        name TEXT NOT NULL,
        data JSONB NOT NULL,
        PRIMARY KEY (temple_id, service_type_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        temple_id TEXT NOT NULL,
        event_id TEXT NOT NULL,
        start_date TIMESTAMPTZ NOT NULL,
        data JSONB NOT NULL,
        PRIMARY KEY (temple_id, event_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        notification_id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        read BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL,
        data JSONB NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quick_links (
        link_id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        data JSONB NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS auth_tokens (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        expires_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        uid TEXT PRIMARY KEY,
        data JSONB NOT NULL
    )
    """,
]


async def create_schema(pool: Pool) -> None:
    """Create every table and index that does not exist yet."""
    async with pool.acquire() as conn:
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
    logger.info(
        "PostgreSQL schema ensured",
        extra={"statement_count": len(SCHEMA_STATEMENTS)},
    )
