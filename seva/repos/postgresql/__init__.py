"""PostgreSQL implementations of seva repositories."""

from .content import PostgreSQLEventRepository, PostgreSQLServiceTypeRepository
from .registration import PostgreSQLRegistrationRepository
from .schema import create_schema
from .service import PostgreSQLServiceRepository
from .temple import PostgreSQLAdminRepository, PostgreSQLTempleRepository
from .user import (
    PostgreSQLIdentityRepository,
    PostgreSQLNotificationRepository,
    PostgreSQLProfileRepository,
    PostgreSQLQuickLinkRepository,
)

__all__ = [
    "PostgreSQLAdminRepository",
    "PostgreSQLEventRepository",
    "PostgreSQLIdentityRepository",
    "PostgreSQLNotificationRepository",
    "PostgreSQLProfileRepository",
    "PostgreSQLQuickLinkRepository",
    "PostgreSQLRegistrationRepository",
    "PostgreSQLServiceRepository",
    "PostgreSQLServiceTypeRepository",
    "PostgreSQLTempleRepository",
    "create_schema",
]
