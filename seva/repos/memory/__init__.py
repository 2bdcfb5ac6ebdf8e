"""
Memory repository implementations for the seva domain.

All repositories constructed over one ``MemoryDocumentStore`` share its
documents and its lock. They are used by the test suite and by the API when
no database is configured.
"""

from .content import MemoryEventRepository, MemoryServiceTypeRepository
from .registration import MemoryRegistrationRepository
from .service import MemoryServiceRepository
from .store import MemoryDocumentStore
from .temple import MemoryAdminRepository, MemoryTempleRepository
from .user import (
    MemoryIdentityRepository,
    MemoryNotificationRepository,
    MemoryProfileRepository,
    MemoryQuickLinkRepository,
)

__all__ = [
    "MemoryAdminRepository",
    "MemoryDocumentStore",
    "MemoryEventRepository",
    "MemoryIdentityRepository",
    "MemoryNotificationRepository",
    "MemoryProfileRepository",
    "MemoryQuickLinkRepository",
    "MemoryRegistrationRepository",
    "MemoryServiceRepository",
    "MemoryServiceTypeRepository",
    "MemoryTempleRepository",
]
