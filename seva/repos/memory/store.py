"""
Shared in-process document store backing every memory repository.

All memory repositories built on the same ``MemoryDocumentStore`` see the
same documents, so a registration repository and a service repository can
cooperate the way two tables in one database do. The store-wide
``asyncio.Lock`` plays the role of a database transaction: compound
operations hold it from their first read to their last write.
"""

import asyncio
import logging
from typing import Dict, Tuple

from seva.domain import (
    AdminRecord,
    Event,
    Notification,
    ParticipantDelta,
    QuickLink,
    Service,
    ServiceRegistration,
    ServiceType,
    Temple,
    TempleMember,
    UserProfile,
    utcnow,
)

logger = logging.getLogger(__name__)


class MemoryDocumentStore:
    """Dictionaries of documents plus the lock that serializes writers.

    Documents are stored and handed out as deep copies, so callers can never
    mutate stored state without going through a repository.
    """

    def __init__(self) -> None:
        logger.debug("Initializing MemoryDocumentStore")
        self.lock = asyncio.Lock()
        self.services: Dict[Tuple[str, str], Service] = {}
        self.registrations: Dict[str, ServiceRegistration] = {}
        self.temples: Dict[str, Temple] = {}
        # Keyed by (temple_id, user_id)
        self.members: Dict[Tuple[str, str], TempleMember] = {}
        self.admins: Dict[str, AdminRecord] = {}
        self.service_types: Dict[Tuple[str, str], ServiceType] = {}
        self.events: Dict[Tuple[str, str], Event] = {}
        self.notifications: Dict[str, Notification] = {}
        self.quick_links: Dict[str, QuickLink] = {}
        # token -> user_id
        self.tokens: Dict[str, str] = {}
        self.profiles: Dict[str, UserProfile] = {}


def apply_counter_delta(service: Service, delta: ParticipantDelta) -> Service:
    """Return ``service`` with ``delta`` added to its counters.

    Counters are floored at zero; reaching the floor means the counters had
    already drifted, which ``recalculate_counts`` repairs.
    """
    current = service.current_participants + delta.current
    pending = service.pending_participants + delta.pending
    if current < 0 or pending < 0:
        logger.warning(
            "Participant counter would go negative",
            extra={
                "service_id": service.id,
                "temple_id": service.temple_id,
                "current": current,
                "pending": pending,
            },
        )
    return service.model_copy(
        update={
            "current_participants": max(current, 0),
            "pending_participants": max(pending, 0),
            "updated_at": utcnow(),
        }
    )
