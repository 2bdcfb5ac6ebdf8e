"""
Memory implementations of the temple content repositories: service types
and events.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from seva.domain import Event, EventParticipant, ServiceType, utcnow
from seva.errors import (
    AlreadyExistsError,
    FailedPreconditionError,
    NotFoundError,
)
from seva.repositories import EventRepository, ServiceTypeRepository

from .store import MemoryDocumentStore

logger = logging.getLogger(__name__)


class MemoryServiceTypeRepository(ServiceTypeRepository):
    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()

    async def generate_id(self) -> str:
        return f"stype-{uuid.uuid4()}"

    async def get(
        self, temple_id: str, service_type_id: str
    ) -> Optional[ServiceType]:
        found = self.store.service_types.get((temple_id, service_type_id))
        return found.model_copy(deep=True) if found else None

    async def find_by_name(
        self, temple_id: str, name: str
    ) -> Optional[ServiceType]:
        for (tid, _), service_type in self.store.service_types.items():
            if tid == temple_id and service_type.name == name:
                return service_type.model_copy(deep=True)
        return None

    async def save(self, service_type: ServiceType) -> None:
        self.store.service_types[(service_type.temple_id, service_type.id)] = (
            service_type.model_copy(deep=True)
        )

    async def delete(self, temple_id: str, service_type_id: str) -> bool:
        return (
            self.store.service_types.pop((temple_id, service_type_id), None)
            is not None
        )

    async def list(self, temple_id: str) -> List[ServiceType]:
        found = [
            t
            for (tid, _), t in self.store.service_types.items()
            if tid == temple_id
        ]
        found.sort(key=lambda t: t.name)
        return [t.model_copy(deep=True) for t in found]


class MemoryEventRepository(EventRepository):
    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()

    async def generate_id(self) -> str:
        return f"event-{uuid.uuid4()}"

    async def get(self, temple_id: str, event_id: str) -> Optional[Event]:
        found = self.store.events.get((temple_id, event_id))
        return found.model_copy(deep=True) if found else None

    async def save(self, event: Event) -> None:
        key = (event.temple_id, event.id)
        stored = self.store.events.get(key)
        # Participants change only through add_participant/remove_participant
        if stored is not None:
            event = event.model_copy(
                update={"participants": stored.participants}
            )
        self.store.events[key] = event.model_copy(deep=True)
        logger.debug(
            "MemoryEventRepository: Event saved",
            extra={"event_id": event.id, "temple_id": event.temple_id},
        )

    async def delete(self, temple_id: str, event_id: str) -> bool:
        return self.store.events.pop((temple_id, event_id), None) is not None

    async def list(
        self,
        temple_id: str,
        before: Optional[datetime] = None,
        limit: int = 12,
    ) -> List[Event]:
        found = [
            e
            for (tid, _), e in self.store.events.items()
            if tid == temple_id and (before is None or e.start_date < before)
        ]
        found.sort(key=lambda e: e.start_date, reverse=True)
        return [e.model_copy(deep=True) for e in found[:limit]]

    async def add_participant(
        self, temple_id: str, event_id: str, participant: EventParticipant
    ) -> Event:
        async with self.store.lock:
            event = self._event(temple_id, event_id)
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
            self.store.events[(temple_id, event_id)] = updated

        logger.info(
            "MemoryEventRepository: Participant added",
            extra={"event_id": event_id, "user_id": participant.user_id},
        )
        return updated.model_copy(deep=True)

    async def remove_participant(
        self, temple_id: str, event_id: str, user_id: str
    ) -> Event:
        async with self.store.lock:
            event = self._event(temple_id, event_id)
            if event.participant(user_id) is None:
                raise NotFoundError("User is not registered for this event")

            updated = event.model_copy(
                update={
                    "participants": [
                        p for p in event.participants if p.user_id != user_id
                    ],
                    "updated_at": utcnow(),
                }
            )
            self.store.events[(temple_id, event_id)] = updated
        return updated.model_copy(deep=True)

    def _event(self, temple_id: str, event_id: str) -> Event:
        event = self.store.events.get((temple_id, event_id))
        if event is None:
            raise NotFoundError("Event not found")
        return event
