"""
Memory implementation of RegistrationRepository.

Every compound operation holds the store lock from its first read to its
last write, which gives the same all-or-nothing behavior as a database
transaction around the registration and its parent service.
"""

import logging
import uuid
from typing import List, Optional

from seva.domain import (
    ParticipantCounts,
    RegistrationStatus,
    Service,
    ServiceRegistration,
    StatusTransition,
    count_by_status,
    participant_delta,
    utcnow,
)
from seva.errors import (
    AlreadyExistsError,
    FailedPreconditionError,
    NotFoundError,
)
from seva.repositories import RegistrationRepository

from .store import MemoryDocumentStore, apply_counter_delta

logger = logging.getLogger(__name__)


class MemoryRegistrationRepository(RegistrationRepository):
    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()
        logger.debug("Initialized MemoryRegistrationRepository")

    async def generate_id(self) -> str:
        return f"reg-{uuid.uuid4()}"

    async def get(self, registration_id: str) -> Optional[ServiceRegistration]:
        registration = self.store.registrations.get(registration_id)
        return registration.model_copy(deep=True) if registration else None

    async def create_pending(
        self,
        registration_id: str,
        user_id: str,
        temple_id: str,
        service_id: str,
        message: Optional[str] = None,
    ) -> ServiceRegistration:
        async with self.store.lock:
            if self._is_registered(user_id, service_id):
                raise AlreadyExistsError(
                    "You are already registered for this service"
                )

            service = self._service(temple_id, service_id)

            registration = ServiceRegistration.pending_for(
                registration_id, user_id, service, message
            )
            self.store.registrations[registration.id] = registration
            self._write_service(
                apply_counter_delta(
                    service,
                    participant_delta(None, RegistrationStatus.PENDING),
                )
            )

        logger.info(
            "MemoryRegistrationRepository: Pending registration created",
            extra={
                "registration_id": registration_id,
                "user_id": user_id,
                "service_id": service_id,
            },
        )
        return registration.model_copy(deep=True)

    async def transition_status(
        self,
        registration_id: str,
        new_status: RegistrationStatus,
        enforce_capacity: bool = False,
    ) -> StatusTransition:
        async with self.store.lock:
            current = self.store.registrations.get(registration_id)
            if current is None:
                raise NotFoundError("Registration not found")
            service = self._service(current.temple_id, current.service_id)

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

            delta = participant_delta(old_status, new_status)
            updated = current.model_copy(
                update={"status": new_status, "updated_at": utcnow()}
            )
            self.store.registrations[registration_id] = updated
            self._write_service(apply_counter_delta(service, delta))

        logger.info(
            "MemoryRegistrationRepository: Status transitioned",
            extra={
                "registration_id": registration_id,
                "old_status": old_status.value,
                "new_status": new_status.value,
            },
        )
        return StatusTransition(
            registration=updated.model_copy(deep=True),
            old_status=old_status,
            new_status=new_status,
            delta=delta,
        )

    async def delete(self, registration_id: str) -> ServiceRegistration:
        async with self.store.lock:
            current = self.store.registrations.get(registration_id)
            if current is None:
                raise NotFoundError("Registration not found")

            service = self.store.services.get(
                (current.temple_id, current.service_id)
            )
            if service is not None:
                self._write_service(
                    apply_counter_delta(
                        service, participant_delta(current.status, None)
                    )
                )
            else:
                logger.warning(
                    "Deleting registration whose service no longer exists",
                    extra={
                        "registration_id": registration_id,
                        "service_id": current.service_id,
                    },
                )
            del self.store.registrations[registration_id]

        return current.model_copy(deep=True)

    async def list_for_user(self, user_id: str) -> List[ServiceRegistration]:
        return self._matching(lambda r: r.user_id == user_id)

    async def list_for_temple(
        self, temple_id: str
    ) -> List[ServiceRegistration]:
        return self._matching(lambda r: r.temple_id == temple_id)

    async def list_for_service(
        self, temple_id: str, service_id: str
    ) -> List[ServiceRegistration]:
        return self._matching(
            lambda r: r.temple_id == temple_id and r.service_id == service_id
        )

    async def list_service_ids(self, temple_id: str) -> List[str]:
        return sorted(
            service_id
            for (tid, service_id) in self.store.services
            if tid == temple_id
        )

    async def recalculate_counts(
        self, temple_id: str, service_id: str
    ) -> ParticipantCounts:
        async with self.store.lock:
            service = self._service(temple_id, service_id)
            counts = count_by_status(
                [
                    r.status
                    for r in self.store.registrations.values()
                    if r.temple_id == temple_id and r.service_id == service_id
                ]
            )
            self._write_service(
                service.model_copy(
                    update={
                        "current_participants": counts.current,
                        "pending_participants": counts.pending,
                        "updated_at": utcnow(),
                    }
                )
            )
        return counts

    def _is_registered(self, user_id: str, service_id: str) -> bool:
        return any(
            r.user_id == user_id and r.service_id == service_id
            for r in self.store.registrations.values()
        )

    def _service(self, temple_id: str, service_id: str) -> Service:
        service = self.store.services.get((temple_id, service_id))
        if service is None:
            raise NotFoundError("Service not found")
        return service

    def _write_service(self, service: Service) -> None:
        self.store.services[(service.temple_id, service.id)] = service

    def _matching(self, predicate) -> List[ServiceRegistration]:  # type: ignore[no-untyped-def]
        matches = [
            r.model_copy(deep=True)
            for r in self.store.registrations.values()
            if predicate(r)
        ]
        matches.sort(key=lambda r: r.created_at, reverse=True)
        return matches
