"""
Memory implementation of ServiceRepository.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from seva.domain import Service, ServiceUpdate, utcnow
from seva.errors import FailedPreconditionError, NotFoundError
from seva.repositories import ServiceRepository
from seva.validation import build_domain_model

from .store import MemoryDocumentStore

logger = logging.getLogger(__name__)


class MemoryServiceRepository(ServiceRepository):
    """
    Services stored in a ``MemoryDocumentStore``, keyed by
    ``(temple_id, service_id)``.
    """

    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()
        logger.debug("Initialized MemoryServiceRepository")

    async def generate_id(self) -> str:
        return f"svc-{uuid.uuid4()}"

    async def get(self, temple_id: str, service_id: str) -> Optional[Service]:
        service = self.store.services.get((temple_id, service_id))
        return service.model_copy(deep=True) if service else None

    async def create(self, service: Service) -> None:
        async with self.store.lock:
            self.store.services[(service.temple_id, service.id)] = (
                service.model_copy(deep=True)
            )
        logger.info(
            "MemoryServiceRepository: Service created",
            extra={"service_id": service.id, "temple_id": service.temple_id},
        )

    async def apply_update(
        self, temple_id: str, service_id: str, update: ServiceUpdate
    ) -> Optional[Service]:
        async with self.store.lock:
            current = self.store.services.get((temple_id, service_id))
            if current is None:
                return None

            # Counters always come from the stored document
            fields = current.model_dump()
            fields.update(update.model_dump(exclude_unset=True))
            fields["updated_at"] = utcnow()
            updated = build_domain_model(Service, **fields)
            self.store.services[(temple_id, service_id)] = updated

        logger.info(
            "MemoryServiceRepository: Service updated",
            extra={
                "service_id": service_id,
                "fields": sorted(update.changed_fields()),
            },
        )
        return updated.model_copy(deep=True)

    async def delete(
        self, temple_id: str, service_id: str, force: bool = False
    ) -> int:
        async with self.store.lock:
            if (temple_id, service_id) not in self.store.services:
                raise NotFoundError("Service not found")

            registration_ids = [
                r.id
                for r in self.store.registrations.values()
                if r.temple_id == temple_id and r.service_id == service_id
            ]
            if registration_ids and not force:
                raise FailedPreconditionError(
                    f"Service has {len(registration_ids)} registrations; "
                    "delete with force to remove them"
                )

            for registration_id in registration_ids:
                del self.store.registrations[registration_id]
            del self.store.services[(temple_id, service_id)]

        logger.info(
            "MemoryServiceRepository: Service deleted",
            extra={
                "service_id": service_id,
                "registrations_removed": len(registration_ids),
            },
        )
        return len(registration_ids)

    async def list(
        self,
        temple_id: str,
        after: Optional[datetime] = None,
        limit: int = 12,
    ) -> List[Service]:
        services = [
            s
            for (tid, _), s in self.store.services.items()
            if tid == temple_id and (after is None or s.updated_at < after)
        ]
        services.sort(key=lambda s: s.updated_at, reverse=True)
        return [s.model_copy(deep=True) for s in services[:limit]]
