"""
Memory implementations of TempleRepository and AdminRepository.
"""

import logging
import uuid
from typing import List, Optional

from seva.domain import AdminRecord, MemberRole, Temple, TempleMember
from seva.errors import AlreadyExistsError
from seva.repositories import AdminRepository, TempleRepository

from .store import MemoryDocumentStore

logger = logging.getLogger(__name__)


class MemoryTempleRepository(TempleRepository):
    """Temples and memberships. Deleting a temple removes every document
    scoped under it."""

    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()
        logger.debug("Initialized MemoryTempleRepository")

    async def generate_id(self) -> str:
        return f"temple-{uuid.uuid4()}"

    async def get(self, temple_id: str) -> Optional[Temple]:
        temple = self.store.temples.get(temple_id)
        return temple.model_copy(deep=True) if temple else None

    async def save(self, temple: Temple) -> None:
        self.store.temples[temple.id] = temple.model_copy(deep=True)

    async def delete(self, temple_id: str) -> bool:
        async with self.store.lock:
            if self.store.temples.pop(temple_id, None) is None:
                return False

            for scoped in (
                self.store.services,
                self.store.members,
                self.store.service_types,
                self.store.events,
            ):
                for key in [k for k in scoped if k[0] == temple_id]:
                    del scoped[key]
            for registration_id in [
                r.id
                for r in self.store.registrations.values()
                if r.temple_id == temple_id
            ]:
                del self.store.registrations[registration_id]

        logger.info(
            "MemoryTempleRepository: Temple deleted",
            extra={"temple_id": temple_id},
        )
        return True

    async def list_all(self) -> List[Temple]:
        temples = sorted(self.store.temples.values(), key=lambda t: t.name)
        return [t.model_copy(deep=True) for t in temples]

    async def add_member(
        self,
        temple_id: str,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> TempleMember:
        async with self.store.lock:
            if (temple_id, user_id) in self.store.members:
                raise AlreadyExistsError(
                    "User is already a member of this temple"
                )
            member = TempleMember(
                id=f"member-{uuid.uuid4()}",
                temple_id=temple_id,
                user_id=user_id,
                role=role,
            )
            self.store.members[(temple_id, user_id)] = member
        return member.model_copy(deep=True)

    async def get_member(
        self, temple_id: str, user_id: str
    ) -> Optional[TempleMember]:
        member = self.store.members.get((temple_id, user_id))
        return member.model_copy(deep=True) if member else None

    async def remove_member(self, temple_id: str, user_id: str) -> bool:
        return self.store.members.pop((temple_id, user_id), None) is not None

    async def list_members(self, temple_id: str) -> List[TempleMember]:
        return [
            m.model_copy(deep=True)
            for (tid, _), m in self.store.members.items()
            if tid == temple_id
        ]

    async def list_member_temple_ids(self, user_id: str) -> List[str]:
        return sorted(
            tid for (tid, uid) in self.store.members if uid == user_id
        )


class MemoryAdminRepository(AdminRepository):
    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()

    async def get(self, uid: str) -> Optional[AdminRecord]:
        record = self.store.admins.get(uid)
        return record.model_copy(deep=True) if record else None

    async def save(self, record: AdminRecord) -> None:
        self.store.admins[record.uid] = record.model_copy(deep=True)

    async def delete(self, uid: str) -> bool:
        return self.store.admins.pop(uid, None) is not None

    async def list_for_temple(self, temple_id: str) -> List[AdminRecord]:
        return [
            r.model_copy(deep=True)
            for r in self.store.admins.values()
            if r.temple_id == temple_id
        ]
