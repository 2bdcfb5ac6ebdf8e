"""
Memory implementations of the per-user repositories: notifications, quick
links, profiles and bearer-token identity.
"""

import logging
import uuid
from typing import List, Optional

from seva.domain import Notification, QuickLink, UserProfile
from seva.repositories import (
    IdentityRepository,
    NotificationRepository,
    ProfileRepository,
    QuickLinkRepository,
)

from .store import MemoryDocumentStore

logger = logging.getLogger(__name__)


class MemoryNotificationRepository(NotificationRepository):
    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()

    async def generate_id(self) -> str:
        return f"notif-{uuid.uuid4()}"

    async def create(self, notification: Notification) -> None:
        self.store.notifications[notification.id] = notification.model_copy(
            deep=True
        )

    async def get(self, notification_id: str) -> Optional[Notification]:
        found = self.store.notifications.get(notification_id)
        return found.model_copy(deep=True) if found else None

    async def list_for_user(self, user_id: str) -> List[Notification]:
        found = [
            n for n in self.store.notifications.values() if n.user_id == user_id
        ]
        found.sort(key=lambda n: n.timestamp, reverse=True)
        return [n.model_copy(deep=True) for n in found]

    async def mark_read(self, notification_id: str) -> bool:
        found = self.store.notifications.get(notification_id)
        if found is None:
            return False
        self.store.notifications[notification_id] = found.model_copy(
            update={"read": True}
        )
        return True

    async def mark_all_read(self, user_id: str) -> int:
        changed = 0
        for notification_id, n in list(self.store.notifications.items()):
            if n.user_id == user_id and not n.read:
                self.store.notifications[notification_id] = n.model_copy(
                    update={"read": True}
                )
                changed += 1
        return changed

    async def delete(self, notification_id: str) -> bool:
        return self.store.notifications.pop(notification_id, None) is not None

    async def delete_all(self, user_id: str) -> int:
        doomed = [
            nid
            for nid, n in self.store.notifications.items()
            if n.user_id == user_id
        ]
        for nid in doomed:
            del self.store.notifications[nid]
        return len(doomed)


class MemoryQuickLinkRepository(QuickLinkRepository):
    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()

    async def generate_id(self) -> str:
        return f"link-{uuid.uuid4()}"

    async def get(self, link_id: str) -> Optional[QuickLink]:
        found = self.store.quick_links.get(link_id)
        return found.model_copy(deep=True) if found else None

    async def save(self, link: QuickLink) -> None:
        self.store.quick_links[link.id] = link.model_copy(deep=True)

    async def delete(self, link_id: str) -> bool:
        return self.store.quick_links.pop(link_id, None) is not None

    async def list_for_user(self, user_id: str) -> List[QuickLink]:
        found = [
            q for q in self.store.quick_links.values() if q.user_id == user_id
        ]
        found.sort(key=lambda q: q.created_at)
        return [q.model_copy(deep=True) for q in found]


class MemoryIdentityRepository(IdentityRepository):
    """Static token table, for tests and local development."""

    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()

    def issue_token(self, user_id: str, token: Optional[str] = None) -> str:
        token = token or uuid.uuid4().hex
        self.store.tokens[token] = user_id
        return token

    async def verify_token(self, token: str) -> Optional[str]:
        return self.store.tokens.get(token)


class MemoryProfileRepository(ProfileRepository):
    def __init__(self, store: Optional[MemoryDocumentStore] = None) -> None:
        self.store = store or MemoryDocumentStore()

    async def get(self, uid: str) -> Optional[UserProfile]:
        profile = self.store.profiles.get(uid)
        return profile.model_copy(deep=True) if profile else None

    async def save(self, profile: UserProfile) -> None:
        self.store.profiles[profile.uid] = profile.model_copy(deep=True)
