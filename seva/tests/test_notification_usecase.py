"""
Tests for NotificationUseCase: per-user notifications and quick links.
"""

from datetime import timedelta

import pytest

from seva.domain import Notification
from seva.errors import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from seva.tests.factories import BASE_TIME
from seva.usecase import NotificationUseCase


@pytest.fixture
def use_case(notification_repo, quick_link_repo) -> NotificationUseCase:
    return NotificationUseCase(
        notification_repo=notification_repo, quick_link_repo=quick_link_repo
    )


@pytest.fixture
async def inbox(notification_repo):
    """Two notifications for user-1 (one already read) and one for user-2."""
    for n, (user_id, read) in enumerate(
        [("user-1", False), ("user-1", True), ("user-2", False)]
    ):
        await notification_repo.create(
            Notification(
                id=f"notif-{n}",
                user_id=user_id,
                title="Registration update",
                message="Your registration is now approved.",
                read=read,
                timestamp=BASE_TIME + timedelta(minutes=n),
            )
        )


class TestNotifications:
    @pytest.mark.asyncio
    async def test_lists_own_notifications_newest_first(
        self, inbox, use_case
    ):
        notifications = await use_case.list_notifications("user-1")
        assert [n.id for n in notifications] == ["notif-1", "notif-0"]

    @pytest.mark.asyncio
    async def test_mark_read(self, inbox, use_case, notification_repo):
        await use_case.mark_read("user-1", "notif-0")
        assert (await notification_repo.get("notif-0")).read

    @pytest.mark.asyncio
    async def test_cannot_touch_another_users_notification(
        self, inbox, use_case, notification_repo
    ):
        with pytest.raises(PermissionDeniedError):
            await use_case.mark_read("user-1", "notif-2")
        with pytest.raises(PermissionDeniedError):
            await use_case.delete_notification("user-1", "notif-2")
        assert await notification_repo.get("notif-2") is not None

    @pytest.mark.asyncio
    async def test_missing_notification(self, use_case):
        with pytest.raises(NotFoundError):
            await use_case.mark_read("user-1", "notif-404")

    @pytest.mark.asyncio
    async def test_mark_all_read_counts_changes(
        self, inbox, use_case, notification_repo
    ):
        assert await use_case.mark_all_read("user-1") == 1
        assert await use_case.mark_all_read("user-1") == 0
        assert not (await notification_repo.get("notif-2")).read

    @pytest.mark.asyncio
    async def test_delete_all_is_scoped_to_user(self, inbox, use_case):
        assert await use_case.delete_all("user-1") == 2
        assert await use_case.list_notifications("user-1") == []
        assert len(await use_case.list_notifications("user-2")) == 1


class TestQuickLinks:
    @pytest.mark.asyncio
    async def test_create_update_delete(self, use_case):
        link = await use_case.create_quick_link(
            "user-1", "Calendar", "https://example.org/calendar"
        )
        assert link.id.startswith("link-")

        updated = await use_case.update_quick_link(
            "user-1", link.id, title="Temple calendar"
        )
        assert updated.title == "Temple calendar"
        assert updated.url == "https://example.org/calendar"

        await use_case.delete_quick_link("user-1", link.id)
        assert await use_case.list_quick_links("user-1") == []

    @pytest.mark.asyncio
    async def test_blank_title_is_invalid(self, use_case):
        with pytest.raises(InvalidArgumentError):
            await use_case.create_quick_link("user-1", " ", "https://x.org")

    @pytest.mark.asyncio
    async def test_links_are_private(self, use_case):
        link = await use_case.create_quick_link(
            "user-1", "Calendar", "https://example.org/calendar"
        )

        assert await use_case.list_quick_links("user-2") == []
        with pytest.raises(PermissionDeniedError):
            await use_case.update_quick_link("user-2", link.id, title="Mine")
        with pytest.raises(PermissionDeniedError):
            await use_case.delete_quick_link("user-2", link.id)
