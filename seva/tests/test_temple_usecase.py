"""
Tests for temple administration, service types and events.
"""

import asyncio
from datetime import timedelta

import pytest

from seva.domain import (
    AdminRecord,
    EventData,
    EventUpdate,
    TempleUpdate,
    UserProfile,
)
from seva.errors import (
    AlreadyExistsError,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from seva.tests.factories import (
    BASE_TIME,
    member,
    minimal_event,
    minimal_service,
    minimal_temple,
    super_admin,
    temple_admin,
)
from seva.usecase import EventUseCase, ServiceTypeUseCase


class TestTempleManagement:
    @pytest.mark.asyncio
    async def test_super_admin_creates_temple_and_administers_it(
        self, temple_use_case, admin_repo
    ):
        temple = await temple_use_case.create_temple(
            super_admin(), "Sri Venkateswara", "Hilltop"
        )

        assert temple.created_by == "super-1"
        record = await admin_repo.get("super-1")
        assert record.is_admin
        assert record.is_super_admin
        assert record.temple_id == temple.id

    @pytest.mark.asyncio
    async def test_only_super_admin_creates_temples(self, temple_use_case):
        with pytest.raises(PermissionDeniedError):
            await temple_use_case.create_temple(temple_admin(), "Another")

    @pytest.mark.asyncio
    async def test_blank_temple_name_is_invalid(self, temple_use_case):
        with pytest.raises(InvalidArgumentError):
            await temple_use_case.create_temple(super_admin(), "   ")

    @pytest.mark.asyncio
    async def test_admin_updates_temple(self, temple_use_case, temple_repo):
        await temple_repo.save(minimal_temple())

        updated = await temple_use_case.update_temple(
            temple_admin(), "temple-1", TempleUpdate(location="Riverside")
        )

        assert updated.location == "Riverside"
        assert updated.name == "Sri Ganesha Temple"

    @pytest.mark.asyncio
    async def test_update_missing_temple(self, temple_use_case):
        with pytest.raises(NotFoundError):
            await temple_use_case.update_temple(
                super_admin(), "temple-404", TempleUpdate(name="x")
            )

    @pytest.mark.asyncio
    async def test_delete_temple_cascades_and_revokes_admins(
        self,
        seeded,
        temple_use_case,
        registration_use_case,
        store,
    ):
        await registration_use_case.register_for_service(
            "user-1", "svc-1", "temple-1"
        )
        store.admins["admin-1"] = AdminRecord(
            uid="admin-1", is_admin=True, temple_id="temple-1"
        )
        store.admins["super-2"] = AdminRecord(
            uid="super-2",
            is_admin=True,
            is_super_admin=True,
            temple_id="temple-1",
        )

        await temple_use_case.delete_temple(super_admin(), "temple-1")

        assert store.temples == {}
        assert store.services == {}
        assert store.registrations == {}
        assert store.members == {}
        assert "admin-1" not in store.admins
        assert store.admins["super-2"].is_super_admin
        assert not store.admins["super-2"].is_admin
        assert store.admins["super-2"].temple_id is None

    @pytest.mark.asyncio
    async def test_delete_missing_temple(self, temple_use_case):
        with pytest.raises(NotFoundError):
            await temple_use_case.delete_temple(super_admin(), "temple-404")

    @pytest.mark.asyncio
    async def test_get_missing_temple(self, temple_use_case):
        with pytest.raises(NotFoundError, match="Temple not found"):
            await temple_use_case.get_temple("temple-404")


class TestMembership:
    @pytest.mark.asyncio
    async def test_join_once(self, temple_use_case, temple_repo):
        await temple_repo.save(minimal_temple())

        joined = await temple_use_case.add_member("temple-1", "user-1")
        assert joined.user_id == "user-1"

        with pytest.raises(AlreadyExistsError):
            await temple_use_case.add_member("temple-1", "user-1")

    @pytest.mark.asyncio
    async def test_admin_cannot_join_own_temple(self, temple_use_case, store):
        store.admins["admin-1"] = AdminRecord(
            uid="admin-1", is_admin=True, temple_id="temple-1"
        )

        with pytest.raises(AlreadyExistsError, match="already an admin"):
            await temple_use_case.add_member("temple-1", "admin-1")

    @pytest.mark.asyncio
    async def test_members_listed_for_admin_only(self, temple_use_case):
        await temple_use_case.add_member("temple-1", "user-1")

        members = await temple_use_case.list_members(
            temple_admin(), "temple-1"
        )
        assert [m.user_id for m in members] == ["user-1"]

        with pytest.raises(PermissionDeniedError):
            await temple_use_case.list_members(member(), "temple-1")

    @pytest.mark.asyncio
    async def test_admin_removes_member(self, temple_use_case, store):
        await temple_use_case.add_member("temple-1", "user-1")

        await temple_use_case.remove_member(
            temple_admin(), "temple-1", "user-1"
        )

        assert store.members == {}

    @pytest.mark.asyncio
    async def test_member_leaves_temple(self, temple_use_case, store):
        await temple_use_case.add_member("temple-1", "user-1")

        await temple_use_case.remove_member(member(), "temple-1", "user-1")

        assert store.members == {}

    @pytest.mark.asyncio
    async def test_member_cannot_remove_others(self, temple_use_case, store):
        await temple_use_case.add_member("temple-1", "user-2")

        with pytest.raises(PermissionDeniedError):
            await temple_use_case.remove_member(
                member("user-1"), "temple-1", "user-2"
            )
        assert ("temple-1", "user-2") in store.members

    @pytest.mark.asyncio
    async def test_remove_non_member(self, temple_use_case):
        with pytest.raises(NotFoundError, match="not a member"):
            await temple_use_case.remove_member(
                temple_admin(), "temple-1", "user-404"
            )


class TestAdminAssignment:
    @pytest.mark.asyncio
    async def test_assign_admin(self, temple_use_case, temple_repo):
        await temple_repo.save(minimal_temple())

        record = await temple_use_case.assign_temple_admin(
            super_admin(), "user-7", "temple-1"
        )

        assert record.is_admin
        assert record.temple_id == "temple-1"
        assert not record.is_super_admin

    @pytest.mark.asyncio
    async def test_assign_admin_to_missing_temple(self, temple_use_case):
        with pytest.raises(NotFoundError):
            await temple_use_case.assign_temple_admin(
                super_admin(), "user-7", "temple-404"
            )

    @pytest.mark.asyncio
    async def test_temple_admin_cannot_assign_admins(self, temple_use_case):
        with pytest.raises(PermissionDeniedError):
            await temple_use_case.assign_temple_admin(
                temple_admin(), "user-7", "temple-1"
            )

    @pytest.mark.asyncio
    async def test_remove_admin(self, temple_use_case, store):
        store.admins["admin-1"] = AdminRecord(
            uid="admin-1", is_admin=True, temple_id="temple-1"
        )

        await temple_use_case.remove_admin(
            super_admin(), "admin-1", "temple-1"
        )

        assert "admin-1" not in store.admins

    @pytest.mark.asyncio
    async def test_remove_unknown_admin(self, temple_use_case):
        with pytest.raises(NotFoundError, match="Admin not found"):
            await temple_use_case.remove_admin(
                super_admin(), "user-404", "temple-1"
            )

    @pytest.mark.asyncio
    async def test_remove_admin_of_another_temple(self, temple_use_case, store):
        store.admins["admin-2"] = AdminRecord(
            uid="admin-2", is_admin=True, temple_id="temple-2"
        )

        with pytest.raises(NotFoundError, match="Admin not found"):
            await temple_use_case.remove_admin(
                super_admin(), "admin-2", "temple-1"
            )

        assert store.admins["admin-2"].temple_id == "temple-2"

    @pytest.mark.asyncio
    async def test_list_temple_admins(self, temple_use_case, store):
        store.admins["admin-1"] = AdminRecord(
            uid="admin-1", is_admin=True, temple_id="temple-1"
        )
        store.admins["admin-2"] = AdminRecord(
            uid="admin-2", is_admin=True, temple_id="temple-2"
        )
        store.admins["former-1"] = AdminRecord(
            uid="former-1", is_admin=False, temple_id="temple-1"
        )

        admins = await temple_use_case.list_temple_admins(
            super_admin(), "temple-1"
        )

        assert [a.uid for a in admins] == ["admin-1"]

    @pytest.mark.asyncio
    async def test_only_super_admin_lists_admins(self, temple_use_case):
        with pytest.raises(PermissionDeniedError):
            await temple_use_case.list_temple_admins(
                temple_admin(), "temple-1"
            )


class TestServiceTypes:
    @pytest.mark.asyncio
    async def test_create_is_idempotent_by_name(self, service_type_repo):
        use_case = ServiceTypeUseCase(service_type_repo)

        first = await use_case.create_service_type(
            temple_admin(), "temple-1", "Aarti", "flame"
        )
        again = await use_case.create_service_type(
            temple_admin(), "temple-1", " Aarti ", "lamp"
        )

        assert again == first
        assert len(await use_case.list_service_types("temple-1")) == 1

    @pytest.mark.asyncio
    async def test_update_and_delete(self, service_type_repo):
        use_case = ServiceTypeUseCase(service_type_repo)
        created = await use_case.create_service_type(
            temple_admin(), "temple-1", "Aarti", "flame"
        )

        updated = await use_case.update_service_type(
            temple_admin(), "temple-1", created.id, icon="lamp"
        )
        assert updated.icon == "lamp"
        assert updated.name == "Aarti"

        await use_case.delete_service_type(
            temple_admin(), "temple-1", created.id
        )
        with pytest.raises(NotFoundError):
            await use_case.delete_service_type(
                temple_admin(), "temple-1", created.id
            )

    @pytest.mark.asyncio
    async def test_members_cannot_manage_types(self, service_type_repo):
        with pytest.raises(PermissionDeniedError):
            await ServiceTypeUseCase(service_type_repo).create_service_type(
                member(), "temple-1", "Aarti", "flame"
            )


class TestEvents:
    @pytest.mark.asyncio
    async def test_pages_latest_first(self, event_repo):
        use_case = EventUseCase(event_repo)
        for n in range(13):
            await event_repo.save(
                minimal_event(f"event-{n:02d}", start_offset_days=n)
            )

        first = await use_case.list_events("temple-1")
        assert len(first.items) == 12
        assert first.has_more
        assert first.items[0].id == "event-12"

        second = await use_case.list_events("temple-1", before=first.cursor)
        assert [e.id for e in second.items] == ["event-00"]
        assert not second.has_more

    @pytest.mark.asyncio
    async def test_create_update_delete(self, event_repo):
        use_case = EventUseCase(event_repo)
        event = await use_case.create_event(
            temple_admin(),
            "temple-1",
            EventData(
                title="Diwali",
                start_date=BASE_TIME,
                end_date=BASE_TIME + timedelta(hours=4),
            ),
        )

        updated = await use_case.update_event(
            temple_admin(), "temple-1", event.id, EventUpdate(capacity=200)
        )
        assert updated.capacity == 200
        assert updated.title == "Diwali"

        await use_case.delete_event(temple_admin(), "temple-1", event.id)
        with pytest.raises(NotFoundError):
            await use_case.get_event("temple-1", event.id)

    @pytest.mark.asyncio
    async def test_end_before_start_is_invalid(self, event_repo):
        await event_repo.save(minimal_event())

        with pytest.raises(InvalidArgumentError):
            await EventUseCase(event_repo).update_event(
                temple_admin(),
                "temple-1",
                "event-1",
                EventUpdate(end_date=BASE_TIME - timedelta(days=1)),
            )

    @pytest.mark.asyncio
    async def test_members_cannot_create_events(self, event_repo):
        with pytest.raises(PermissionDeniedError):
            await EventUseCase(event_repo).create_event(
                member(),
                "temple-1",
                EventData(
                    title="Diwali",
                    start_date=BASE_TIME,
                    end_date=BASE_TIME,
                ),
            )


class TestEventRegistration:
    @pytest.mark.asyncio
    async def test_register_snapshots_profile(self, event_repo, profile_repo):
        await event_repo.save(minimal_event(registration_required=True))
        await profile_repo.save(
            UserProfile(
                uid="user-1",
                display_name="Asha",
                photo_url="https://img.example/asha.png",
            )
        )
        use_case = EventUseCase(event_repo, profile_repo)

        event = await use_case.register_for_event(
            "user-1", "temple-1", "event-1"
        )

        participant = event.participant("user-1")
        assert participant.display_name == "Asha"
        assert participant.photo_url == "https://img.example/asha.png"
        stored = await event_repo.get("temple-1", "event-1")
        assert [p.user_id for p in stored.participants] == ["user-1"]

    @pytest.mark.asyncio
    async def test_register_without_profile(self, event_repo, profile_repo):
        await event_repo.save(minimal_event(registration_required=True))

        event = await EventUseCase(
            event_repo, profile_repo
        ).register_for_event("user-1", "temple-1", "event-1")

        assert event.participant("user-1").display_name is None

    @pytest.mark.asyncio
    async def test_register_twice(self, event_repo):
        await event_repo.save(minimal_event(registration_required=True))
        use_case = EventUseCase(event_repo)
        await use_case.register_for_event("user-1", "temple-1", "event-1")

        with pytest.raises(AlreadyExistsError):
            await use_case.register_for_event(
                "user-1", "temple-1", "event-1"
            )

    @pytest.mark.asyncio
    async def test_full_event_rejects_registration(self, event_repo):
        await event_repo.save(
            minimal_event(registration_required=True, capacity=1)
        )
        use_case = EventUseCase(event_repo)
        await use_case.register_for_event("user-1", "temple-1", "event-1")

        with pytest.raises(FailedPreconditionError, match="full capacity"):
            await use_case.register_for_event(
                "user-2", "temple-1", "event-1"
            )

        event = await event_repo.get("temple-1", "event-1")
        assert len(event.participants) == 1

    @pytest.mark.asyncio
    async def test_event_without_registration(self, event_repo):
        await event_repo.save(minimal_event())

        with pytest.raises(FailedPreconditionError):
            await EventUseCase(event_repo).register_for_event(
                "user-1", "temple-1", "event-1"
            )

    @pytest.mark.asyncio
    async def test_register_for_missing_event(self, event_repo):
        with pytest.raises(NotFoundError, match="Event not found"):
            await EventUseCase(event_repo).register_for_event(
                "user-1", "temple-1", "event-404"
            )

    @pytest.mark.asyncio
    async def test_unregister_frees_a_seat(self, event_repo):
        await event_repo.save(
            minimal_event(registration_required=True, capacity=1)
        )
        use_case = EventUseCase(event_repo)
        await use_case.register_for_event("user-1", "temple-1", "event-1")

        event = await use_case.unregister_from_event(
            "user-1", "temple-1", "event-1"
        )
        assert event.participants == []

        await use_case.register_for_event("user-2", "temple-1", "event-1")

    @pytest.mark.asyncio
    async def test_unregister_when_not_registered(self, event_repo):
        await event_repo.save(minimal_event(registration_required=True))

        with pytest.raises(NotFoundError, match="not registered"):
            await EventUseCase(event_repo).unregister_from_event(
                "user-1", "temple-1", "event-1"
            )

    @pytest.mark.asyncio
    async def test_editing_event_keeps_participants(self, event_repo):
        await event_repo.save(minimal_event(registration_required=True))
        use_case = EventUseCase(event_repo)
        stale = await use_case.get_event("temple-1", "event-1")
        await use_case.register_for_event("user-1", "temple-1", "event-1")

        await event_repo.save(stale.model_copy(update={"title": "Holi"}))

        event = await use_case.get_event("temple-1", "event-1")
        assert event.title == "Holi"
        assert [p.user_id for p in event.participants] == ["user-1"]

    @pytest.mark.asyncio
    async def test_concurrent_signups_respect_capacity(self, event_repo):
        await event_repo.save(
            minimal_event(registration_required=True, capacity=3)
        )
        use_case = EventUseCase(event_repo)

        results = await asyncio.gather(
            *(
                use_case.register_for_event(
                    f"user-{n}", "temple-1", "event-1"
                )
                for n in range(6)
            ),
            return_exceptions=True,
        )

        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(rejected) == 3
        assert all(isinstance(r, FailedPreconditionError) for r in rejected)
        event = await event_repo.get("temple-1", "event-1")
        assert len(event.participants) == 3


@pytest.mark.asyncio
async def test_seeded_service_survives_unrelated_temple_delete(
    temple_use_case, temple_repo, service_repo, store
):
    await temple_repo.save(minimal_temple("temple-2"))
    await service_repo.create(minimal_service())

    await temple_use_case.delete_temple(super_admin(), "temple-2")

    assert ("temple-1", "svc-1") in store.services
