"""
Tests for the application wiring: health, temples, events and the error
translation shared by every router.
"""

import pytest

from seva.api.errors import http_error_for
from seva.api.responses import EVENTS_CACHE_CONTROL
from seva.domain import AdminRecord, UserProfile
from seva.errors import (
    AlreadyExistsError,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    UnknownError,
)
from seva.tests.api.conftest import auth_header
from seva.tests.factories import minimal_event


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "0.1.0"


class TestTemples:
    def test_list_is_public(self, client):
        response = client.get("/temples")
        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == ["temple-1"]

    def test_super_admin_creates_temple(self, client, api_store):
        response = client.post(
            "/temples",
            json={"name": "Sri Murugan Temple", "location": "Lakeside"},
            headers=auth_header("super-1"),
        )

        assert response.status_code == 201
        temple_id = response.json()["id"]
        assert api_store.admins["super-1"].temple_id == temple_id

    def test_temple_admin_cannot_create_temple(self, client):
        response = client.post(
            "/temples",
            json={"name": "Another"},
            headers=auth_header("admin-1"),
        )
        assert response.status_code == 403

    def test_join_twice_conflicts(self, client):
        url = "/temples/temple-1/members"
        assert client.post(url, headers=auth_header("user-1")).status_code == 201
        assert client.post(url, headers=auth_header("user-1")).status_code == 409

    def test_assign_and_remove_admin(self, client, api_store):
        assigned = client.put(
            "/temples/temple-1/admins/user-2", headers=auth_header("super-1")
        )
        assert assigned.status_code == 200
        assert api_store.admins["user-2"].temple_id == "temple-1"

        removed = client.delete(
            "/temples/temple-1/admins/user-2", headers=auth_header("super-1")
        )
        assert removed.status_code == 204
        assert "user-2" not in api_store.admins

    def test_remove_admin_through_another_temple(self, client, api_store):
        api_store.admins["admin-2"] = AdminRecord(
            uid="admin-2", is_admin=True, temple_id="temple-2"
        )

        response = client.delete(
            "/temples/temple-1/admins/admin-2", headers=auth_header("super-1")
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Admin not found"
        assert api_store.admins["admin-2"].temple_id == "temple-2"

    def test_list_temple_admins(self, client):
        url = "/temples/temple-1/admins"

        response = client.get(url, headers=auth_header("super-1"))

        assert response.status_code == 200
        assert [a["uid"] for a in response.json()] == ["admin-1"]
        assert client.get(url, headers=auth_header("admin-1")).status_code == 403

    def test_admin_removes_member(self, client, api_store):
        client.post("/temples/temple-1/members", headers=auth_header("user-1"))
        url = "/temples/temple-1/members/user-1"

        assert client.delete(url, headers=auth_header("user-2")).status_code == 403
        assert client.delete(url, headers=auth_header("admin-1")).status_code == 204
        assert client.delete(url, headers=auth_header("admin-1")).status_code == 404
        assert api_store.members == {}

    def test_service_types(self, client):
        url = "/temples/temple-1/service-types"
        body = {"name": "Aarti", "icon": "flame"}

        first = client.post(url, json=body, headers=auth_header("admin-1"))
        again = client.post(url, json=body, headers=auth_header("admin-1"))

        assert first.status_code == 201
        assert again.json()["id"] == first.json()["id"]
        assert len(client.get(url).json()) == 1


class TestEvents:
    def test_list_events_with_cache_header(self, client, api_store):
        for n in range(3):
            event = minimal_event(f"event-{n}", start_offset_days=n)
            api_store.events[("temple-1", event.id)] = event

        response = client.get("/temples/temple-1/events")

        assert response.status_code == 200
        assert response.headers["cache-control"] == EVENTS_CACHE_CONTROL
        data = response.json()
        assert [e["id"] for e in data["events"]] == [
            "event-2",
            "event-1",
            "event-0",
        ]
        assert data["hasMore"] is False
        assert data["lastEventDate"] is not None

    def test_admin_creates_and_deletes_event(self, client):
        created = client.post(
            "/temples/temple-1/events",
            json={
                "title": "Diwali",
                "start_date": "2026-11-08T18:00:00Z",
                "end_date": "2026-11-08T22:00:00Z",
            },
            headers=auth_header("admin-1"),
        )
        assert created.status_code == 201
        event_id = created.json()["id"]

        deleted = client.delete(
            f"/temples/temple-1/events/{event_id}",
            headers=auth_header("admin-1"),
        )
        assert deleted.status_code == 204
        assert (
            client.get(f"/temples/temple-1/events/{event_id}").status_code
            == 404
        )

    def test_sign_up_and_withdraw(self, client, api_store):
        api_store.events[("temple-1", "event-1")] = minimal_event(
            registration_required=True, capacity=1
        )
        api_store.profiles["user-1"] = UserProfile(
            uid="user-1", display_name="Asha"
        )
        url = "/temples/temple-1/events/event-1/registrations"

        joined = client.post(url, headers=auth_header("user-1"))
        assert joined.status_code == 200
        assert joined.json()["participants"][0]["display_name"] == "Asha"

        full = client.post(url, headers=auth_header("user-2"))
        assert full.status_code == 409
        assert full.json()["detail"] == "Event is at full capacity"

        left = client.delete(url, headers=auth_header("user-1"))
        assert left.status_code == 200
        assert left.json()["participants"] == []

        again = client.delete(url, headers=auth_header("user-1"))
        assert again.status_code == 404

    def test_sign_up_requires_authentication(self, client, api_store):
        api_store.events[("temple-1", "event-1")] = minimal_event(
            registration_required=True
        )

        response = client.post(
            "/temples/temple-1/events/event-1/registrations"
        )

        assert response.status_code == 401


class TestProfile:
    def test_first_read_creates_profile(self, client, api_store):
        response = client.get("/profile", headers=auth_header("user-1"))

        assert response.status_code == 200
        data = response.json()
        assert data["profile"]["uid"] == "user-1"
        assert data["isAdmin"] is False
        assert data["isSuperAdmin"] is False
        assert "user-1" in api_store.profiles

    def test_roles_are_reported(self, client):
        admin = client.get("/profile", headers=auth_header("admin-1")).json()
        root = client.get("/profile", headers=auth_header("super-1")).json()

        assert admin["isAdmin"] is True
        assert root["isSuperAdmin"] is True

    def test_update_profile(self, client, api_store):
        response = client.patch(
            "/profile",
            json={"display_name": "Asha", "bio": "Volunteer"},
            headers=auth_header("user-1"),
        )

        assert response.status_code == 200
        assert response.json()["profile"]["display_name"] == "Asha"
        assert api_store.profiles["user-1"].bio == "Volunteer"

    def test_blank_display_name_is_rejected(self, client):
        response = client.patch(
            "/profile",
            json={"display_name": "  "},
            headers=auth_header("user-1"),
        )

        assert response.status_code == 422


class TestHttpErrorFor:
    @pytest.mark.parametrize(
        "error,status_code",
        [
            (InvalidArgumentError("bad"), 400),
            (PermissionDeniedError("no"), 403),
            (NotFoundError("gone"), 404),
            (AlreadyExistsError("twice"), 409),
            (FailedPreconditionError("full"), 409),
        ],
    )
    def test_domain_errors_keep_message(self, error, status_code):
        exc = http_error_for(error, "do things")

        assert exc.status_code == status_code
        assert exc.detail == error.message
        assert exc.headers == {"Cache-Control": "no-store"}

    @pytest.mark.parametrize(
        "error", [UnknownError("db exploded"), RuntimeError("secret")]
    )
    def test_other_errors_are_generic(self, error):
        exc = http_error_for(error, "do things", temple_id="temple-1")

        assert exc.status_code == 500
        assert exc.detail == "Failed to do things due to an internal error."
