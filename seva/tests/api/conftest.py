"""
Fixtures for API tests.

The app runs against a fresh MemoryDocumentStore per test by overriding the
``get_backend`` dependency. Every caller authenticates with a static token
issued in that store.
"""

from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient

from seva.api.app import app
from seva.api.dependencies import get_backend
from seva.domain import AdminRecord
from seva.repos.memory import MemoryDocumentStore, MemoryIdentityRepository
from seva.tests.factories import minimal_service, minimal_temple

USERS = ["super-1", "admin-1", "leader-1", "user-1", "user-2"]


def auth_header(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer token-{user_id}"}


@pytest.fixture
def api_store(monkeypatch) -> MemoryDocumentStore:
    """Store with temple-1, its admin, a super-admin and service svc-1 led
    by leader-1."""
    monkeypatch.setenv("SEVA_RETRY_BASE_DELAY", "0")
    monkeypatch.delenv("SEVA_ENFORCE_CAPACITY", raising=False)

    store = MemoryDocumentStore()
    identity = MemoryIdentityRepository(store)
    for user_id in USERS:
        identity.issue_token(user_id, f"token-{user_id}")

    store.admins["super-1"] = AdminRecord(uid="super-1", is_super_admin=True)
    store.admins["admin-1"] = AdminRecord(
        uid="admin-1", is_admin=True, temple_id="temple-1"
    )
    store.temples["temple-1"] = minimal_temple()
    store.services[("temple-1", "svc-1")] = minimal_service(
        leader_id="leader-1"
    )
    return store


@pytest.fixture
def client(api_store: MemoryDocumentStore) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_backend] = lambda: api_store
    yield TestClient(app)
    app.dependency_overrides.clear()
