from typing import Tuple

import pytest

from seva.domain import Service
from seva.repos.memory import (
    MemoryAdminRepository,
    MemoryDocumentStore,
    MemoryEventRepository,
    MemoryNotificationRepository,
    MemoryProfileRepository,
    MemoryQuickLinkRepository,
    MemoryRegistrationRepository,
    MemoryServiceRepository,
    MemoryServiceTypeRepository,
    MemoryTempleRepository,
)
from seva.retry import RetryPolicy
from seva.tests.factories import minimal_service, minimal_temple
from seva.usecase import (
    ServiceManagementUseCase,
    ServiceRegistrationUseCase,
    TempleManagementUseCase,
)


@pytest.fixture
def store() -> MemoryDocumentStore:
    """One shared document store; every memory repository below uses it."""
    return MemoryDocumentStore()


@pytest.fixture
def no_delay_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay_seconds=0)


@pytest.fixture
def service_repo(store: MemoryDocumentStore) -> MemoryServiceRepository:
    return MemoryServiceRepository(store)


@pytest.fixture
def registration_repo(
    store: MemoryDocumentStore,
) -> MemoryRegistrationRepository:
    return MemoryRegistrationRepository(store)


@pytest.fixture
def temple_repo(store: MemoryDocumentStore) -> MemoryTempleRepository:
    return MemoryTempleRepository(store)


@pytest.fixture
def admin_repo(store: MemoryDocumentStore) -> MemoryAdminRepository:
    return MemoryAdminRepository(store)


@pytest.fixture
def notification_repo(
    store: MemoryDocumentStore,
) -> MemoryNotificationRepository:
    return MemoryNotificationRepository(store)


@pytest.fixture
def quick_link_repo(store: MemoryDocumentStore) -> MemoryQuickLinkRepository:
    return MemoryQuickLinkRepository(store)


@pytest.fixture
def profile_repo(store: MemoryDocumentStore) -> MemoryProfileRepository:
    return MemoryProfileRepository(store)


@pytest.fixture
def service_type_repo(
    store: MemoryDocumentStore,
) -> MemoryServiceTypeRepository:
    return MemoryServiceTypeRepository(store)


@pytest.fixture
def event_repo(store: MemoryDocumentStore) -> MemoryEventRepository:
    return MemoryEventRepository(store)


@pytest.fixture
def registration_use_case(
    registration_repo: MemoryRegistrationRepository,
    service_repo: MemoryServiceRepository,
    temple_repo: MemoryTempleRepository,
    admin_repo: MemoryAdminRepository,
    notification_repo: MemoryNotificationRepository,
    no_delay_policy: RetryPolicy,
) -> ServiceRegistrationUseCase:
    return ServiceRegistrationUseCase(
        registration_repo=registration_repo,
        service_repo=service_repo,
        temple_repo=temple_repo,
        admin_repo=admin_repo,
        notification_repo=notification_repo,
        retry_policy=no_delay_policy,
    )


@pytest.fixture
def service_use_case(
    service_repo: MemoryServiceRepository, no_delay_policy: RetryPolicy
) -> ServiceManagementUseCase:
    return ServiceManagementUseCase(
        service_repo=service_repo, retry_policy=no_delay_policy
    )


@pytest.fixture
def temple_use_case(
    temple_repo: MemoryTempleRepository, admin_repo: MemoryAdminRepository
) -> TempleManagementUseCase:
    return TempleManagementUseCase(
        temple_repo=temple_repo, admin_repo=admin_repo
    )


@pytest.fixture
async def seeded(
    temple_repo: MemoryTempleRepository,
    service_repo: MemoryServiceRepository,
) -> Tuple[str, Service]:
    """Temple ``temple-1`` holding service ``svc-1`` led by ``leader-1``."""
    await temple_repo.save(minimal_temple())
    service = minimal_service(leader_id="leader-1")
    await service_repo.create(service)
    return "temple-1", service
