"""
Dependency injection for FastAPI endpoints.

Repositories are backed by PostgreSQL when ``DATABASE_URL`` is set and by a
process-wide memory store otherwise. Tests override ``get_backend`` (or any
use case dependency) through ``app.dependency_overrides``.
"""

import logging
import os
from typing import Any, Callable, Dict, Optional, Union

import asyncpg
from asyncpg import Pool
from fastapi import Depends, Header, HTTPException

from seva.authorization import AuthorizationResolver
from seva.config import env_flag
from seva.domain import AuthorizationContext
from seva.repositories import (
    AdminRepository,
    EventRepository,
    IdentityRepository,
    NotificationRepository,
    ProfileRepository,
    QuickLinkRepository,
    RegistrationRepository,
    ServiceRepository,
    ServiceTypeRepository,
    TempleRepository,
)
from seva.repos.memory import (
    MemoryAdminRepository,
    MemoryDocumentStore,
    MemoryEventRepository,
    MemoryIdentityRepository,
    MemoryNotificationRepository,
    MemoryProfileRepository,
    MemoryQuickLinkRepository,
    MemoryRegistrationRepository,
    MemoryServiceRepository,
    MemoryServiceTypeRepository,
    MemoryTempleRepository,
)
from seva.repos.postgresql import (
    PostgreSQLAdminRepository,
    PostgreSQLEventRepository,
    PostgreSQLIdentityRepository,
    PostgreSQLNotificationRepository,
    PostgreSQLProfileRepository,
    PostgreSQLQuickLinkRepository,
    PostgreSQLRegistrationRepository,
    PostgreSQLServiceRepository,
    PostgreSQLServiceTypeRepository,
    PostgreSQLTempleRepository,
    create_schema,
)
from seva.retry import RetryPolicy
from seva.usecase import (
    EventUseCase,
    NotificationUseCase,
    ProfileUseCase,
    ServiceManagementUseCase,
    ServiceRegistrationUseCase,
    ServiceTypeUseCase,
    TempleManagementUseCase,
)
from seva.validation import (
    ensure_admin_repository,
    ensure_identity_repository,
    ensure_temple_repository,
)

logger = logging.getLogger(__name__)

Backend = Union[Pool, MemoryDocumentStore]


def enforce_capacity_enabled() -> bool:
    return env_flag("SEVA_ENFORCE_CAPACITY")


class DependencyContainer:
    """
    Dependency injection container with singleton lifecycle management.
    Holds the connection pool (or memory store) shared by all requests.
    """

    def __init__(self) -> None:
        self._instances: Dict[str, Any] = {}

    async def get_or_create(self, key: str, factory: Any) -> Any:
        """Get or create a singleton instance."""
        if key not in self._instances:
            self._instances[key] = await factory()
        return self._instances[key]

    async def get_backend(self) -> Backend:
        if os.environ.get("DATABASE_URL"):
            return await self.get_or_create("pool", self._create_pool)  # type: ignore[no-any-return]
        return await self.get_or_create(  # type: ignore[no-any-return]
            "memory_store", self._create_memory_store
        )

    async def _create_pool(self) -> Pool:
        database_url = os.environ["DATABASE_URL"]
        logger.debug("Creating PostgreSQL connection pool")
        pool = await asyncpg.create_pool(database_url)
        await create_schema(pool)
        logger.info("PostgreSQL connection pool created")
        return pool

    async def _create_memory_store(self) -> MemoryDocumentStore:
        logger.warning(
            "DATABASE_URL is not set; using the in-memory document store"
        )
        return MemoryDocumentStore()

    async def close(self) -> None:
        pool: Optional[Pool] = self._instances.pop("pool", None)
        if pool is not None:
            await pool.close()
        self._instances.clear()


# Global container instance
_container = DependencyContainer()


async def get_backend() -> Backend:
    """FastAPI dependency for the storage backend."""
    return await _container.get_backend()


def _build(
    backend: Backend,
    memory_cls: Callable[..., Any],
    postgresql_cls: Callable[..., Any],
) -> Any:
    if isinstance(backend, MemoryDocumentStore):
        return memory_cls(store=backend)
    return postgresql_cls(backend)


async def get_service_repository(
    backend: Backend = Depends(get_backend),
) -> ServiceRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryServiceRepository, PostgreSQLServiceRepository
    )


async def get_registration_repository(
    backend: Backend = Depends(get_backend),
) -> RegistrationRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryRegistrationRepository, PostgreSQLRegistrationRepository
    )


async def get_temple_repository(
    backend: Backend = Depends(get_backend),
) -> TempleRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryTempleRepository, PostgreSQLTempleRepository
    )


async def get_admin_repository(
    backend: Backend = Depends(get_backend),
) -> AdminRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryAdminRepository, PostgreSQLAdminRepository
    )


async def get_service_type_repository(
    backend: Backend = Depends(get_backend),
) -> ServiceTypeRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryServiceTypeRepository, PostgreSQLServiceTypeRepository
    )


async def get_event_repository(
    backend: Backend = Depends(get_backend),
) -> EventRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryEventRepository, PostgreSQLEventRepository
    )


async def get_notification_repository(
    backend: Backend = Depends(get_backend),
) -> NotificationRepository:
    return _build(  # type: ignore[no-any-return]
        backend,
        MemoryNotificationRepository,
        PostgreSQLNotificationRepository,
    )


async def get_quick_link_repository(
    backend: Backend = Depends(get_backend),
) -> QuickLinkRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryQuickLinkRepository, PostgreSQLQuickLinkRepository
    )


async def get_profile_repository(
    backend: Backend = Depends(get_backend),
) -> ProfileRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryProfileRepository, PostgreSQLProfileRepository
    )


async def get_identity_repository(
    backend: Backend = Depends(get_backend),
) -> IdentityRepository:
    return _build(  # type: ignore[no-any-return]
        backend, MemoryIdentityRepository, PostgreSQLIdentityRepository
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    identity_repo: IdentityRepository = Depends(get_identity_repository),
) -> str:
    """Resolve the caller's user id from an ``Authorization: Bearer`` header."""
    unauthorized = HTTPException(
        status_code=401,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer", "Cache-Control": "no-store"},
    )
    if not authorization:
        raise unauthorized

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise unauthorized

    user_id = await ensure_identity_repository(identity_repo).verify_token(
        token.strip()
    )
    if not user_id:
        logger.info("Rejected request with invalid bearer token")
        raise unauthorized
    return user_id


async def get_authorization_context(
    user_id: str = Depends(get_current_user),
    admin_repo: AdminRepository = Depends(get_admin_repository),
    temple_repo: TempleRepository = Depends(get_temple_repository),
) -> AuthorizationContext:
    """Resolve the caller's roles once per request."""
    resolver = AuthorizationResolver(
        admin_repo=ensure_admin_repository(admin_repo),
        temple_repo=ensure_temple_repository(temple_repo),
    )
    return await resolver.resolve(user_id)


async def get_service_registration_use_case(
    registration_repo: RegistrationRepository = Depends(
        get_registration_repository
    ),
    service_repo: ServiceRepository = Depends(get_service_repository),
    temple_repo: TempleRepository = Depends(get_temple_repository),
    admin_repo: AdminRepository = Depends(get_admin_repository),
    notification_repo: NotificationRepository = Depends(
        get_notification_repository
    ),
) -> ServiceRegistrationUseCase:
    """FastAPI dependency for ServiceRegistrationUseCase."""
    return ServiceRegistrationUseCase(
        registration_repo=registration_repo,
        service_repo=service_repo,
        temple_repo=temple_repo,
        admin_repo=admin_repo,
        notification_repo=notification_repo,
        retry_policy=RetryPolicy.from_env(),
        enforce_capacity=enforce_capacity_enabled(),
    )


async def get_service_management_use_case(
    service_repo: ServiceRepository = Depends(get_service_repository),
) -> ServiceManagementUseCase:
    return ServiceManagementUseCase(
        service_repo=service_repo, retry_policy=RetryPolicy.from_env()
    )


async def get_temple_management_use_case(
    temple_repo: TempleRepository = Depends(get_temple_repository),
    admin_repo: AdminRepository = Depends(get_admin_repository),
) -> TempleManagementUseCase:
    return TempleManagementUseCase(
        temple_repo=temple_repo, admin_repo=admin_repo
    )


async def get_service_type_use_case(
    service_type_repo: ServiceTypeRepository = Depends(
        get_service_type_repository
    ),
) -> ServiceTypeUseCase:
    return ServiceTypeUseCase(service_type_repo=service_type_repo)


async def get_event_use_case(
    event_repo: EventRepository = Depends(get_event_repository),
    profile_repo: ProfileRepository = Depends(get_profile_repository),
) -> EventUseCase:
    return EventUseCase(event_repo=event_repo, profile_repo=profile_repo)


async def get_profile_use_case(
    profile_repo: ProfileRepository = Depends(get_profile_repository),
) -> ProfileUseCase:
    return ProfileUseCase(profile_repo=profile_repo)


async def get_notification_use_case(
    notification_repo: NotificationRepository = Depends(
        get_notification_repository
    ),
    quick_link_repo: QuickLinkRepository = Depends(get_quick_link_repository),
) -> NotificationUseCase:
    return NotificationUseCase(
        notification_repo=notification_repo,
        quick_link_repo=quick_link_repo,
    )


async def close_dependencies() -> None:
    """Release the shared connection pool on application shutdown."""
    await _container.close()
