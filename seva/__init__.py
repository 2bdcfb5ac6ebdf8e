"""
Seva: temple service registration backend.

This package follows Clean Architecture: domain models and repository
protocols at the centre, use cases over them, and memory, PostgreSQL and
Temporal repository implementations plus the HTTP API at the edges.
"""

from .domain import (
    AuthorizationContext,
    Event,
    Notification,
    ParticipantCounts,
    QuickLink,
    RegistrationStatus,
    Role,
    Service,
    ServiceRegistration,
    ServiceType,
    Temple,
    TempleMember,
)
from .errors import (
    AlreadyExistsError,
    ErrorKind,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    SevaError,
    UnknownError,
)
from .repositories import (
    ParticipantCounterRepository,
    RegistrationRepository,
    ServiceRepository,
)
from .usecase import (
    EventUseCase,
    NotificationUseCase,
    ParticipantReconciliationUseCase,
    ServiceManagementUseCase,
    ServiceRegistrationUseCase,
    ServiceTypeUseCase,
    TempleManagementUseCase,
)

__all__ = [
    # Domain models
    "AuthorizationContext",
    "Event",
    "Notification",
    "ParticipantCounts",
    "QuickLink",
    "RegistrationStatus",
    "Role",
    "Service",
    "ServiceRegistration",
    "ServiceType",
    "Temple",
    "TempleMember",
    # Errors
    "AlreadyExistsError",
    "ErrorKind",
    "FailedPreconditionError",
    "InvalidArgumentError",
    "NotFoundError",
    "PermissionDeniedError",
    "SevaError",
    "UnknownError",
    # Repository protocols
    "ParticipantCounterRepository",
    "RegistrationRepository",
    "ServiceRepository",
    # Use cases
    "EventUseCase",
    "NotificationUseCase",
    "ParticipantReconciliationUseCase",
    "ServiceManagementUseCase",
    "ServiceRegistrationUseCase",
    "ServiceTypeUseCase",
    "TempleManagementUseCase",
]
