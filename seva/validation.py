"""
Runtime validation utilities for architectural contracts and input data.

This module provides functions to validate:

- Repository implementations against their Protocols using
  @runtime_checkable.
- Raw field data against Pydantic domain models, surfacing failures as
  ``InvalidArgumentError`` so they map onto the domain error taxonomy.

The goal is to catch wiring and data errors at the application boundary
instead of deep inside a transaction.
"""

import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from seva.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

P = TypeVar("P")
M = TypeVar("M", bound=BaseModel)


class RepositoryValidationError(Exception):
    """Raised when a repository does not satisfy its protocol"""

    pass


def validate_repository_protocol(
    repository: object, protocol: Type[P]
) -> None:
    """
    Validate that a repository implementation satisfies a protocol contract.

    Args:
        repository: The repository implementation to validate
        protocol: The protocol class to validate against

    Raises:
        RepositoryValidationError: If validation fails
    """
    if not isinstance(repository, protocol):
        error_message = (
            f"Repository {type(repository).__name__} does not implement "
            f"{protocol.__name__} protocol. Missing or incorrect methods."
        )
        logger.error(
            "Repository protocol validation failed",
            extra={
                "repository_type": type(repository).__name__,
                "protocol_name": protocol.__name__,
            },
        )
        raise RepositoryValidationError(error_message)

    logger.debug(
        "Repository protocol validation passed",
        extra={
            "repository_type": type(repository).__name__,
            "protocol_name": protocol.__name__,
        },
    )


def ensure_repository_protocol(repository: object, protocol: Type[P]) -> P:
    """Validate and return a repository typed as the protocol."""
    validate_repository_protocol(repository, protocol)
    return repository  # type: ignore[return-value]


def build_domain_model(model_class: Type[M], **data: Any) -> M:
    """
    Construct a domain model, translating validation failures.

    Raises:
        InvalidArgumentError: with the first validation message
    """
    try:
        return model_class(**data)
    except ValidationError as e:
        errors = e.errors()
        first = errors[0]["msg"] if errors else str(e)
        logger.info(
            "Domain model validation failed",
            extra={
                "model_class": model_class.__name__,
                "error_count": len(errors),
            },
        )
        raise InvalidArgumentError(
            f"Invalid {model_class.__name__}: {first}"
        ) from e


# Convenience functions for common validation patterns
def ensure_service_repository(repo: object) -> Any:
    """Ensure an object satisfies the ServiceRepository protocol"""
    from seva.repositories import ServiceRepository

    return ensure_repository_protocol(repo, ServiceRepository)  # type: ignore[type-abstract]


def ensure_registration_repository(repo: object) -> Any:
    """Ensure an object satisfies the RegistrationRepository protocol"""
    from seva.repositories import RegistrationRepository

    return ensure_repository_protocol(repo, RegistrationRepository)  # type: ignore[type-abstract]


def ensure_participant_counter_repository(repo: object) -> Any:
    """Ensure an object satisfies the ParticipantCounterRepository protocol"""
    from seva.repositories import ParticipantCounterRepository

    return ensure_repository_protocol(repo, ParticipantCounterRepository)  # type: ignore[type-abstract]


def ensure_temple_repository(repo: object) -> Any:
    """Ensure an object satisfies the TempleRepository protocol"""
    from seva.repositories import TempleRepository

    return ensure_repository_protocol(repo, TempleRepository)  # type: ignore[type-abstract]


def ensure_admin_repository(repo: object) -> Any:
    """Ensure an object satisfies the AdminRepository protocol"""
    from seva.repositories import AdminRepository

    return ensure_repository_protocol(repo, AdminRepository)  # type: ignore[type-abstract]


def ensure_service_type_repository(repo: object) -> Any:
    """Ensure an object satisfies the ServiceTypeRepository protocol"""
    from seva.repositories import ServiceTypeRepository

    return ensure_repository_protocol(repo, ServiceTypeRepository)  # type: ignore[type-abstract]


def ensure_event_repository(repo: object) -> Any:
    """Ensure an object satisfies the EventRepository protocol"""
    from seva.repositories import EventRepository

    return ensure_repository_protocol(repo, EventRepository)  # type: ignore[type-abstract]


def ensure_notification_repository(repo: object) -> Any:
    """Ensure an object satisfies the NotificationRepository protocol"""
    from seva.repositories import NotificationRepository

    return ensure_repository_protocol(repo, NotificationRepository)  # type: ignore[type-abstract]


def ensure_quick_link_repository(repo: object) -> Any:
    """Ensure an object satisfies the QuickLinkRepository protocol"""
    from seva.repositories import QuickLinkRepository

    return ensure_repository_protocol(repo, QuickLinkRepository)  # type: ignore[type-abstract]


def ensure_identity_repository(repo: object) -> Any:
    """Ensure an object satisfies the IdentityRepository protocol"""
    from seva.repositories import IdentityRepository

    return ensure_repository_protocol(repo, IdentityRepository)  # type: ignore[type-abstract]


def ensure_profile_repository(repo: object) -> Any:
    """Ensure an object satisfies the ProfileRepository protocol"""
    from seva.repositories import ProfileRepository

    return ensure_repository_protocol(repo, ProfileRepository)  # type: ignore[type-abstract]
