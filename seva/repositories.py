"""
Repository interfaces defined as Protocols.

All repository operations in this module follow these principles:

- **Atomic compound operations**: Every operation that touches a
  registration and its parent service's counters is a single method on the
  repository, executed in one store transaction. Use cases never read a
  counter, compute on it, and write it back.

- **Typed failures**: Implementations raise the domain errors from
  ``seva.errors`` (``NotFoundError``, ``AlreadyExistsError``,
  ``FailedPreconditionError``). Lookups of a single document return ``None``
  instead of raising.

- **Domain Objects**: Methods accept and return domain objects or primitives,
  never driver-specific types.

Architectural Notes:

- These are pure interfaces with no implementation details
- Memory, PostgreSQL and Temporal workflow proxies all satisfy them
- Use case classes depend on these protocols, not concrete implementations
- Repository implementations are free to be non-deterministic (generate
  IDs, read clocks)
"""

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from seva.domain import (
    AdminRecord,
    Event,
    EventParticipant,
    MemberRole,
    Notification,
    ParticipantCounts,
    QuickLink,
    RegistrationStatus,
    Service,
    ServiceRegistration,
    ServiceType,
    ServiceUpdate,
    StatusTransition,
    Temple,
    TempleMember,
    UserProfile,
)


@runtime_checkable
class ParticipantCounterRepository(Protocol):
    """Repair operations for the denormalized participant counters.

    Kept as its own protocol so the reconciliation workflow can depend on
    exactly these two operations through activity proxies.
    """

    async def list_service_ids(self, temple_id: str) -> List[str]:
        """Return the ids of every service in a temple."""
        ...

    async def recalculate_counts(
        self, temple_id: str, service_id: str
    ) -> ParticipantCounts:
        """Recount registrations by status and overwrite both counters.

        Args:
            temple_id: Temple owning the service
            service_id: Service whose counters are rebuilt

        Returns:
            The counters as written

        Raises:
            NotFoundError: if the service does not exist

        Implementation Notes:

        - Counting and writing happen in one transaction
        - Idempotent: calling it twice with no intervening writes yields the
          same counters
        """
        ...


@runtime_checkable
class ServiceRepository(Protocol):
    """Persistence for services, scoped by temple."""

    async def generate_id(self) -> str: ...

    async def get(self, temple_id: str, service_id: str) -> Optional[Service]:
        """Retrieve a service, or None when it does not exist."""
        ...

    async def create(self, service: Service) -> None:
        """Store a new service document."""
        ...

    async def apply_update(
        self, temple_id: str, service_id: str, update: ServiceUpdate
    ) -> Optional[Service]:
        """Apply the explicitly set fields of ``update``.

        Counters are never touched by this method, so it cannot lose a
        concurrent increment.

        Returns:
            The updated service, or None when it does not exist
        """
        ...

    async def delete(
        self, temple_id: str, service_id: str, force: bool = False
    ) -> int:
        """Delete a service.

        Args:
            temple_id: Temple owning the service
            service_id: Service to delete
            force: Also delete every registration referencing the service

        Returns:
            Number of registrations deleted alongside the service

        Raises:
            NotFoundError: if the service does not exist
            FailedPreconditionError: if registrations exist and ``force`` is
                false

        Implementation Notes:

        - With ``force`` the service and its registrations disappear in one
          transaction
        """
        ...

    async def list(
        self,
        temple_id: str,
        after: Optional[datetime] = None,
        limit: int = 12,
    ) -> List[Service]:
        """List services by ``updated_at`` descending.

        ``after`` is an exclusive cursor: only services updated strictly
        before it are returned.
        """
        ...


@runtime_checkable
class RegistrationRepository(ParticipantCounterRepository, Protocol):
    """Registrations plus the counter bookkeeping on their services.

    Every mutating method here reads and writes the registration and its
    parent service in one transaction, and serializes against other
    mutations of the same service.
    """

    async def generate_id(self) -> str: ...

    async def get(self, registration_id: str) -> Optional[ServiceRegistration]:
        ...

    async def create_pending(
        self,
        registration_id: str,
        user_id: str,
        temple_id: str,
        service_id: str,
        message: Optional[str] = None,
    ) -> ServiceRegistration:
        """Create a pending registration and increment the pending counter.

        Raises:
            AlreadyExistsError: if the user already has a registration for
                the service
            NotFoundError: if the service does not exist

        Implementation Notes:

        - The duplicate check runs inside the transaction, after the
          service row is locked, so two concurrent calls for the same
          ``(user_id, service_id)`` cannot both succeed
        - The registration carries a snapshot of the service's name, type,
          date and time slot
        """
        ...

    async def transition_status(
        self,
        registration_id: str,
        new_status: RegistrationStatus,
        enforce_capacity: bool = False,
    ) -> StatusTransition:
        """Move a registration to ``new_status`` and adjust counters.

        The counter delta is ``participant_delta(old, new)``. A transition
        onto the same status still rewrites the registration with a net-zero
        counter change.

        Raises:
            NotFoundError: if the registration or its service is missing
            FailedPreconditionError: if ``enforce_capacity`` is set, the
                transition enters ``approved`` and the service is full
        """
        ...

    async def delete(self, registration_id: str) -> ServiceRegistration:
        """Delete a registration and decrement its status bucket.

        Returns:
            The registration as it was before deletion

        Raises:
            NotFoundError: if the registration does not exist
        """
        ...

    async def list_for_user(self, user_id: str) -> List[ServiceRegistration]:
        ...

    async def list_for_temple(
        self, temple_id: str
    ) -> List[ServiceRegistration]:
        ...

    async def list_for_service(
        self, temple_id: str, service_id: str
    ) -> List[ServiceRegistration]:
        ...


@runtime_checkable
class TempleRepository(Protocol):
    """Temples and their memberships."""

    async def generate_id(self) -> str: ...

    async def get(self, temple_id: str) -> Optional[Temple]: ...

    async def save(self, temple: Temple) -> None: ...

    async def delete(self, temple_id: str) -> bool:
        """Delete a temple together with everything scoped under it.

        Returns:
            True if the temple existed
        """
        ...

    async def list_all(self) -> List[Temple]: ...

    async def add_member(
        self,
        temple_id: str,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> TempleMember:
        """Enroll a user in a temple.

        Raises:
            AlreadyExistsError: if the user is already a member
        """
        ...

    async def get_member(
        self, temple_id: str, user_id: str
    ) -> Optional[TempleMember]: ...

    async def remove_member(self, temple_id: str, user_id: str) -> bool:
        """Remove a membership.

        Returns:
            True if the user was a member
        """
        ...

    async def list_members(self, temple_id: str) -> List[TempleMember]: ...

    async def list_member_temple_ids(self, user_id: str) -> List[str]: ...


@runtime_checkable
class AdminRepository(Protocol):
    """Per-user admin records."""

    async def get(self, uid: str) -> Optional[AdminRecord]: ...

    async def save(self, record: AdminRecord) -> None: ...

    async def delete(self, uid: str) -> bool: ...

    async def list_for_temple(self, temple_id: str) -> List[AdminRecord]: ...


@runtime_checkable
class ServiceTypeRepository(Protocol):
    async def generate_id(self) -> str: ...

    async def get(
        self, temple_id: str, service_type_id: str
    ) -> Optional[ServiceType]: ...

    async def find_by_name(
        self, temple_id: str, name: str
    ) -> Optional[ServiceType]: ...

    async def save(self, service_type: ServiceType) -> None: ...

    async def delete(self, temple_id: str, service_type_id: str) -> bool: ...

    async def list(self, temple_id: str) -> List[ServiceType]: ...


@runtime_checkable
class EventRepository(Protocol):
    async def generate_id(self) -> str: ...

    async def get(self, temple_id: str, event_id: str) -> Optional[Event]: ...

    async def save(self, event: Event) -> None: ...

    async def delete(self, temple_id: str, event_id: str) -> bool: ...

    async def list(
        self,
        temple_id: str,
        before: Optional[datetime] = None,
        limit: int = 12,
    ) -> List[Event]:
        """List events by ``start_date`` descending.

        ``before`` is an exclusive cursor on ``start_date``.
        """
        ...

    async def add_participant(
        self, temple_id: str, event_id: str, participant: EventParticipant
    ) -> Event:
        """Sign a user up for an event.

        Raises:
            NotFoundError: if the event does not exist
            FailedPreconditionError: if the event takes no registrations
                or has reached its capacity
            AlreadyExistsError: if the user is already signed up

        Implementation Notes:

        - The capacity check and the append happen in one transaction, so
          concurrent sign-ups cannot exceed ``capacity``
        """
        ...

    async def remove_participant(
        self, temple_id: str, event_id: str, user_id: str
    ) -> Event:
        """Cancel a user's sign-up.

        Raises:
            NotFoundError: if the event does not exist or the user is not
                signed up
        """
        ...


@runtime_checkable
class NotificationRepository(Protocol):
    """Stored notifications. Delivery is out of scope."""

    async def generate_id(self) -> str: ...

    async def create(self, notification: Notification) -> None: ...

    async def get(self, notification_id: str) -> Optional[Notification]: ...

    async def list_for_user(self, user_id: str) -> List[Notification]:
        """Newest first."""
        ...

    async def mark_read(self, notification_id: str) -> bool: ...

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of a user as read.

        Returns:
            Number of notifications changed
        """
        ...

    async def delete(self, notification_id: str) -> bool: ...

    async def delete_all(self, user_id: str) -> int: ...


@runtime_checkable
class QuickLinkRepository(Protocol):
    async def generate_id(self) -> str: ...

    async def get(self, link_id: str) -> Optional[QuickLink]: ...

    async def save(self, link: QuickLink) -> None: ...

    async def delete(self, link_id: str) -> bool: ...

    async def list_for_user(self, user_id: str) -> List[QuickLink]: ...


@runtime_checkable
class IdentityRepository(Protocol):
    """Resolves bearer tokens to user ids."""

    async def verify_token(self, token: str) -> Optional[str]:
        """Return the user id the token belongs to, or None if the token
        is unknown."""
        ...


@runtime_checkable
class ProfileRepository(Protocol):
    """User profiles keyed by uid."""

    async def get(self, uid: str) -> Optional[UserProfile]: ...

    async def save(self, profile: UserProfile) -> None: ...
