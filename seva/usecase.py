"""
usecase logic must be clean, without direct dependencies.
dependencies are injected via repository instances.

Every mutating use case takes an ``AuthorizationContext`` resolved once per
request; the authorization predicates in ``seva.authorization`` are the
only place roles are interpreted.
"""

import logging
from datetime import datetime
from typing import List, Optional, Union

from seva.authorization import (
    is_service_leader,
    is_temple_admin,
    require_super_admin,
    require_temple_admin,
)
from seva.domain import (
    AdminRecord,
    AuthorizationContext,
    Event,
    EventData,
    EventPage,
    EventParticipant,
    EventUpdate,
    Notification,
    NotificationType,
    ParticipantCounts,
    ProfileUpdate,
    QuickLink,
    ReconciliationReport,
    RegistrationStatus,
    Service,
    ServiceData,
    ServicePage,
    ServiceRegistration,
    ServiceType,
    ServiceUpdate,
    StatusTransition,
    Temple,
    TempleMember,
    TempleUpdate,
    UserProfile,
    utcnow,
)
from seva.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from seva.repositories import (
    AdminRepository,
    EventRepository,
    NotificationRepository,
    ParticipantCounterRepository,
    ProfileRepository,
    QuickLinkRepository,
    RegistrationRepository,
    ServiceRepository,
    ServiceTypeRepository,
    TempleRepository,
)
from seva.retry import RetryPolicy, with_retry
from seva.validation import (
    build_domain_model,
    ensure_admin_repository,
    ensure_event_repository,
    ensure_notification_repository,
    ensure_participant_counter_repository,
    ensure_profile_repository,
    ensure_quick_link_repository,
    ensure_registration_repository,
    ensure_service_repository,
    ensure_service_type_repository,
    ensure_temple_repository,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12

STATUS_NOTIFICATION_TYPES = {
    RegistrationStatus.APPROVED: NotificationType.SUCCESS,
    RegistrationStatus.REJECTED: NotificationType.WARNING,
    RegistrationStatus.PENDING: NotificationType.INFO,
}


def _require(**values: Optional[str]) -> None:
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise InvalidArgumentError(
            f"Missing required identifiers: {', '.join(missing)}"
        )


def _coerce_status(
    status: Union[RegistrationStatus, str],
) -> RegistrationStatus:
    try:
        return RegistrationStatus(status)
    except ValueError:
        raise InvalidArgumentError(f"Unknown registration status: {status}")


class NotificationSink:
    """
    Best-effort writer of notifications.

    A failed notification never fails or retries the operation that
    triggered it; the failure is logged and dropped.
    """

    def __init__(self, notification_repo: NotificationRepository):
        self.notification_repo = ensure_notification_repository(
            notification_repo
        )

    async def send(
        self,
        user_id: str,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.INFO,
        link: Optional[str] = None,
    ) -> Optional[Notification]:
        try:
            notification = Notification(
                id=await self.notification_repo.generate_id(),
                user_id=user_id,
                title=title,
                message=message,
                type=notification_type,
                link=link,
            )
            await self.notification_repo.create(notification)
        except Exception as e:
            logger.warning(
                "Failed to store notification",
                extra={
                    "user_id": user_id,
                    "title": title,
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            return None

        logger.debug(
            "Notification stored",
            extra={"user_id": user_id, "notification_id": notification.id},
        )
        return notification


class ServiceRegistrationUseCase:
    """
    Registration workflow: register, change status, delete, and repair
    the participant counters on the parent service.

    The transactional core of each operation is a single compound
    repository call wrapped in ``with_retry``. Temple enrollment runs after
    the registration commits and is retried on its own. Notifications go
    through ``NotificationSink`` and cannot fail the operation.
    """

    def __init__(
        self,
        registration_repo: RegistrationRepository,
        service_repo: ServiceRepository,
        temple_repo: TempleRepository,
        admin_repo: AdminRepository,
        notification_repo: NotificationRepository,
        retry_policy: Optional[RetryPolicy] = None,
        enforce_capacity: bool = False,
    ):
        self.registration_repo = ensure_registration_repository(
            registration_repo
        )
        self.service_repo = ensure_service_repository(service_repo)
        self.temple_repo = ensure_temple_repository(temple_repo)
        self.admin_repo = ensure_admin_repository(admin_repo)
        self.notifications = NotificationSink(notification_repo)
        self.retry_policy = retry_policy or RetryPolicy()
        self.enforce_capacity = enforce_capacity

    async def register_for_service(
        self,
        user_id: str,
        service_id: str,
        temple_id: str,
        message: Optional[str] = None,
    ) -> ServiceRegistration:
        """
        Create a pending registration for ``user_id``.

        1. Creates the registration and increments the pending counter in
           one transaction (duplicate check included).
        2. Enrolls the user as a temple member unless they already are one
           or administer the temple.
        3. Notifies the service's contact person, if they are a user.
        """
        _require(user_id=user_id, service_id=service_id, temple_id=temple_id)

        logger.info(
            "Registering for service",
            extra={
                "user_id": user_id,
                "service_id": service_id,
                "temple_id": temple_id,
            },
        )

        registration_id = await self.registration_repo.generate_id()
        registration = await with_retry(
            lambda: self.registration_repo.create_pending(
                registration_id, user_id, temple_id, service_id, message
            ),
            self.retry_policy,
            "create_pending_registration",
        )

        await with_retry(
            lambda: self._enroll_member(temple_id, user_id),
            self.retry_policy,
            "enroll_temple_member",
        )

        await self._notify_contact_person(registration)

        logger.info(
            "Registration created",
            extra={
                "registration_id": registration.id,
                "user_id": user_id,
                "service_id": service_id,
            },
        )
        return registration

    async def update_service_registration_status(
        self,
        auth: AuthorizationContext,
        registration_id: str,
        new_status: Union[RegistrationStatus, str],
        temple_id: str,
        service_id: str,
    ) -> StatusTransition:
        _require(
            registration_id=registration_id,
            temple_id=temple_id,
            service_id=service_id,
        )
        status = _coerce_status(new_status)
        require_temple_admin(auth, temple_id, "update registration status")

        existing = await self.registration_repo.get(registration_id)
        if existing is None or existing.temple_id != temple_id:
            raise NotFoundError("Registration not found")
        if existing.service_id != service_id:
            raise InvalidArgumentError(
                "Registration does not belong to the given service"
            )

        transition = await with_retry(
            lambda: self.registration_repo.transition_status(
                registration_id, status, self.enforce_capacity
            ),
            self.retry_policy,
            "transition_registration_status",
        )

        logger.info(
            "Registration status updated",
            extra={
                "registration_id": registration_id,
                "old_status": transition.old_status.value,
                "new_status": transition.new_status.value,
                "delta_current": transition.delta.current,
                "delta_pending": transition.delta.pending,
                "updated_by": auth.user_id,
            },
        )

        registration = transition.registration
        await self.notifications.send(
            user_id=registration.user_id,
            title="Registration update",
            message=(
                f"Your registration for {registration.service_name} is now "
                f"{status.value}."
            ),
            notification_type=STATUS_NOTIFICATION_TYPES[status],
        )
        return transition

    async def delete_registration(
        self,
        auth: AuthorizationContext,
        registration_id: str,
        temple_id: str,
        message: Optional[str] = None,
    ) -> ServiceRegistration:
        """Delete a registration. Allowed for super-admins, admins of the
        registration's temple and the registrant."""
        _require(registration_id=registration_id, temple_id=temple_id)

        existing = await self.registration_repo.get(registration_id)
        if existing is None or existing.temple_id != temple_id:
            raise NotFoundError("Registration not found")

        if not (
            is_temple_admin(auth, existing.temple_id)
            or existing.user_id == auth.user_id
        ):
            raise PermissionDeniedError(
                "Only temple admins, super admins, or the registration "
                "owner can delete registrations"
            )

        deleted = await with_retry(
            lambda: self.registration_repo.delete(registration_id),
            self.retry_policy,
            "delete_registration",
        )

        logger.info(
            "Registration deleted",
            extra={
                "registration_id": registration_id,
                "status": deleted.status.value,
                "deleted_by": auth.user_id,
            },
        )

        if deleted.user_id != auth.user_id:
            text = (
                f"Your registration for {deleted.service_name} was cancelled."
            )
            if message:
                text = f"{text} {message}"
            await self.notifications.send(
                user_id=deleted.user_id,
                title="Registration cancelled",
                message=text,
                notification_type=NotificationType.WARNING,
            )
        return deleted

    async def recalculate_service_participants(
        self, service_id: str, temple_id: str
    ) -> ParticipantCounts:
        _require(service_id=service_id, temple_id=temple_id)
        counts = await with_retry(
            lambda: self.registration_repo.recalculate_counts(
                temple_id, service_id
            ),
            self.retry_policy,
            "recalculate_counts",
        )
        logger.info(
            "Participant counters recalculated",
            extra={
                "service_id": service_id,
                "temple_id": temple_id,
                "current": counts.current,
                "pending": counts.pending,
            },
        )
        return counts

    async def get_registration(
        self, auth: AuthorizationContext, registration_id: str
    ) -> ServiceRegistration:
        _require(registration_id=registration_id)
        registration = await self.registration_repo.get(registration_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        if not (
            registration.user_id == auth.user_id
            or is_temple_admin(auth, registration.temple_id)
        ):
            raise PermissionDeniedError(
                "Only the registrant or a temple admin can view this "
                "registration"
            )
        return registration

    async def list_user_registrations(
        self, user_id: str
    ) -> List[ServiceRegistration]:
        if not user_id:
            return []
        return await with_retry(
            lambda: self.registration_repo.list_for_user(user_id),
            self.retry_policy,
            "list_user_registrations",
        )

    async def list_temple_registrations(
        self, auth: AuthorizationContext, temple_id: str
    ) -> List[ServiceRegistration]:
        _require(temple_id=temple_id)
        require_temple_admin(auth, temple_id, "list temple registrations")
        return await with_retry(
            lambda: self.registration_repo.list_for_temple(temple_id),
            self.retry_policy,
            "list_temple_registrations",
        )

    async def list_service_registrations(
        self, auth: AuthorizationContext, temple_id: str, service_id: str
    ) -> List[ServiceRegistration]:
        _require(temple_id=temple_id, service_id=service_id)
        service = await self.service_repo.get(temple_id, service_id)
        if service is None:
            raise NotFoundError("Service not found")
        if not (
            is_temple_admin(auth, temple_id)
            or is_service_leader(auth, service)
        ):
            raise PermissionDeniedError(
                "Only temple admins or the service leader can list "
                "registrations"
            )
        return await self.registration_repo.list_for_service(
            temple_id, service_id
        )

    async def _enroll_member(self, temple_id: str, user_id: str) -> None:
        admin = await self.admin_repo.get(user_id)
        if admin is not None and (
            admin.is_super_admin
            or (admin.is_admin and admin.temple_id == temple_id)
        ):
            return
        try:
            await self.temple_repo.add_member(temple_id, user_id)
        except AlreadyExistsError:
            logger.debug(
                "User already a temple member",
                extra={"temple_id": temple_id, "user_id": user_id},
            )

    async def _notify_contact_person(
        self, registration: ServiceRegistration
    ) -> None:
        try:
            service = await self.service_repo.get(
                registration.temple_id, registration.service_id
            )
        except Exception:
            logger.warning(
                "Could not load service for contact notification",
                extra={"service_id": registration.service_id},
                exc_info=True,
            )
            return
        if service is None or not service.leader_id:
            return
        await self.notifications.send(
            user_id=service.leader_id,
            title="New registration",
            message=(
                f"A new registration for {service.name} is awaiting review."
            ),
            notification_type=NotificationType.INFO,
        )


class ServiceManagementUseCase:
    """Create, update, delete and list services of a temple."""

    def __init__(
        self,
        service_repo: ServiceRepository,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.service_repo = ensure_service_repository(service_repo)
        self.retry_policy = retry_policy or RetryPolicy()

    async def create_service(
        self, auth: AuthorizationContext, temple_id: str, data: ServiceData
    ) -> Service:
        _require(temple_id=temple_id)
        require_temple_admin(auth, temple_id, "create services")

        service = build_domain_model(
            Service,
            id=await self.service_repo.generate_id(),
            temple_id=temple_id,
            created_by=auth.user_id,
            current_participants=0,
            pending_participants=0,
            **data.model_dump(),
        )
        await with_retry(
            lambda: self.service_repo.create(service),
            self.retry_policy,
            "create_service",
        )
        logger.info(
            "Service created",
            extra={
                "service_id": service.id,
                "temple_id": temple_id,
                "created_by": auth.user_id,
            },
        )
        return service

    async def update_service(
        self,
        auth: AuthorizationContext,
        temple_id: str,
        service_id: str,
        update: ServiceUpdate,
    ) -> Service:
        """
        Temple admins may change any field. The service leader may change
        ``notes`` and nothing else.
        """
        _require(temple_id=temple_id, service_id=service_id)

        service = await self.service_repo.get(temple_id, service_id)
        if service is None:
            raise NotFoundError("Service not found")

        if not is_temple_admin(auth, temple_id):
            if not is_service_leader(auth, service):
                raise PermissionDeniedError(
                    "Only temple admins or the service leader can update "
                    "this service"
                )
            if not update.is_notes_only():
                raise PermissionDeniedError(
                    "Service leaders can only update notes"
                )

        updated = await with_retry(
            lambda: self.service_repo.apply_update(
                temple_id, service_id, update
            ),
            self.retry_policy,
            "update_service",
        )
        if updated is None:
            raise NotFoundError("Service not found")

        logger.info(
            "Service updated",
            extra={
                "service_id": service_id,
                "fields": sorted(update.changed_fields()),
                "updated_by": auth.user_id,
            },
        )
        return updated

    async def delete_service(
        self,
        auth: AuthorizationContext,
        temple_id: str,
        service_id: str,
        force: bool = False,
    ) -> int:
        """Delete a service; returns how many registrations went with it."""
        _require(temple_id=temple_id, service_id=service_id)
        require_temple_admin(auth, temple_id, "delete services")

        removed = await with_retry(
            lambda: self.service_repo.delete(temple_id, service_id, force),
            self.retry_policy,
            "delete_service",
        )
        logger.info(
            "Service deleted",
            extra={
                "service_id": service_id,
                "temple_id": temple_id,
                "force": force,
                "registrations_removed": removed,
            },
        )
        return removed

    async def get_service(self, temple_id: str, service_id: str) -> Service:
        _require(temple_id=temple_id, service_id=service_id)
        service = await self.service_repo.get(temple_id, service_id)
        if service is None:
            raise NotFoundError("Service not found")
        return service

    async def list_services(
        self,
        temple_id: str,
        after: Optional[datetime] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ServicePage:
        _require(temple_id=temple_id)
        if limit < 1:
            raise InvalidArgumentError("Page size must be positive")

        # One extra row tells us whether another page exists
        rows = await with_retry(
            lambda: self.service_repo.list(temple_id, after, limit + 1),
            self.retry_policy,
            "list_services",
        )
        items = rows[:limit]
        return ServicePage(
            items=items,
            has_more=len(rows) > limit,
            cursor=items[-1].updated_at if items else None,
        )


class TempleManagementUseCase:
    """Temples, memberships and admin assignment."""

    def __init__(
        self,
        temple_repo: TempleRepository,
        admin_repo: AdminRepository,
    ):
        self.temple_repo = ensure_temple_repository(temple_repo)
        self.admin_repo = ensure_admin_repository(admin_repo)

    async def create_temple(
        self,
        auth: AuthorizationContext,
        name: str,
        location: str = "",
        description: Optional[str] = None,
    ) -> Temple:
        """Create a temple; the creating super-admin becomes its admin."""
        require_super_admin(auth, "create temples")

        temple = build_domain_model(
            Temple,
            id=await self.temple_repo.generate_id(),
            name=name,
            location=location,
            description=description,
            created_by=auth.user_id,
        )
        await self.temple_repo.save(temple)

        existing = await self.admin_repo.get(auth.user_id)
        await self.admin_repo.save(
            AdminRecord(
                uid=auth.user_id,
                is_admin=True,
                is_super_admin=auth.is_super_admin,
                temple_id=temple.id,
                created_at=existing.created_at if existing else utcnow(),
            )
        )

        logger.info(
            "Temple created",
            extra={"temple_id": temple.id, "created_by": auth.user_id},
        )
        return temple

    async def update_temple(
        self,
        auth: AuthorizationContext,
        temple_id: str,
        update: TempleUpdate,
    ) -> Temple:
        _require(temple_id=temple_id)
        require_temple_admin(auth, temple_id, "update temple details")

        temple = await self.temple_repo.get(temple_id)
        if temple is None:
            raise NotFoundError("Temple not found")

        changes = update.model_dump(exclude_unset=True)
        updated = build_domain_model(
            Temple,
            **{**temple.model_dump(), **changes, "updated_at": utcnow()},
        )
        await self.temple_repo.save(updated)
        logger.info(
            "Temple updated",
            extra={"temple_id": temple_id, "fields": sorted(changes)},
        )
        return updated

    async def delete_temple(
        self, auth: AuthorizationContext, temple_id: str
    ) -> None:
        _require(temple_id=temple_id)
        require_super_admin(auth, "delete temples")

        if not await self.temple_repo.delete(temple_id):
            raise NotFoundError("Temple not found")

        for record in await self.admin_repo.list_for_temple(temple_id):
            await self._revoke_admin(record)

        logger.info(
            "Temple deleted",
            extra={"temple_id": temple_id, "deleted_by": auth.user_id},
        )

    async def get_temple(self, temple_id: str) -> Temple:
        _require(temple_id=temple_id)
        temple = await self.temple_repo.get(temple_id)
        if temple is None:
            raise NotFoundError("Temple not found")
        return temple

    async def list_temples(self) -> List[Temple]:
        return await self.temple_repo.list_all()

    async def add_member(self, temple_id: str, user_id: str) -> TempleMember:
        """Enroll a user.

        Raises:
            AlreadyExistsError: the user administers the temple or is
                already a member
        """
        _require(temple_id=temple_id, user_id=user_id)
        admin = await self.admin_repo.get(user_id)
        if (
            admin is not None
            and admin.is_admin
            and admin.temple_id == temple_id
        ):
            raise AlreadyExistsError("User is already an admin of this temple")
        member = await self.temple_repo.add_member(temple_id, user_id)
        logger.info(
            "Temple member added",
            extra={"temple_id": temple_id, "user_id": user_id},
        )
        return member

    async def list_members(
        self, auth: AuthorizationContext, temple_id: str
    ) -> List[TempleMember]:
        _require(temple_id=temple_id)
        require_temple_admin(auth, temple_id, "list temple members")
        return await self.temple_repo.list_members(temple_id)

    async def remove_member(
        self, auth: AuthorizationContext, temple_id: str, user_id: str
    ) -> None:
        """Temple admins may remove anyone; members may leave themselves."""
        _require(temple_id=temple_id, user_id=user_id)
        if auth.user_id != user_id:
            require_temple_admin(auth, temple_id, "remove temple members")

        if not await self.temple_repo.remove_member(temple_id, user_id):
            raise NotFoundError("User is not a member of this temple")
        logger.info(
            "Temple member removed",
            extra={
                "temple_id": temple_id,
                "user_id": user_id,
                "removed_by": auth.user_id,
            },
        )

    async def assign_temple_admin(
        self, auth: AuthorizationContext, user_id: str, temple_id: str
    ) -> AdminRecord:
        _require(user_id=user_id, temple_id=temple_id)
        require_super_admin(auth, "assign temple admins")

        if await self.temple_repo.get(temple_id) is None:
            raise NotFoundError("Temple not found")

        existing = await self.admin_repo.get(user_id)
        record = AdminRecord(
            uid=user_id,
            is_admin=True,
            is_super_admin=existing.is_super_admin if existing else False,
            temple_id=temple_id,
            created_at=existing.created_at if existing else utcnow(),
        )
        await self.admin_repo.save(record)
        logger.info(
            "Temple admin assigned",
            extra={
                "user_id": user_id,
                "temple_id": temple_id,
                "assigned_by": auth.user_id,
            },
        )
        return record

    async def remove_admin(
        self, auth: AuthorizationContext, user_id: str, temple_id: str
    ) -> None:
        """Revoke the admin role ``user_id`` holds for ``temple_id``.

        Raises:
            NotFoundError: the user does not administer that temple
        """
        _require(user_id=user_id, temple_id=temple_id)
        require_super_admin(auth, "remove temple admins")

        record = await self.admin_repo.get(user_id)
        if record is None or record.temple_id != temple_id:
            raise NotFoundError("Admin not found")
        await self._revoke_admin(record)
        logger.info(
            "Temple admin removed",
            extra={
                "user_id": user_id,
                "temple_id": temple_id,
                "removed_by": auth.user_id,
            },
        )

    async def list_temple_admins(
        self, auth: AuthorizationContext, temple_id: str
    ) -> List[AdminRecord]:
        _require(temple_id=temple_id)
        require_super_admin(auth, "list temple admins")
        return [
            record
            for record in await self.admin_repo.list_for_temple(temple_id)
            if record.is_admin
        ]

    async def _revoke_admin(self, record: AdminRecord) -> None:
        # Super-admin status survives losing a temple
        if record.is_super_admin:
            await self.admin_repo.save(
                record.model_copy(
                    update={
                        "is_admin": False,
                        "temple_id": None,
                        "updated_at": utcnow(),
                    }
                )
            )
        else:
            await self.admin_repo.delete(record.uid)


class ServiceTypeUseCase:
    def __init__(self, service_type_repo: ServiceTypeRepository):
        self.service_type_repo = ensure_service_type_repository(
            service_type_repo
        )

    async def list_service_types(self, temple_id: str) -> List[ServiceType]:
        _require(temple_id=temple_id)
        return await self.service_type_repo.list(temple_id)

    async def create_service_type(
        self,
        auth: AuthorizationContext,
        temple_id: str,
        name: str,
        icon: str,
    ) -> ServiceType:
        """Creating a name that already exists returns the existing type."""
        _require(temple_id=temple_id)
        require_temple_admin(auth, temple_id, "manage service types")

        existing = await self.service_type_repo.find_by_name(
            temple_id, name.strip()
        )
        if existing is not None:
            logger.debug(
                "Service type already exists",
                extra={"temple_id": temple_id, "service_type_id": existing.id},
            )
            return existing

        service_type = build_domain_model(
            ServiceType,
            id=await self.service_type_repo.generate_id(),
            temple_id=temple_id,
            name=name,
            icon=icon,
        )
        await self.service_type_repo.save(service_type)
        logger.info(
            "Service type created",
            extra={"temple_id": temple_id, "service_type_id": service_type.id},
        )
        return service_type

    async def update_service_type(
        self,
        auth: AuthorizationContext,
        temple_id: str,
        service_type_id: str,
        name: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> ServiceType:
        _require(temple_id=temple_id, service_type_id=service_type_id)
        require_temple_admin(auth, temple_id, "manage service types")

        current = await self.service_type_repo.get(temple_id, service_type_id)
        if current is None:
            raise NotFoundError("Service type not found")

        updated = build_domain_model(
            ServiceType,
            **{
                **current.model_dump(),
                "name": name if name is not None else current.name,
                "icon": icon if icon is not None else current.icon,
                "updated_at": utcnow(),
            },
        )
        await self.service_type_repo.save(updated)
        return updated

    async def delete_service_type(
        self, auth: AuthorizationContext, temple_id: str, service_type_id: str
    ) -> None:
        _require(temple_id=temple_id, service_type_id=service_type_id)
        require_temple_admin(auth, temple_id, "manage service types")
        if not await self.service_type_repo.delete(temple_id, service_type_id):
            raise NotFoundError("Service type not found")


class EventUseCase:
    def __init__(
        self,
        event_repo: EventRepository,
        profile_repo: Optional[ProfileRepository] = None,
    ):
        self.event_repo = ensure_event_repository(event_repo)
        self.profile_repo = (
            ensure_profile_repository(profile_repo) if profile_repo else None
        )

    async def list_events(
        self,
        temple_id: str,
        before: Optional[datetime] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> EventPage:
        _require(temple_id=temple_id)
        if limit < 1:
            raise InvalidArgumentError("Page size must be positive")
        rows = await self.event_repo.list(temple_id, before, limit + 1)
        items = rows[:limit]
        return EventPage(
            items=items,
            has_more=len(rows) > limit,
            cursor=items[-1].start_date if items else None,
        )

    async def get_event(self, temple_id: str, event_id: str) -> Event:
        _require(temple_id=temple_id, event_id=event_id)
        event = await self.event_repo.get(temple_id, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    async def create_event(
        self, auth: AuthorizationContext, temple_id: str, data: EventData
    ) -> Event:
        _require(temple_id=temple_id)
        require_temple_admin(auth, temple_id, "create events")
        event = build_domain_model(
            Event,
            id=await self.event_repo.generate_id(),
            temple_id=temple_id,
            **data.model_dump(),
        )
        await self.event_repo.save(event)
        logger.info(
            "Event created",
            extra={"temple_id": temple_id, "event_id": event.id},
        )
        return event

    async def update_event(
        self,
        auth: AuthorizationContext,
        temple_id: str,
        event_id: str,
        update: EventUpdate,
    ) -> Event:
        _require(temple_id=temple_id, event_id=event_id)
        require_temple_admin(auth, temple_id, "update events")
        current = await self.event_repo.get(temple_id, event_id)
        if current is None:
            raise NotFoundError("Event not found")
        updated = build_domain_model(
            Event,
            **{
                **current.model_dump(),
                **update.model_dump(exclude_unset=True),
                "updated_at": utcnow(),
            },
        )
        await self.event_repo.save(updated)
        return updated

    async def delete_event(
        self, auth: AuthorizationContext, temple_id: str, event_id: str
    ) -> None:
        _require(temple_id=temple_id, event_id=event_id)
        require_temple_admin(auth, temple_id, "delete events")
        if not await self.event_repo.delete(temple_id, event_id):
            raise NotFoundError("Event not found")

    async def register_for_event(
        self, user_id: str, temple_id: str, event_id: str
    ) -> Event:
        """
        Sign a user up for an event that takes registrations.

        The participant entry carries a snapshot of the user's display name
        and photo so attendee lists need no profile lookups.

        Raises:
            NotFoundError: unknown event
            FailedPreconditionError: the event takes no registrations or is
                full
            AlreadyExistsError: the user is already signed up
        """
        _require(user_id=user_id, temple_id=temple_id, event_id=event_id)

        profile = (
            await self.profile_repo.get(user_id) if self.profile_repo else None
        )
        participant = EventParticipant(
            user_id=user_id,
            display_name=(profile.display_name or None) if profile else None,
            photo_url=profile.photo_url if profile else None,
        )
        event = await self.event_repo.add_participant(
            temple_id, event_id, participant
        )
        logger.info(
            "Registered for event",
            extra={
                "temple_id": temple_id,
                "event_id": event_id,
                "user_id": user_id,
                "participant_count": len(event.participants),
            },
        )
        return event

    async def unregister_from_event(
        self, user_id: str, temple_id: str, event_id: str
    ) -> Event:
        _require(user_id=user_id, temple_id=temple_id, event_id=event_id)
        event = await self.event_repo.remove_participant(
            temple_id, event_id, user_id
        )
        logger.info(
            "Unregistered from event",
            extra={
                "temple_id": temple_id,
                "event_id": event_id,
                "user_id": user_id,
            },
        )
        return event


class ProfileUseCase:
    """A user's own profile. Reading or updating a profile that does not
    exist yet creates a basic one."""

    def __init__(self, profile_repo: ProfileRepository):
        self.profile_repo = ensure_profile_repository(profile_repo)

    async def get_profile(self, user_id: str) -> UserProfile:
        _require(user_id=user_id)
        profile = await self.profile_repo.get(user_id)
        if profile is None:
            profile = UserProfile(uid=user_id)
            await self.profile_repo.save(profile)
            logger.info("Created basic profile", extra={"user_id": user_id})
        return profile

    async def update_profile(
        self, user_id: str, update: ProfileUpdate
    ) -> UserProfile:
        current = await self.get_profile(user_id)
        changes = update.model_dump(exclude_unset=True)
        updated = current.model_copy(
            update={**changes, "updated_at": utcnow()}
        )
        await self.profile_repo.save(updated)
        logger.info(
            "Profile updated",
            extra={"user_id": user_id, "fields": sorted(changes)},
        )
        return updated


class NotificationUseCase:
    """A user's stored notifications and quick links. Every operation is
    scoped to the owning user."""

    def __init__(
        self,
        notification_repo: NotificationRepository,
        quick_link_repo: QuickLinkRepository,
    ):
        self.notification_repo = ensure_notification_repository(
            notification_repo
        )
        self.quick_link_repo = ensure_quick_link_repository(quick_link_repo)

    async def list_notifications(self, user_id: str) -> List[Notification]:
        _require(user_id=user_id)
        return await self.notification_repo.list_for_user(user_id)

    async def mark_read(self, user_id: str, notification_id: str) -> None:
        await self._owned_notification(user_id, notification_id)
        await self.notification_repo.mark_read(notification_id)

    async def mark_all_read(self, user_id: str) -> int:
        _require(user_id=user_id)
        changed = await self.notification_repo.mark_all_read(user_id)
        logger.info(
            "Notifications marked read",
            extra={"user_id": user_id, "count": changed},
        )
        return changed

    async def delete_notification(
        self, user_id: str, notification_id: str
    ) -> None:
        await self._owned_notification(user_id, notification_id)
        await self.notification_repo.delete(notification_id)

    async def delete_all(self, user_id: str) -> int:
        _require(user_id=user_id)
        return await self.notification_repo.delete_all(user_id)

    async def list_quick_links(self, user_id: str) -> List[QuickLink]:
        _require(user_id=user_id)
        return await self.quick_link_repo.list_for_user(user_id)

    async def create_quick_link(
        self, user_id: str, title: str, url: str
    ) -> QuickLink:
        _require(user_id=user_id)
        link = build_domain_model(
            QuickLink,
            id=await self.quick_link_repo.generate_id(),
            user_id=user_id,
            title=title,
            url=url,
        )
        await self.quick_link_repo.save(link)
        return link

    async def update_quick_link(
        self,
        user_id: str,
        link_id: str,
        title: Optional[str] = None,
        url: Optional[str] = None,
    ) -> QuickLink:
        current = await self._owned_quick_link(user_id, link_id)
        updated = build_domain_model(
            QuickLink,
            **{
                **current.model_dump(),
                "title": title if title is not None else current.title,
                "url": url if url is not None else current.url,
                "updated_at": utcnow(),
            },
        )
        await self.quick_link_repo.save(updated)
        return updated

    async def delete_quick_link(self, user_id: str, link_id: str) -> None:
        await self._owned_quick_link(user_id, link_id)
        await self.quick_link_repo.delete(link_id)

    async def _owned_notification(
        self, user_id: str, notification_id: str
    ) -> Notification:
        _require(user_id=user_id, notification_id=notification_id)
        notification = await self.notification_repo.get(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.user_id != user_id:
            raise PermissionDeniedError(
                "Cannot modify another user's notification"
            )
        return notification

    async def _owned_quick_link(self, user_id: str, link_id: str) -> QuickLink:
        _require(user_id=user_id, link_id=link_id)
        link = await self.quick_link_repo.get(link_id)
        if link is None:
            raise NotFoundError("Quick link not found")
        if link.user_id != user_id:
            raise PermissionDeniedError(
                "Cannot modify another user's quick link"
            )
        return link


class ParticipantReconciliationUseCase:
    """
    Rebuild the participant counters of every service in a temple.

    Runs inside the reconciliation workflow with activity proxies, and
    directly from the operator CLI with a concrete repository. It makes no
    non-deterministic calls of its own.
    """

    def __init__(self, counter_repo: ParticipantCounterRepository):
        self.counter_repo = ensure_participant_counter_repository(
            counter_repo
        )

    async def reconcile_temple(self, temple_id: str) -> ReconciliationReport:
        _require(temple_id=temple_id)
        service_ids = await self.counter_repo.list_service_ids(temple_id)

        logger.info(
            "Reconciling participant counters",
            extra={"temple_id": temple_id, "service_count": len(service_ids)},
        )

        report = ReconciliationReport(temple_id=temple_id)
        for service_id in service_ids:
            try:
                report.counts[service_id] = (
                    await self.counter_repo.recalculate_counts(
                        temple_id, service_id
                    )
                )
            except NotFoundError:
                logger.warning(
                    "Service vanished before recount, skipping",
                    extra={"temple_id": temple_id, "service_id": service_id},
                )
                report.skipped.append(service_id)

        logger.info(
            "Participant counters reconciled",
            extra={
                "temple_id": temple_id,
                "service_count": len(report.counts),
                "skipped_count": len(report.skipped),
            },
        )
        return report
