"""
Domain models for temple services and registrations.

These are pure Pydantic data structures with validation. The only behavior
living here is the participant counter arithmetic, because it is the rule
every repository implementation must apply identically.
"""

import re
from datetime import date as Date
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Enums ---


class RegistrationStatus(str, Enum):
    """Lifecycle status of a service registration."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def counter_field(self) -> Optional[str]:
        """Service counter this status is counted in, if any.

        Rejected registrations are not counted anywhere.
        """
        return _COUNTER_FIELDS.get(self)


_COUNTER_FIELDS: Dict[RegistrationStatus, str] = {
    RegistrationStatus.PENDING: "pending_participants",
    RegistrationStatus.APPROVED: "current_participants",
}


class Role(str, Enum):
    """Authority a caller holds with respect to one temple (and optionally
    one service)."""

    SUPER_ADMIN = "super_admin"
    TEMPLE_ADMIN = "temple_admin"
    SERVICE_LEADER = "service_leader"
    MEMBER = "member"
    NONE = "none"


class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


# --- Participant counters ---


class ParticipantCounts(BaseModel):
    """Snapshot of the denormalized counters on a service."""

    current: int = 0
    pending: int = 0


class ParticipantDelta(BaseModel):
    """Change to apply to a service's counters."""

    current: int = 0
    pending: int = 0


def participant_delta(
    old_status: Optional[RegistrationStatus],
    new_status: Optional[RegistrationStatus],
) -> ParticipantDelta:
    """
    Counter delta for a registration moving from ``old_status`` to
    ``new_status``.

    The bucket of the old status is decremented and the bucket of the new
    status is incremented. ``None`` stands for "no registration", so
    creation is ``(None, PENDING)`` and deletion is ``(status, None)``.
    Self-transitions yield a net-zero delta.
    """
    increments = {"current_participants": 0, "pending_participants": 0}

    if old_status is not None and old_status.counter_field:
        increments[old_status.counter_field] -= 1
    if new_status is not None and new_status.counter_field:
        increments[new_status.counter_field] += 1

    return ParticipantDelta(
        current=increments["current_participants"],
        pending=increments["pending_participants"],
    )


def count_by_status(
    statuses: List[RegistrationStatus],
) -> ParticipantCounts:
    """Authoritative counters derived from registration statuses."""
    return ParticipantCounts(
        current=sum(1 for s in statuses if s == RegistrationStatus.APPROVED),
        pending=sum(1 for s in statuses if s == RegistrationStatus.PENDING),
    )


# --- Service ---


class TimeSlot(BaseModel):
    """Wall-clock time window, HH:MM strings."""

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def must_be_wall_clock_time(cls, v: str) -> str:
        if not _TIME_PATTERN.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v

    @field_validator("end")
    @classmethod
    def end_must_follow_start(cls, v: str, info) -> str:  # type: ignore[no-untyped-def]
        start = info.data.get("start")
        if start is not None and v <= start:
            raise ValueError("Time slot end must be after start")
        return v


class ContactPerson(BaseModel):
    name: str
    phone: str
    user_id: Optional[str] = Field(
        None, description="Set when the contact person leads the service"
    )


class Service(BaseModel):
    """A bookable activity scoped to one temple."""

    id: str
    temple_id: str
    name: str
    description: str = ""
    type: str
    date: Date
    time_slot: TimeSlot
    max_participants: int
    current_participants: int = 0
    pending_participants: int = 0
    contact_person: ContactPerson
    notes: Optional[str] = None
    created_by: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("id", "temple_id", "name")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

    @field_validator("max_participants")
    @classmethod
    def max_participants_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Max participants must be positive")
        return v

    @field_validator("current_participants", "pending_participants")
    @classmethod
    def counters_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Participant counters must be non-negative")
        return v

    @property
    def leader_id(self) -> Optional[str]:
        return self.contact_person.user_id

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants


class ServiceData(BaseModel):
    """Fields supplied when creating a service."""

    name: str
    description: str = ""
    type: str
    date: Date
    time_slot: TimeSlot
    max_participants: int
    contact_person: ContactPerson
    notes: Optional[str] = None

    @field_validator("name", "type")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

    @field_validator("max_participants")
    @classmethod
    def max_participants_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Max participants must be positive")
        return v


class ServiceUpdate(BaseModel):
    """Partial update of a service. Only explicitly set fields apply."""

    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    date: Optional[Date] = None
    time_slot: Optional[TimeSlot] = None
    max_participants: Optional[int] = None
    contact_person: Optional[ContactPerson] = None
    notes: Optional[str] = None

    @field_validator("max_participants")
    @classmethod
    def max_participants_must_be_positive(
        cls, v: Optional[int]
    ) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("Max participants must be positive")
        return v

    def changed_fields(self) -> Set[str]:
        return set(self.model_dump(exclude_unset=True).keys())

    def is_notes_only(self) -> bool:
        return self.changed_fields() <= {"notes"}


# --- Registration ---


class ServiceRegistration(BaseModel):
    """One user's request to participate in a service.

    The ``service_*`` fields are a snapshot of the service taken at
    registration time.
    """

    id: str
    user_id: str
    service_id: str
    temple_id: str
    status: RegistrationStatus = RegistrationStatus.PENDING
    message: Optional[str] = None
    service_name: str
    service_type: str
    service_date: Date
    service_time_slot: TimeSlot
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("id", "user_id", "service_id", "temple_id")
    @classmethod
    def ids_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Identifier cannot be empty")
        return v

    @classmethod
    def pending_for(
        cls,
        registration_id: str,
        user_id: str,
        service: Service,
        message: Optional[str] = None,
    ) -> "ServiceRegistration":
        return cls(
            id=registration_id,
            user_id=user_id,
            service_id=service.id,
            temple_id=service.temple_id,
            status=RegistrationStatus.PENDING,
            message=message,
            service_name=service.name,
            service_type=service.type,
            service_date=service.date,
            service_time_slot=service.time_slot,
        )


class StatusTransition(BaseModel):
    """Outcome of a committed status change."""

    registration: ServiceRegistration
    old_status: RegistrationStatus
    new_status: RegistrationStatus
    delta: ParticipantDelta


# --- Authorization ---


class AdminRecord(BaseModel):
    """Per-user admin document (``admin/{uid}``)."""

    uid: str
    is_admin: bool = False
    is_super_admin: bool = False
    temple_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class AuthorizationContext(BaseModel):
    """Caller authority, resolved once per request and passed explicitly
    into every mutating use case call."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    is_super_admin: bool = False
    admin_temple_id: Optional[str] = None
    member_temple_ids: FrozenSet[str] = frozenset()


# --- Temples ---


class Temple(BaseModel):
    id: str
    name: str
    location: str = ""
    description: Optional[str] = None
    created_by: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Temple name cannot be empty")
        return v.strip()


class TempleUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


class TempleMember(BaseModel):
    id: str
    temple_id: str
    user_id: str
    role: MemberRole = MemberRole.MEMBER
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ServiceType(BaseModel):
    id: str
    temple_id: str
    name: str
    icon: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("name", "icon")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Service type name and icon are required")
        return v.strip()


class EventParticipant(BaseModel):
    """A user signed up for an event, with the profile details shown on
    the attendee list at the time of signing up."""

    user_id: str
    registered_at: datetime = Field(default_factory=utcnow)
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class Event(BaseModel):
    id: str
    temple_id: str
    title: str
    description: str = ""
    start_date: datetime
    end_date: datetime
    location: str = ""
    capacity: Optional[int] = None
    registration_required: bool = False
    participants: List[EventParticipant] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("end_date")
    @classmethod
    def end_must_not_precede_start(cls, v: datetime, info) -> datetime:  # type: ignore[no-untyped-def]
        start = info.data.get("start_date")
        if start is not None and v < start:
            raise ValueError("Event end date must not be before start date")
        return v

    @field_validator("capacity")
    @classmethod
    def capacity_must_be_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("Capacity must be positive")
        return v

    def participant(self, user_id: str) -> Optional[EventParticipant]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    @property
    def is_full(self) -> bool:
        return (
            self.capacity is not None
            and len(self.participants) >= self.capacity
        )


# --- Users ---


class UserProfile(BaseModel):
    uid: str
    email: str = ""
    display_name: str = ""
    photo_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    bio: Optional[str] = None

    @field_validator("display_name")
    @classmethod
    def display_name_must_not_be_blank(
        cls, v: Optional[str]
    ) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Display name cannot be blank")
        return v.strip() if v is not None else v


# --- Notifications ---


class Notification(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    link: Optional[str] = None
    read: bool = False
    timestamp: datetime = Field(default_factory=utcnow)


class QuickLink(BaseModel):
    id: str
    user_id: str
    title: str
    url: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("title", "url")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Title and URL are required")
        return v.strip()


class EventData(BaseModel):
    """Fields supplied when creating an event."""

    title: str
    description: str = ""
    start_date: datetime
    end_date: datetime
    location: str = ""
    capacity: Optional[int] = None
    registration_required: bool = False

    @field_validator("title")
    @classmethod
    def title_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Event title cannot be empty")
        return v.strip()


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    capacity: Optional[int] = None
    registration_required: Optional[bool] = None


# --- Pages and reports ---


class ServicePage(BaseModel):
    """One cursor page of services, newest ``updated_at`` first."""

    items: List[Service]
    has_more: bool
    cursor: Optional[datetime] = None


class EventPage(BaseModel):
    """One cursor page of events, latest ``start_date`` first."""

    items: List[Event]
    has_more: bool
    cursor: Optional[datetime] = None


class ReconciliationReport(BaseModel):
    temple_id: str
    counts: Dict[str, ParticipantCounts] = Field(default_factory=dict)
    # Services deleted between listing and recounting
    skipped: List[str] = Field(default_factory=list)
