"""
Pydantic models for API responses.

Most endpoints return domain models directly. This file contains only the
envelopes that are specific to the HTTP contract, such as the cursor pages
whose field names the web client expects in camelCase.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from seva.domain import Event, Service, UserProfile

SERVICES_CACHE_CONTROL = "public, max-age=300, stale-while-revalidate=60"
EVENTS_CACHE_CONTROL = "public, max-age=60, stale-while-revalidate=30"


class HealthCheckResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime


class ServicesPageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    services: List[Service]
    has_more: bool = Field(..., alias="hasMore")
    last_service_date: Optional[datetime] = Field(
        None, alias="lastServiceDate"
    )


class EventsPageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    events: List[Event]
    has_more: bool = Field(..., alias="hasMore")
    last_event_date: Optional[datetime] = Field(None, alias="lastEventDate")


class DeleteServiceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(..., alias="serviceId")
    registrations_removed: int = Field(..., alias="registrationsRemoved")


class CountResponse(BaseModel):
    """Number of documents affected by a batch operation."""

    count: int


class ProfileResponse(BaseModel):
    """The caller's profile plus the roles the client uses to pick pages."""

    model_config = ConfigDict(populate_by_name=True)

    profile: UserProfile
    is_admin: bool = Field(..., alias="isAdmin")
    is_super_admin: bool = Field(..., alias="isSuperAdmin")
