"""
Events API router.

Routes are mounted under ``/temples/{temple_id}/events``.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from seva.api.dependencies import (
    get_authorization_context,
    get_current_user,
    get_event_use_case,
)
from seva.api.errors import http_error_for
from seva.api.responses import EVENTS_CACHE_CONTROL, EventsPageResponse
from seva.domain import AuthorizationContext, Event, EventData, EventUpdate
from seva.usecase import EventUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=EventsPageResponse)
async def list_events(
    temple_id: str,
    response: Response,
    last_event_date: Optional[datetime] = Query(None, alias="lastEventDate"),
    use_case: EventUseCase = Depends(get_event_use_case),
) -> EventsPageResponse:
    """List a temple's events, latest start first, 12 per page."""
    try:
        page = await use_case.list_events(temple_id, before=last_event_date)
    except Exception as e:
        raise http_error_for(e, "list events", temple_id=temple_id) from e

    response.headers["Cache-Control"] = EVENTS_CACHE_CONTROL
    return EventsPageResponse(
        events=page.items,
        has_more=page.has_more,
        last_event_date=page.cursor,
    )


@router.get("/{event_id}", response_model=Event)
async def get_event(
    temple_id: str,
    event_id: str,
    use_case: EventUseCase = Depends(get_event_use_case),
) -> Event:
    try:
        return await use_case.get_event(temple_id, event_id)
    except Exception as e:
        raise http_error_for(
            e, "retrieve event", temple_id=temple_id, event_id=event_id
        ) from e


@router.post("", response_model=Event, status_code=201)
async def create_event(
    temple_id: str,
    request: EventData,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: EventUseCase = Depends(get_event_use_case),
) -> Event:
    try:
        return await use_case.create_event(auth, temple_id, request)
    except Exception as e:
        raise http_error_for(e, "create event", temple_id=temple_id) from e


@router.patch("/{event_id}", response_model=Event)
async def update_event(
    temple_id: str,
    event_id: str,
    request: EventUpdate,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: EventUseCase = Depends(get_event_use_case),
) -> Event:
    try:
        return await use_case.update_event(auth, temple_id, event_id, request)
    except Exception as e:
        raise http_error_for(
            e, "update event", temple_id=temple_id, event_id=event_id
        ) from e


@router.delete("/{event_id}", status_code=204)
async def delete_event(
    temple_id: str,
    event_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: EventUseCase = Depends(get_event_use_case),
) -> Response:
    try:
        await use_case.delete_event(auth, temple_id, event_id)
    except Exception as e:
        raise http_error_for(
            e, "delete event", temple_id=temple_id, event_id=event_id
        ) from e
    return Response(status_code=204)


@router.post("/{event_id}/registrations", response_model=Event)
async def register_for_event(
    temple_id: str,
    event_id: str,
    user_id: str = Depends(get_current_user),
    use_case: EventUseCase = Depends(get_event_use_case),
) -> Event:
    """Sign the caller up for an event that takes registrations."""
    try:
        return await use_case.register_for_event(user_id, temple_id, event_id)
    except Exception as e:
        raise http_error_for(
            e,
            "register for event",
            temple_id=temple_id,
            event_id=event_id,
            user_id=user_id,
        ) from e


@router.delete("/{event_id}/registrations", response_model=Event)
async def unregister_from_event(
    temple_id: str,
    event_id: str,
    user_id: str = Depends(get_current_user),
    use_case: EventUseCase = Depends(get_event_use_case),
) -> Event:
    try:
        return await use_case.unregister_from_event(
            user_id, temple_id, event_id
        )
    except Exception as e:
        raise http_error_for(
            e,
            "unregister from event",
            temple_id=temple_id,
            event_id=event_id,
            user_id=user_id,
        ) from e
