"""
Per-user notifications and quick links.

Routes:
- GET    /notifications
- PATCH  /notifications                      mark all read
- PATCH  /notifications/{notification_id}    mark one read
- DELETE /notifications
- DELETE /notifications/{notification_id}
- GET    /quick-links
- POST   /quick-links
- PATCH  /quick-links/{link_id}
- DELETE /quick-links/{link_id}

Every route acts on the caller's own documents.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response

from seva.api.dependencies import get_current_user, get_notification_use_case
from seva.api.errors import http_error_for
from seva.api.requests import QuickLinkRequest, UpdateQuickLinkRequest
from seva.api.responses import CountResponse
from seva.domain import Notification, QuickLink
from seva.usecase import NotificationUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/notifications", response_model=List[Notification])
async def list_notifications(
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> List[Notification]:
    try:
        return await use_case.list_notifications(user_id)
    except Exception as e:
        raise http_error_for(e, "list notifications", user_id=user_id) from e


@router.patch("/notifications", response_model=CountResponse)
async def mark_all_notifications_read(
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> CountResponse:
    try:
        changed = await use_case.mark_all_read(user_id)
    except Exception as e:
        raise http_error_for(
            e, "mark notifications read", user_id=user_id
        ) from e
    return CountResponse(count=changed)


@router.patch("/notifications/{notification_id}", status_code=204)
async def mark_notification_read(
    notification_id: str,
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> Response:
    try:
        await use_case.mark_read(user_id, notification_id)
    except Exception as e:
        raise http_error_for(
            e,
            "mark notification read",
            user_id=user_id,
            notification_id=notification_id,
        ) from e
    return Response(status_code=204)


@router.delete("/notifications", response_model=CountResponse)
async def delete_all_notifications(
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> CountResponse:
    try:
        deleted = await use_case.delete_all(user_id)
    except Exception as e:
        raise http_error_for(
            e, "delete notifications", user_id=user_id
        ) from e
    return CountResponse(count=deleted)


@router.delete("/notifications/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> Response:
    try:
        await use_case.delete_notification(user_id, notification_id)
    except Exception as e:
        raise http_error_for(
            e,
            "delete notification",
            user_id=user_id,
            notification_id=notification_id,
        ) from e
    return Response(status_code=204)


@router.get("/quick-links", response_model=List[QuickLink])
async def list_quick_links(
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> List[QuickLink]:
    try:
        return await use_case.list_quick_links(user_id)
    except Exception as e:
        raise http_error_for(e, "list quick links", user_id=user_id) from e


@router.post("/quick-links", response_model=QuickLink, status_code=201)
async def create_quick_link(
    request: QuickLinkRequest,
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> QuickLink:
    try:
        return await use_case.create_quick_link(
            user_id, request.title, request.url
        )
    except Exception as e:
        raise http_error_for(e, "create quick link", user_id=user_id) from e


@router.patch("/quick-links/{link_id}", response_model=QuickLink)
async def update_quick_link(
    link_id: str,
    request: UpdateQuickLinkRequest,
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> QuickLink:
    try:
        return await use_case.update_quick_link(
            user_id, link_id, request.title, request.url
        )
    except Exception as e:
        raise http_error_for(
            e, "update quick link", user_id=user_id, link_id=link_id
        ) from e


@router.delete("/quick-links/{link_id}", status_code=204)
async def delete_quick_link(
    link_id: str,
    user_id: str = Depends(get_current_user),
    use_case: NotificationUseCase = Depends(get_notification_use_case),
) -> Response:
    try:
        await use_case.delete_quick_link(user_id, link_id)
    except Exception as e:
        raise http_error_for(
            e, "delete quick link", user_id=user_id, link_id=link_id
        ) from e
    return Response(status_code=204)
