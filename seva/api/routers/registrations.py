"""
Registrations API router.

Routes:
- GET    /temples/{temple_id}/registrations                    temple admin
- GET    /temples/{temple_id}/registrations/{registration_id}
- PATCH  /temples/{temple_id}/registrations/{registration_id}  status
- DELETE /temples/{temple_id}/registrations/{registration_id}
- GET    /me/registrations                                     caller's own

Registration is created through the services router.
"""

import logging
from typing import List, Optional, cast

from fastapi import APIRouter, Depends
from fastapi_pagination import Page, paginate

from seva.api.dependencies import (
    get_authorization_context,
    get_current_user,
    get_service_registration_use_case,
)
from seva.api.errors import http_error_for
from seva.api.requests import UpdateRegistrationStatusRequest
from seva.domain import AuthorizationContext, ServiceRegistration
from seva.errors import NotFoundError
from seva.usecase import ServiceRegistrationUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/temples/{temple_id}/registrations",
    response_model=Page[ServiceRegistration],
)
async def list_temple_registrations(
    temple_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceRegistrationUseCase = Depends(
        get_service_registration_use_case
    ),
) -> Page[ServiceRegistration]:
    """
    List every registration in a temple, newest first, with pagination.

    Raises:
        HTTPException: 403 unless the caller administers the temple
    """
    try:
        registrations = await use_case.list_temple_registrations(
            auth, temple_id
        )
    except Exception as e:
        raise http_error_for(
            e, "list registrations", temple_id=temple_id
        ) from e

    logger.info(
        "Temple registrations retrieved",
        extra={"temple_id": temple_id, "count": len(registrations)},
    )
    return cast(Page[ServiceRegistration], paginate(registrations))


@router.get(
    "/temples/{temple_id}/registrations/{registration_id}",
    response_model=ServiceRegistration,
)
async def get_registration(
    temple_id: str,
    registration_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceRegistrationUseCase = Depends(
        get_service_registration_use_case
    ),
) -> ServiceRegistration:
    try:
        registration = await use_case.get_registration(auth, registration_id)
    except Exception as e:
        raise http_error_for(
            e, "retrieve registration", registration_id=registration_id
        ) from e
    if registration.temple_id != temple_id:
        raise http_error_for(
            NotFoundError("Registration not found"),
            "retrieve registration",
            temple_id=temple_id,
        )
    return registration


@router.patch(
    "/temples/{temple_id}/registrations/{registration_id}",
    response_model=ServiceRegistration,
)
async def update_registration_status(
    temple_id: str,
    registration_id: str,
    request: UpdateRegistrationStatusRequest,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceRegistrationUseCase = Depends(
        get_service_registration_use_case
    ),
) -> ServiceRegistration:
    logger.info(
        "Registration status change requested",
        extra={
            "registration_id": registration_id,
            "new_status": request.status.value,
            "user_id": auth.user_id,
        },
    )
    try:
        transition = await use_case.update_service_registration_status(
            auth,
            registration_id,
            request.status,
            temple_id,
            request.service_id,
        )
    except Exception as e:
        raise http_error_for(
            e,
            "update registration status",
            temple_id=temple_id,
            registration_id=registration_id,
        ) from e
    return transition.registration


@router.delete(
    "/temples/{temple_id}/registrations/{registration_id}",
    response_model=ServiceRegistration,
)
async def delete_registration(
    temple_id: str,
    registration_id: str,
    message: Optional[str] = None,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceRegistrationUseCase = Depends(
        get_service_registration_use_case
    ),
) -> ServiceRegistration:
    """
    Delete a registration. Owners may cancel their own; temple admins may
    cancel anyone's, optionally with a ``message`` for the registrant.
    """
    try:
        return await use_case.delete_registration(
            auth, registration_id, temple_id, message
        )
    except Exception as e:
        raise http_error_for(
            e,
            "delete registration",
            temple_id=temple_id,
            registration_id=registration_id,
        ) from e


@router.get("/me/registrations", response_model=List[ServiceRegistration])
async def list_my_registrations(
    user_id: str = Depends(get_current_user),
    use_case: ServiceRegistrationUseCase = Depends(
        get_service_registration_use_case
    ),
) -> List[ServiceRegistration]:
    try:
        return await use_case.list_user_registrations(user_id)
    except Exception as e:
        raise http_error_for(
            e, "list registrations", user_id=user_id
        ) from e
