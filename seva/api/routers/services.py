"""
Services API router.

Routes:
- GET    /temples/{temple_id}/services                     cursor page of 12
- GET    /temples/{temple_id}/services/{service_id}
- POST   /temples/{temple_id}/services                     temple admin
- PATCH  /temples/{temple_id}/services/{service_id}        admin or leader
- DELETE /temples/{temple_id}/services/{service_id}        temple admin
- POST   /temples/{temple_id}/services/{service_id}/registrations
- GET    /temples/{temple_id}/services/{service_id}/registrations
- POST   /temples/{temple_id}/services/{service_id}/recalculate
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from seva.api.dependencies import (
    get_authorization_context,
    get_current_user,
    get_service_management_use_case,
    get_service_registration_use_case,
)
from seva.api.errors import http_error_for
from seva.api.requests import RegisterForServiceRequest
from seva.api.responses import (
    SERVICES_CACHE_CONTROL,
    DeleteServiceResponse,
    ServicesPageResponse,
)
from seva.authorization import require_temple_admin
from seva.domain import (
    AuthorizationContext,
    ParticipantCounts,
    Service,
    ServiceData,
    ServiceRegistration,
    ServiceUpdate,
)
from seva.usecase import ServiceManagementUseCase, ServiceRegistrationUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ServicesPageResponse)
async def list_services(
    temple_id: str,
    response: Response,
    last_service_date: Optional[datetime] = Query(
        None, alias="lastServiceDate"
    ),
    use_case: ServiceManagementUseCase = Depends(
        get_service_management_use_case
    ),
) -> ServicesPageResponse:
    """
    List a temple's services, most recently updated first.

    Pass the previous page's ``lastServiceDate`` to fetch the next page.
    """
    try:
        page = await use_case.list_services(temple_id, after=last_service_date)
    except Exception as e:
        raise http_error_for(
            e, "list services", temple_id=temple_id
        ) from e

    response.headers["Cache-Control"] = SERVICES_CACHE_CONTROL
    logger.debug(
        "Listed services",
        extra={"temple_id": temple_id, "count": len(page.items)},
    )
    return ServicesPageResponse(
        services=page.items,
        has_more=page.has_more,
        last_service_date=page.cursor,
    )


@router.get("/{service_id}", response_model=Service)
async def get_service(
    temple_id: str,
    service_id: str,
    use_case: ServiceManagementUseCase = Depends(
        get_service_management_use_case
    ),
) -> Service:
    try:
        return await use_case.get_service(temple_id, service_id)
    except Exception as e:
        raise http_error_for(
            e, "retrieve service", temple_id=temple_id, service_id=service_id
        ) from e


@router.post("", response_model=Service, status_code=201)
async def create_service(
    temple_id: str,
    request: ServiceData,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceManagementUseCase = Depends(
        get_service_management_use_case
    ),
) -> Service:
    logger.info(
        "Service creation requested",
        extra={"temple_id": temple_id, "user_id": auth.user_id},
    )
    try:
        return await use_case.create_service(auth, temple_id, request)
    except Exception as e:
        raise http_error_for(e, "create service", temple_id=temple_id) from e


@router.patch("/{service_id}", response_model=Service)
async def update_service(
    temple_id: str,
    service_id: str,
    request: ServiceUpdate,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceManagementUseCase = Depends(
        get_service_management_use_case
    ),
) -> Service:
    try:
        return await use_case.update_service(
            auth, temple_id, service_id, request
        )
    except Exception as e:
        raise http_error_for(
            e, "update service", temple_id=temple_id, service_id=service_id
        ) from e


@router.delete("/{service_id}", response_model=DeleteServiceResponse)
async def delete_service(
    temple_id: str,
    service_id: str,
    force: bool = False,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceManagementUseCase = Depends(
        get_service_management_use_case
    ),
) -> DeleteServiceResponse:
    """
    Delete a service. A service that still has registrations is only
    deleted with ``?force=true``, which removes its registrations too.
    """
    try:
        removed = await use_case.delete_service(
            auth, temple_id, service_id, force=force
        )
    except Exception as e:
        raise http_error_for(
            e,
            "delete service",
            temple_id=temple_id,
            service_id=service_id,
            force=force,
        ) from e
    return DeleteServiceResponse(
        service_id=service_id, registrations_removed=removed
    )


@router.post(
    "/{service_id}/registrations",
    response_model=ServiceRegistration,
    status_code=201,
)
async def register_for_service(
    temple_id: str,
    service_id: str,
    request: Optional[RegisterForServiceRequest] = None,
    user_id: str = Depends(get_current_user),
    use_case: ServiceRegistrationUseCase = Depends(
        get_service_registration_use_case
    ),
) -> ServiceRegistration:
    message = request.message if request else None
    try:
        return await use_case.register_for_service(
            user_id, service_id, temple_id, message
        )
    except Exception as e:
        raise http_error_for(
            e,
            "register for service",
            temple_id=temple_id,
            service_id=service_id,
            user_id=user_id,
        ) from e


@router.get(
    "/{service_id}/registrations", response_model=List[ServiceRegistration]
)
async def list_service_registrations(
    temple_id: str,
    service_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceRegistrationUseCase = Depends(
        get_service_registration_use_case
    ),
) -> List[ServiceRegistration]:
    try:
        return await use_case.list_service_registrations(
            auth, temple_id, service_id
        )
    except Exception as e:
        raise http_error_for(
            e,
            "list service registrations",
            temple_id=temple_id,
            service_id=service_id,
        ) from e


@router.post("/{service_id}/recalculate", response_model=ParticipantCounts)
async def recalculate_participants(
    temple_id: str,
    service_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceRegistrationUseCase = Depends(
        get_service_registration_use_case
    ),
) -> ParticipantCounts:
    """Rebuild the service's counters from its registrations."""
    try:
        require_temple_admin(auth, temple_id, "recalculate participants")
        return await use_case.recalculate_service_participants(
            service_id, temple_id
        )
    except Exception as e:
        raise http_error_for(
            e,
            "recalculate participants",
            temple_id=temple_id,
            service_id=service_id,
        ) from e
