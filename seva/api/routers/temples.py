"""
Temples API router: temples, memberships, admin assignment and service
types.

These routes are mounted with the '/temples' prefix in the main app.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response

from seva.api.dependencies import (
    get_authorization_context,
    get_current_user,
    get_service_type_use_case,
    get_temple_management_use_case,
)
from seva.api.errors import http_error_for
from seva.api.requests import (
    CreateTempleRequest,
    ServiceTypeRequest,
    UpdateServiceTypeRequest,
)
from seva.domain import (
    AdminRecord,
    AuthorizationContext,
    ServiceType,
    Temple,
    TempleMember,
    TempleUpdate,
)
from seva.usecase import ServiceTypeUseCase, TempleManagementUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[Temple])
async def list_temples(
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> List[Temple]:
    try:
        return await use_case.list_temples()
    except Exception as e:
        raise http_error_for(e, "list temples") from e


@router.post("", response_model=Temple, status_code=201)
async def create_temple(
    request: CreateTempleRequest,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> Temple:
    """Create a temple. Super-admin only; the creator becomes its admin."""
    try:
        return await use_case.create_temple(
            auth, request.name, request.location, request.description
        )
    except Exception as e:
        raise http_error_for(
            e, "create temple", temple_name=request.name
        ) from e


@router.get("/{temple_id}", response_model=Temple)
async def get_temple(
    temple_id: str,
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> Temple:
    try:
        return await use_case.get_temple(temple_id)
    except Exception as e:
        raise http_error_for(e, "retrieve temple", temple_id=temple_id) from e


@router.patch("/{temple_id}", response_model=Temple)
async def update_temple(
    temple_id: str,
    request: TempleUpdate,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> Temple:
    try:
        return await use_case.update_temple(auth, temple_id, request)
    except Exception as e:
        raise http_error_for(e, "update temple", temple_id=temple_id) from e


@router.delete("/{temple_id}", status_code=204)
async def delete_temple(
    temple_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> Response:
    try:
        await use_case.delete_temple(auth, temple_id)
    except Exception as e:
        raise http_error_for(e, "delete temple", temple_id=temple_id) from e
    return Response(status_code=204)


@router.get("/{temple_id}/members", response_model=List[TempleMember])
async def list_members(
    temple_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> List[TempleMember]:
    try:
        return await use_case.list_members(auth, temple_id)
    except Exception as e:
        raise http_error_for(e, "list members", temple_id=temple_id) from e


@router.post(
    "/{temple_id}/members", response_model=TempleMember, status_code=201
)
async def join_temple(
    temple_id: str,
    user_id: str = Depends(get_current_user),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> TempleMember:
    """Enroll the caller as a member of the temple."""
    try:
        return await use_case.add_member(temple_id, user_id)
    except Exception as e:
        raise http_error_for(
            e, "join temple", temple_id=temple_id, user_id=user_id
        ) from e


@router.delete("/{temple_id}/members/{user_id}", status_code=204)
async def remove_member(
    temple_id: str,
    user_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> Response:
    """Remove a member. Admins remove anyone; members may leave."""
    try:
        await use_case.remove_member(auth, temple_id, user_id)
    except Exception as e:
        raise http_error_for(
            e, "remove member", temple_id=temple_id, user_id=user_id
        ) from e
    return Response(status_code=204)


@router.get("/{temple_id}/admins", response_model=List[AdminRecord])
async def list_temple_admins(
    temple_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> List[AdminRecord]:
    try:
        return await use_case.list_temple_admins(auth, temple_id)
    except Exception as e:
        raise http_error_for(
            e, "list temple admins", temple_id=temple_id
        ) from e

@router.put("/{temple_id}/admins/{user_id}", response_model=AdminRecord)
async def assign_temple_admin(
    temple_id: str,
    user_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> AdminRecord:
    try:
        return await use_case.assign_temple_admin(auth, user_id, temple_id)
    except Exception as e:
        raise http_error_for(
            e, "assign temple admin", temple_id=temple_id, user_id=user_id
        ) from e


@router.delete("/{temple_id}/admins/{user_id}", status_code=204)
async def remove_temple_admin(
    temple_id: str,
    user_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: TempleManagementUseCase = Depends(
        get_temple_management_use_case
    ),
) -> Response:
    try:
        await use_case.remove_admin(auth, user_id, temple_id)
    except Exception as e:
        raise http_error_for(
            e, "remove temple admin", temple_id=temple_id, user_id=user_id
        ) from e
    return Response(status_code=204)


@router.get("/{temple_id}/service-types", response_model=List[ServiceType])
async def list_service_types(
    temple_id: str,
    use_case: ServiceTypeUseCase = Depends(get_service_type_use_case),
) -> List[ServiceType]:
    try:
        return await use_case.list_service_types(temple_id)
    except Exception as e:
        raise http_error_for(
            e, "list service types", temple_id=temple_id
        ) from e


@router.post(
    "/{temple_id}/service-types", response_model=ServiceType, status_code=201
)
async def create_service_type(
    temple_id: str,
    request: ServiceTypeRequest,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceTypeUseCase = Depends(get_service_type_use_case),
) -> ServiceType:
    """Create a service type; an existing type with the same name is
    returned unchanged."""
    try:
        return await use_case.create_service_type(
            auth, temple_id, request.name, request.icon
        )
    except Exception as e:
        raise http_error_for(
            e, "create service type", temple_id=temple_id
        ) from e


@router.patch(
    "/{temple_id}/service-types/{service_type_id}", response_model=ServiceType
)
async def update_service_type(
    temple_id: str,
    service_type_id: str,
    request: UpdateServiceTypeRequest,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceTypeUseCase = Depends(get_service_type_use_case),
) -> ServiceType:
    try:
        return await use_case.update_service_type(
            auth, temple_id, service_type_id, request.name, request.icon
        )
    except Exception as e:
        raise http_error_for(
            e,
            "update service type",
            temple_id=temple_id,
            service_type_id=service_type_id,
        ) from e


@router.delete("/{temple_id}/service-types/{service_type_id}", status_code=204)
async def delete_service_type(
    temple_id: str,
    service_type_id: str,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ServiceTypeUseCase = Depends(get_service_type_use_case),
) -> Response:
    try:
        await use_case.delete_service_type(auth, temple_id, service_type_id)
    except Exception as e:
        raise http_error_for(
            e,
            "delete service type",
            temple_id=temple_id,
            service_type_id=service_type_id,
        ) from e
    return Response(status_code=204)
