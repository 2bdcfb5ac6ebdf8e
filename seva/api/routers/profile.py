"""
The caller's own profile.

Routes:
- GET   /profile
- PATCH /profile    display name, photo and bio
"""

import logging

from fastapi import APIRouter, Depends

from seva.api.dependencies import (
    get_authorization_context,
    get_profile_use_case,
)
from seva.api.errors import http_error_for
from seva.api.responses import ProfileResponse
from seva.domain import AuthorizationContext, ProfileUpdate, UserProfile
from seva.usecase import ProfileUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


def _profile_response(
    profile: UserProfile, auth: AuthorizationContext
) -> ProfileResponse:
    return ProfileResponse(
        profile=profile,
        is_admin=auth.admin_temple_id is not None,
        is_super_admin=auth.is_super_admin,
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ProfileUseCase = Depends(get_profile_use_case),
) -> ProfileResponse:
    try:
        profile = await use_case.get_profile(auth.user_id)
    except Exception as e:
        raise http_error_for(e, "fetch profile", user_id=auth.user_id) from e
    return _profile_response(profile, auth)


@router.patch("/profile", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdate,
    auth: AuthorizationContext = Depends(get_authorization_context),
    use_case: ProfileUseCase = Depends(get_profile_use_case),
) -> ProfileResponse:
    try:
        profile = await use_case.update_profile(auth.user_id, request)
    except Exception as e:
        raise http_error_for(e, "update profile", user_id=auth.user_id) from e
    return _profile_response(profile, auth)
