"""
Authorization predicates.

Roles are derived from the caller's admin record and temple memberships.
The record lookups happen once per request in ``AuthorizationResolver``;
everything else here is a pure function of the resolved
``AuthorizationContext``.
"""

import logging
from typing import Optional

from seva.domain import AuthorizationContext, Role, Service
from seva.errors import InvalidArgumentError, PermissionDeniedError
from seva.repositories import AdminRepository, TempleRepository

logger = logging.getLogger(__name__)


def is_super_admin(ctx: AuthorizationContext) -> bool:
    return ctx.is_super_admin


def is_temple_admin(ctx: AuthorizationContext, temple_id: str) -> bool:
    """Super-admins administer every temple."""
    if ctx.is_super_admin:
        return True
    return bool(temple_id) and ctx.admin_temple_id == temple_id


def is_service_leader(ctx: AuthorizationContext, service: Service) -> bool:
    return bool(ctx.user_id) and service.leader_id == ctx.user_id


def role_for(
    ctx: AuthorizationContext,
    temple_id: str,
    service: Optional[Service] = None,
) -> Role:
    """Strongest role the caller holds for a temple, and optionally one of
    its services."""
    if ctx.is_super_admin:
        return Role.SUPER_ADMIN
    if is_temple_admin(ctx, temple_id):
        return Role.TEMPLE_ADMIN
    if service is not None and is_service_leader(ctx, service):
        return Role.SERVICE_LEADER
    if temple_id in ctx.member_temple_ids:
        return Role.MEMBER
    return Role.NONE


def require_super_admin(ctx: AuthorizationContext, action: str) -> None:
    if not ctx.is_super_admin:
        logger.warning(
            "Permission denied: super admin required",
            extra={"user_id": ctx.user_id, "action": action},
        )
        raise PermissionDeniedError(f"Only super admins can {action}")


def require_temple_admin(
    ctx: AuthorizationContext, temple_id: str, action: str
) -> None:
    if not is_temple_admin(ctx, temple_id):
        logger.warning(
            "Permission denied: temple admin required",
            extra={
                "user_id": ctx.user_id,
                "temple_id": temple_id,
                "action": action,
            },
        )
        raise PermissionDeniedError(f"Only temple admins can {action}")


class AuthorizationResolver:
    """Builds an ``AuthorizationContext`` from stored records."""

    def __init__(
        self,
        admin_repo: AdminRepository,
        temple_repo: TempleRepository,
    ):
        self.admin_repo = admin_repo
        self.temple_repo = temple_repo

    async def resolve(self, user_id: str) -> AuthorizationContext:
        if not user_id:
            raise InvalidArgumentError("User ID is required")

        record = await self.admin_repo.get(user_id)
        member_temple_ids = await self.temple_repo.list_member_temple_ids(
            user_id
        )

        admin_temple_id = None
        is_super = False
        if record is not None:
            is_super = record.is_super_admin
            if record.is_admin and record.temple_id:
                admin_temple_id = record.temple_id

        ctx = AuthorizationContext(
            user_id=user_id,
            is_super_admin=is_super,
            admin_temple_id=admin_temple_id,
            member_temple_ids=frozenset(member_temple_ids),
        )
        logger.debug(
            "Resolved authorization context",
            extra={
                "user_id": user_id,
                "is_super_admin": ctx.is_super_admin,
                "admin_temple_id": ctx.admin_temple_id,
                "member_temple_count": len(ctx.member_temple_ids),
            },
        )
        return ctx
