"""Role assignment endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.authorization import Identity
from inventory_api.core.database import get_db
from inventory_api.core.deps import audit_context, get_user_role_service, require_permission
from inventory_api.schemas.base import SuccessResponse
from inventory_api.schemas.rbac import (
    BulkAssignmentResult,
    BulkRoleAssignmentRequest,
    RoleAssignmentRequest,
    UserEffectivePermissions,
    UserRoleOut,
)
from inventory_api.services.user_role_service import UserRoleService

router = APIRouter()


@router.get("/{user_id}/roles", response_model=list[UserRoleOut])
async def list_user_roles(
    user_id: int,
    identity: Identity = Depends(require_permission("users", "read", "user")),
    service: UserRoleService = Depends(get_user_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """All assignments of a user, including expired and revoked ones."""
    return await service.list_assignments(db, user_id)


@router.get("/{user_id}/permissions", response_model=UserEffectivePermissions)
async def get_user_permissions(
    user_id: int,
    identity: Identity = Depends(require_permission("users", "read", "user")),
    service: UserRoleService = Depends(get_user_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await service.effective_permissions(db, user_id)


@router.post("/{user_id}/roles", response_model=UserRoleOut, status_code=status.HTTP_201_CREATED)
async def assign_role(
    user_id: int,
    assignment: RoleAssignmentRequest,
    request: Request,
    identity: Identity = Depends(require_permission("users", "update", "roles")),
    service: UserRoleService = Depends(get_user_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await service.assign_role(
        db,
        user_id,
        assignment.role_id,
        audit_context(request, identity),
        expires_at=assignment.expires_at,
    )


@router.delete("/{user_id}/roles/{role_id}", response_model=SuccessResponse)
async def revoke_role(
    user_id: int,
    role_id: int,
    request: Request,
    identity: Identity = Depends(require_permission("users", "update", "roles")),
    service: UserRoleService = Depends(get_user_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await service.revoke_role(db, user_id, role_id, audit_context(request, identity))
    return SuccessResponse(message="Role removed from user")


@router.post("/{user_id}/roles/bulk", response_model=BulkAssignmentResult)
async def replace_user_roles(
    user_id: int,
    payload: BulkRoleAssignmentRequest,
    request: Request,
    identity: Identity = Depends(require_permission("users", "update", "roles")),
    service: UserRoleService = Depends(get_user_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Replace the user's roles with the given set."""
    return await service.replace_roles(db, user_id, payload.role_ids, audit_context(request, identity))
