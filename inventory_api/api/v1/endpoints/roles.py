"""Role management endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.authorization import Identity
from inventory_api.core.database import get_db
from inventory_api.core.deps import audit_context, get_role_service, require_permission
from inventory_api.schemas.base import SuccessResponse
from inventory_api.schemas.rbac import RoleCloneRequest, RoleCreateRequest, RoleDetail, RoleUpdateRequest
from inventory_api.services.role_service import RoleService

router = APIRouter()


@router.get("/", response_model=list[RoleDetail])
async def list_roles(
    identity: Identity = Depends(require_permission("roles", "read")),
    service: RoleService = Depends(get_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """List roles with holder counts and permissions."""
    return await service.list_roles(db)


@router.get("/{role_id}", response_model=RoleDetail)
async def get_role(
    role_id: int,
    identity: Identity = Depends(require_permission("roles", "read")),
    service: RoleService = Depends(get_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await service.get_role(db, role_id)


@router.get("/{role_id}/audit")
async def get_role_audit_trail(
    role_id: int,
    limit: int = Query(default=50, ge=1, le=200),
    identity: Identity = Depends(require_permission("settings", "read", "audit_log")),
    service: RoleService = Depends(get_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Most recent audit entries recorded against a role."""
    return await service.audit_trail(db, role_id, limit=limit)


@router.post("/", response_model=RoleDetail, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_data: RoleCreateRequest,
    request: Request,
    identity: Identity = Depends(require_permission("roles", "create")),
    service: RoleService = Depends(get_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await service.create_role(db, role_data, audit_context(request, identity))


@router.put("/{role_id}", response_model=RoleDetail)
async def update_role(
    role_id: int,
    role_data: RoleUpdateRequest,
    request: Request,
    identity: Identity = Depends(require_permission("roles", "update")),
    service: RoleService = Depends(get_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Update a role; a permission_ids list replaces the role's permission set."""
    return await service.update_role(db, role_id, role_data, audit_context(request, identity))


@router.delete("/{role_id}", response_model=SuccessResponse)
async def delete_role(
    role_id: int,
    request: Request,
    identity: Identity = Depends(require_permission("roles", "delete")),
    service: RoleService = Depends(get_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await service.delete_role(db, role_id, audit_context(request, identity))
    return SuccessResponse(message="Role deleted successfully")


@router.post("/{role_id}/clone", response_model=RoleDetail, status_code=status.HTTP_201_CREATED)
async def clone_role(
    role_id: int,
    clone_data: RoleCloneRequest,
    request: Request,
    identity: Identity = Depends(require_permission("roles", "create")),
    service: RoleService = Depends(get_role_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Create a new role carrying a copy of another role's permissions."""
    return await service.clone_role(db, role_id, clone_data, audit_context(request, identity))
