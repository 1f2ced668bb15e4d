"""User management endpoints (admin-only)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.authorization import Identity
from inventory_api.core.database import get_db
from inventory_api.core.deps import audit_context, get_user_service, require_permission
from inventory_api.schemas.base import PaginatedResponse
from inventory_api.schemas.user_management import (
    UserCreateRequest,
    UserDetail,
    UserFilters,
    UserUpdateRequest,
)
from inventory_api.services.user import UserService

router = APIRouter()


@router.get("/", response_model=PaginatedResponse)
async def list_users(
    search: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    identity: Identity = Depends(require_permission("users", "read")),
    service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """List users with pagination and filters."""
    filters = UserFilters(search=search, is_active=is_active, skip=skip, limit=limit)
    items, total = await service.list_users(db, filters)

    return PaginatedResponse.create(
        items=items,
        total=total,
        skip=filters.skip,
        limit=filters.limit,
    )


@router.get("/{user_id}", response_model=UserDetail)
async def get_user(
    user_id: int,
    identity: Identity = Depends(require_permission("users", "read")),
    service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Get user detail by ID."""
    return await service.get_user(db, user_id)


@router.post("/", response_model=UserDetail, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreateRequest,
    request: Request,
    identity: Identity = Depends(require_permission("users", "create")),
    service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Create a user with an initial password and optional roles."""
    return await service.create_user(db, user_data, audit_context(request, identity))


@router.patch("/{user_id}", response_model=UserDetail)
async def update_user(
    user_id: int,
    user_data: UserUpdateRequest,
    request: Request,
    identity: Identity = Depends(require_permission("users", "update")),
    service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Update profile fields or the active flag; deactivation takes effect immediately."""
    return await service.update_user(db, user_id, user_data, audit_context(request, identity))
