"""Permission catalogue endpoints (read-only)."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.authorization import Identity
from inventory_api.core.database import get_db
from inventory_api.core.deps import require_permission
from inventory_api.repositories.permission import permission_repository
from inventory_api.schemas.rbac import ModuleSummary, PermissionModuleGroup, PermissionOut
from inventory_api.services.role_service import permission_out

router = APIRouter()

read_permissions = require_permission("roles", "read", "permissions")


@router.get("/", response_model=list[PermissionOut])
async def list_permissions(
    module: Optional[str] = Query(default=None),
    action: Optional[str] = Query(default=None),
    identity: Identity = Depends(read_permissions),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """List the catalogue, optionally filtered by module and action."""
    permissions = await permission_repository.list_permissions(db, module=module, action=action)
    return [permission_out(p) for p in permissions]


@router.get("/by-module", response_model=list[PermissionModuleGroup])
async def permissions_by_module(
    identity: Identity = Depends(read_permissions),
    db: AsyncSession = Depends(get_db),
) -> Any:
    grouped = defaultdict(list)
    for permission in await permission_repository.list_permissions(db):
        grouped[permission.module].append(permission_out(permission))
    return [PermissionModuleGroup(module=module, permissions=items) for module, items in grouped.items()]


@router.get("/modules", response_model=list[ModuleSummary])
async def list_modules(
    identity: Identity = Depends(read_permissions),
    db: AsyncSession = Depends(get_db),
) -> Any:
    counts = await permission_repository.module_counts(db)
    return [ModuleSummary(module=module, permission_count=count) for module, count in counts]
