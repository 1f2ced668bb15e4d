"""
Permission Repository
Read access to the permission catalogue.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.models.role import Permission
from inventory_api.repositories.base import CRUDBase


class PermissionRepository(CRUDBase[Permission]):
    async def list_permissions(
        self,
        db: AsyncSession,
        *,
        module: Optional[str] = None,
        action: Optional[str] = None,
    ) -> list[Permission]:
        query = select(Permission)
        if module:
            query = query.where(Permission.module == module.strip().lower())
        if action:
            query = query.where(Permission.action == action.strip().lower())
        query = query.order_by(Permission.module, Permission.action, Permission.resource)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def module_counts(self, db: AsyncSession) -> list[tuple[str, int]]:
        query = (
            select(Permission.module, func.count(Permission.id))
            .group_by(Permission.module)
            .order_by(Permission.module)
        )
        result = await db.execute(query)
        return [(module, count) for module, count in result.all()]

    async def find(
        self, db: AsyncSession, module: str, action: str, resource: Optional[str]
    ) -> Optional[Permission]:
        query = select(Permission).where(Permission.module == module, Permission.action == action)
        if resource is None:
            query = query.where(Permission.resource.is_(None))
        else:
            query = query.where(Permission.resource == resource)
        result = await db.execute(query)
        return result.scalar_one_or_none()


permission_repository = PermissionRepository(Permission)
