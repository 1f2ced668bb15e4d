"""
Role Repository
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.time import utc_now
from inventory_api.models.role import Role
from inventory_api.models.user_role import UserRole
from inventory_api.repositories.base import CRUDBase


def _holder_filter(now):
    return (
        UserRole.is_active.is_(True),
        (UserRole.expires_at.is_(None)) | (UserRole.expires_at > now),
    )


class RoleRepository(CRUDBase[Role]):
    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Role]:
        result = await db.execute(select(Role).where(func.lower(Role.name) == name.strip().lower()))
        return result.scalar_one_or_none()

    async def list_roles(self, db: AsyncSession, *, include_inactive: bool = True) -> list[Role]:
        query = select(Role).order_by(Role.is_system.desc(), Role.name)
        if not include_inactive:
            query = query.where(Role.is_active.is_(True))
        result = await db.execute(query)
        return list(result.scalars().all())

    async def holder_counts(self, db: AsyncSession) -> dict[int, int]:
        """Number of users currently holding each role"""
        query = (
            select(UserRole.role_id, func.count(func.distinct(UserRole.user_id)))
            .where(*_holder_filter(utc_now()))
            .group_by(UserRole.role_id)
        )
        result = await db.execute(query)
        return {role_id: count for role_id, count in result.all()}

    async def count_holders(self, db: AsyncSession, role_id: int) -> int:
        query = select(func.count(func.distinct(UserRole.user_id))).where(
            UserRole.role_id == role_id, *_holder_filter(utc_now())
        )
        return (await db.execute(query)).scalar() or 0


role_repository = RoleRepository(Role)
