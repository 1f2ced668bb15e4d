"""
UserRole Repository
Assignments of roles to users.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.models.user_role import UserRole
from inventory_api.repositories.base import CRUDBase


class UserRoleRepository(CRUDBase[UserRole]):
    async def list_for_user(self, db: AsyncSession, user_id: int) -> list[UserRole]:
        """Every assignment of the user, including expired and revoked ones"""
        query = (
            select(UserRole)
            .where(UserRole.user_id == user_id)
            .order_by(UserRole.is_active.desc(), UserRole.assigned_at.desc(), UserRole.id.desc())
        )
        result = await db.execute(query)
        return list(result.unique().scalars().all())

    async def list_current(self, db: AsyncSession, user_id: int, now: datetime) -> list[UserRole]:
        """Active, unexpired assignments in assignment order"""
        query = (
            select(UserRole)
            .where(
                UserRole.user_id == user_id,
                UserRole.is_active.is_(True),
                (UserRole.expires_at.is_(None)) | (UserRole.expires_at > now),
            )
            .order_by(UserRole.assigned_at, UserRole.id)
        )
        result = await db.execute(query)
        return list(result.unique().scalars().all())

    async def find_active(self, db: AsyncSession, user_id: int, role_id: int) -> Optional[UserRole]:
        query = select(UserRole).where(
            UserRole.user_id == user_id,
            UserRole.role_id == role_id,
            UserRole.is_active.is_(True),
        )
        result = await db.execute(query)
        return result.unique().scalars().first()


user_role_repository = UserRoleRepository(UserRole)
