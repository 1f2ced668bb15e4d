"""
User Repository
Database operations for user management.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.models.user import User
from inventory_api.repositories.base import CRUDBase


class UserRepository(CRUDBase[User]):
    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        query = select(User).where(User.username == username.lower().strip())
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        query = select(User).where(User.email == email.lower().strip())
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def filter_users(
        self,
        db: AsyncSession,
        *,
        search: Optional[str],
        is_active: Optional[bool],
        skip: int,
        limit: int,
    ) -> tuple[list[User], int]:
        query = select(User)

        if search:
            like = f"%{search.strip()}%"
            query = query.where(
                or_(User.username.ilike(like), User.full_name.ilike(like), User.email.ilike(like))
            )

        if is_active is not None:
            query = query.where(User.is_active == is_active)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        query = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
        result = await db.execute(query)

        return list(result.scalars().all()), total


user_repository = UserRepository(User)
