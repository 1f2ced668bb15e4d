"""
User Service
Business logic for administrative user management.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from inventory_api.core.security import get_password_hash
from inventory_api.core.time import utc_now
from inventory_api.models.user import User
from inventory_api.models.user_role import UserRole
from inventory_api.repositories.audit import AuditContext, role_audit_repository
from inventory_api.repositories.role import role_repository
from inventory_api.repositories.user import user_repository
from inventory_api.repositories.user_role import user_role_repository
from inventory_api.schemas.user_management import (
    UserCreateRequest,
    UserDetail,
    UserFilters,
    UserListItem,
    UserUpdateRequest,
)
from inventory_api.services.invalidation import PermissionInvalidationHook

logger = structlog.get_logger()


class UserService:
    def __init__(self, invalidation: PermissionInvalidationHook) -> None:
        self.invalidation = invalidation

    def _to_user_list_item(self, user: User) -> UserListItem:
        return UserListItem(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            is_active=user.is_active,
            created_at=user.created_at,
            last_login=user.last_login_at,
        )

    async def _to_user_detail(self, db: AsyncSession, user: User) -> UserDetail:
        assignments = await user_role_repository.list_current(db, user.id, utc_now())
        return UserDetail(
            **self._to_user_list_item(user).model_dump(),
            roles=[a.role.name for a in assignments if a.role is not None],
        )

    async def _require_user(self, db: AsyncSession, user_id: int, *, refresh: bool = False) -> User:
        user = await user_repository.get(db, user_id, refresh=refresh)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def list_users(self, db: AsyncSession, filters: UserFilters) -> tuple[list[UserListItem], int]:
        users, total = await user_repository.filter_users(
            db,
            search=filters.search,
            is_active=filters.is_active,
            skip=filters.skip,
            limit=filters.limit,
        )
        return [self._to_user_list_item(user) for user in users], total

    async def get_user(self, db: AsyncSession, user_id: int) -> UserDetail:
        user = await self._require_user(db, user_id)
        return await self._to_user_detail(db, user)

    async def create_user(self, db: AsyncSession, data: UserCreateRequest, context: AuditContext) -> UserDetail:
        if await user_repository.get_by_username(db, data.username):
            raise ConflictError("Username already exists")
        if data.email and await user_repository.get_by_email(db, data.email):
            raise ConflictError("Email already registered")

        roles = await role_repository.get_many(db, data.role_ids)
        missing = sorted(set(data.role_ids) - {role.id for role in roles if role.is_active})
        if missing:
            raise BusinessRuleError(f"Unknown or inactive role ids: {', '.join(str(i) for i in missing)}")

        user = User(
            username=data.username,
            email=data.email,
            full_name=data.full_name,
            hashed_password=get_password_hash(data.password),
            is_active=True,
            last_login_at=None,
        )
        await user_repository.add(db, user)

        now = utc_now()
        for role in sorted(roles, key=lambda r: r.id):
            db.add(
                UserRole(
                    user_id=user.id,
                    role=role,
                    assigned_by=context.actor_id,
                    assigned_at=now,
                    expires_at=None,
                    is_active=True,
                    revoked_by=None,
                    revoked_at=None,
                )
            )
            role_audit_repository.record(
                db,
                action="user_assigned",
                context=context,
                role_id=role.id,
                changes={"user_id": user.id, "role_name": role.name},
            )
        await db.commit()

        logger.info("User created by admin", user_id=user.id, username=user.username, actor_id=context.actor_id)
        user = await self._require_user(db, user.id, refresh=True)
        return await self._to_user_detail(db, user)

    async def update_user(
        self, db: AsyncSession, user_id: int, data: UserUpdateRequest, context: AuditContext
    ) -> UserDetail:
        user = await self._require_user(db, user_id)
        updates = data.model_dump(exclude_unset=True)

        if updates.get("email"):
            email = updates["email"].strip().lower()
            existing = await user_repository.get_by_email(db, email)
            if existing and existing.id != user.id:
                raise ConflictError("Email already registered")
            user.email = email
        if updates.get("full_name"):
            user.full_name = updates["full_name"]

        status_changed = False
        if updates.get("is_active") is not None and updates["is_active"] != user.is_active:
            if not updates["is_active"] and user.id == context.actor_id:
                raise BusinessRuleError("You cannot deactivate your own account")
            user.is_active = updates["is_active"]
            status_changed = True

        await db.commit()

        logger.info("User updated by admin", user_id=user.id, fields=sorted(updates), actor_id=context.actor_id)
        if status_changed:
            self.invalidation.user_roles_changed(user.id, reason="account_status_changed")

        user = await self._require_user(db, user.id, refresh=True)
        return await self._to_user_detail(db, user)
