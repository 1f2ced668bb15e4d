"""
User Role Service
Assignment, revocation and bulk replacement of a user's roles.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from inventory_api.core.time import as_utc, utc_now
from inventory_api.models.role import Role
from inventory_api.models.user import User
from inventory_api.models.user_role import UserRole
from inventory_api.repositories.audit import AuditContext, role_audit_repository
from inventory_api.repositories.role import role_repository
from inventory_api.repositories.user import user_repository
from inventory_api.repositories.user_role import user_role_repository
from inventory_api.schemas.rbac import (
    BulkAssignmentResult,
    PermissionModuleGroup,
    UserEffectivePermissions,
    UserRoleOut,
)
from inventory_api.services.invalidation import PermissionInvalidationHook
from inventory_api.services.role_service import permission_out

logger = structlog.get_logger()


class UserRoleService:
    def __init__(self, invalidation: PermissionInvalidationHook) -> None:
        self.invalidation = invalidation

    def _to_out(self, assignment: UserRole, now: datetime) -> UserRoleOut:
        role = assignment.role
        return UserRoleOut(
            id=role.id,
            name=role.name,
            description=role.description,
            is_system=role.is_system,
            assigned_at=assignment.assigned_at,
            assigned_by=assignment.assigned_by,
            expires_at=assignment.expires_at,
            is_active=assignment.is_active,
            is_expired=assignment.is_expired(now),
            revoked_at=assignment.revoked_at,
        )

    async def _require_user(self, db: AsyncSession, user_id: int) -> User:
        user = await user_repository.get(db, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _require_active_role(self, db: AsyncSession, role_id: int) -> Role:
        role = await role_repository.get(db, role_id)
        if role is None or not role.is_active:
            raise NotFoundError("Role not found or inactive")
        return role

    async def list_assignments(self, db: AsyncSession, user_id: int) -> list[UserRoleOut]:
        await self._require_user(db, user_id)
        now = utc_now()
        assignments = await user_role_repository.list_for_user(db, user_id)
        return [self._to_out(a, now) for a in assignments if a.role is not None]

    async def effective_permissions(self, db: AsyncSession, user_id: int) -> UserEffectivePermissions:
        """
        Permissions granted through the user's currently valid assignments,
        read straight from the store (no cache involvement).
        """
        await self._require_user(db, user_id)
        now = utc_now()
        assignments = await user_role_repository.list_current(db, user_id, now)

        by_id = {}
        for assignment in assignments:
            if assignment.role is None or not assignment.role.is_active:
                continue
            for permission in assignment.role.permissions:
                by_id[permission.id] = permission

        permissions = sorted(by_id.values(), key=lambda p: (p.module, p.action, p.resource or ""))
        grouped: dict[str, list] = defaultdict(list)
        for permission in permissions:
            grouped[permission.module].append(permission_out(permission))

        return UserEffectivePermissions(
            user_id=user_id,
            permissions=[permission_out(p) for p in permissions],
            grouped=[PermissionModuleGroup(module=m, permissions=items) for m, items in grouped.items()],
            total=len(permissions),
        )

    async def assign_role(
        self,
        db: AsyncSession,
        user_id: int,
        role_id: int,
        context: AuditContext,
        expires_at: Optional[datetime] = None,
    ) -> UserRoleOut:
        await self._require_user(db, user_id)
        role = await self._require_active_role(db, role_id)

        if await user_role_repository.find_active(db, user_id, role_id) is not None:
            raise ConflictError("User already has this role")

        now = utc_now()
        if expires_at is not None and as_utc(expires_at) <= now:
            raise BusinessRuleError("Expiry must be in the future")

        assignment = UserRole(
            user_id=user_id,
            role=role,
            assigned_by=context.actor_id,
            assigned_at=now,
            expires_at=as_utc(expires_at),
            is_active=True,
            revoked_by=None,
            revoked_at=None,
        )
        await user_role_repository.add(db, assignment)

        role_audit_repository.record(
            db,
            action="user_assigned",
            context=context,
            role_id=role.id,
            changes={
                "user_id": user_id,
                "role_name": role.name,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )
        await db.commit()

        logger.info("Role assigned", user_id=user_id, role_id=role.id, actor_id=context.actor_id)
        self.invalidation.user_roles_changed(user_id, reason="role_assigned")
        return self._to_out(assignment, now)

    async def revoke_role(self, db: AsyncSession, user_id: int, role_id: int, context: AuditContext) -> None:
        await self._require_user(db, user_id)
        assignment = await user_role_repository.find_active(db, user_id, role_id)
        if assignment is None:
            raise NotFoundError("User does not have this role")

        now = utc_now()
        remaining = [
            other
            for other in await user_role_repository.list_current(db, user_id, now)
            if other.role_id != role_id
        ]
        if not remaining:
            raise BusinessRuleError("User must keep at least one active role")

        assignment.revoke(context.actor_id, now)
        role_audit_repository.record(
            db,
            action="user_removed",
            context=context,
            role_id=role_id,
            changes={"user_id": user_id, "role_name": assignment.role.name if assignment.role else None},
        )
        await db.commit()

        logger.info("Role revoked", user_id=user_id, role_id=role_id, actor_id=context.actor_id)
        self.invalidation.user_roles_changed(user_id, reason="role_revoked")

    async def replace_roles(
        self, db: AsyncSession, user_id: int, role_ids: list[int], context: AuditContext
    ) -> BulkAssignmentResult:
        """
        Revoke every current assignment, then assign each listed role that
        exists and is active. Unknown or inactive ids are skipped.
        """
        await self._require_user(db, user_id)
        roles = [role for role in await role_repository.get_many(db, role_ids) if role.is_active]
        if not roles:
            raise BusinessRuleError("At least one active role is required")

        now = utc_now()
        for assignment in await user_role_repository.list_for_user(db, user_id):
            if assignment.is_active:
                assignment.revoke(context.actor_id, now)

        for role in sorted(roles, key=lambda r: r.id):
            await user_role_repository.add(
                db,
                UserRole(
                    user_id=user_id,
                    role=role,
                    assigned_by=context.actor_id,
                    assigned_at=now,
                    expires_at=None,
                    is_active=True,
                    revoked_by=None,
                    revoked_at=None,
                ),
            )
            role_audit_repository.record(
                db,
                action="user_assigned",
                context=context,
                role_id=role.id,
                changes={"user_id": user_id, "role_name": role.name, "bulk": True},
            )
        await db.commit()

        logger.info(
            "Roles replaced",
            user_id=user_id,
            role_ids=[role.id for role in roles],
            actor_id=context.actor_id,
        )
        self.invalidation.user_roles_changed(user_id, reason="roles_replaced")
        return BulkAssignmentResult(
            message=f"{len(roles)} role(s) assigned",
            assigned_count=len(roles),
        )
