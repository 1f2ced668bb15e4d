"""
Role Service
Business logic for role and role-permission management.

Every mutation stages a role_audit_log row in the same transaction, commits,
then notifies the invalidation hook before returning.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.exceptions import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    SystemRoleProtectedError,
)
from inventory_api.models.role import Permission, Role
from inventory_api.models.user_role import UserRole
from inventory_api.repositories.audit import AuditContext, role_audit_repository
from inventory_api.repositories.permission import permission_repository
from inventory_api.repositories.role import role_repository
from inventory_api.schemas.rbac import (
    PermissionOut,
    RoleCloneRequest,
    RoleCreateRequest,
    RoleDetail,
    RoleSummary,
    RoleUpdateRequest,
)
from inventory_api.services.invalidation import PermissionInvalidationHook

logger = structlog.get_logger()


def permission_out(permission: Permission) -> PermissionOut:
    return PermissionOut(
        id=permission.id,
        module=permission.module,
        action=permission.action,
        resource=permission.resource,
        description=permission.description,
        permission_string=permission.permission_string,
    )


class RoleService:
    def __init__(self, invalidation: PermissionInvalidationHook) -> None:
        self.invalidation = invalidation

    def _to_summary(self, role: Role, user_count: int) -> RoleSummary:
        return RoleSummary(
            id=role.id,
            name=role.name,
            description=role.description,
            is_system=role.is_system,
            is_active=role.is_active,
            user_count=user_count,
            created_at=role.created_at,
            updated_at=role.updated_at,
        )

    def _to_detail(self, role: Role, user_count: int) -> RoleDetail:
        permissions = sorted(role.permissions, key=lambda p: p.permission_string)
        return RoleDetail(
            **self._to_summary(role, user_count).model_dump(),
            permissions=[permission_out(p) for p in permissions],
        )

    async def _require_role(self, db: AsyncSession, role_id: int, *, refresh: bool = False) -> Role:
        role = await role_repository.get(db, role_id, refresh=refresh)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    async def _load_permissions(self, db: AsyncSession, permission_ids: list[int]) -> list[Permission]:
        permissions = await permission_repository.get_many(db, permission_ids)
        missing = sorted(set(permission_ids) - {p.id for p in permissions})
        if missing:
            raise BusinessRuleError(f"Unknown permission ids: {', '.join(str(i) for i in missing)}")
        return permissions

    async def _ensure_name_free(self, db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
        existing = await role_repository.get_by_name(db, name)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("Role name already exists")

    async def _reload(self, db: AsyncSession, role_id: int) -> RoleDetail:
        role = await self._require_role(db, role_id, refresh=True)
        return self._to_detail(role, await role_repository.count_holders(db, role_id))

    async def list_roles(self, db: AsyncSession) -> list[RoleDetail]:
        roles = await role_repository.list_roles(db)
        counts = await role_repository.holder_counts(db)
        return [self._to_detail(role, counts.get(role.id, 0)) for role in roles]

    async def get_role(self, db: AsyncSession, role_id: int) -> RoleDetail:
        role = await self._require_role(db, role_id)
        return self._to_detail(role, await role_repository.count_holders(db, role_id))

    async def create_role(self, db: AsyncSession, data: RoleCreateRequest, context: AuditContext) -> RoleDetail:
        name = data.name.strip()
        await self._ensure_name_free(db, name)
        permissions = await self._load_permissions(db, data.permission_ids)

        role = Role(name=name, description=data.description or None, is_system=False, is_active=data.is_active)
        role.permissions = permissions
        await role_repository.add(db, role)

        role_audit_repository.record(
            db,
            action="role_created",
            context=context,
            role_id=role.id,
            changes={
                "name": name,
                "is_active": data.is_active,
                "permissions": sorted(p.permission_string for p in permissions),
            },
        )
        await db.commit()

        logger.info("Role created", role_id=role.id, name=name, actor_id=context.actor_id)
        return await self._reload(db, role.id)

    async def update_role(
        self, db: AsyncSession, role_id: int, data: RoleUpdateRequest, context: AuditContext
    ) -> RoleDetail:
        role = await self._require_role(db, role_id)
        updates = data.model_dump(exclude_unset=True)
        changes: dict[str, Any] = {}

        new_name = updates.get("name")
        if new_name is not None and new_name.strip() != role.name:
            if role.is_system:
                raise SystemRoleProtectedError("System roles cannot be renamed")
            await self._ensure_name_free(db, new_name.strip(), exclude_id=role.id)
            changes["name"] = {"old": role.name, "new": new_name.strip()}
            role.name = new_name.strip()

        if "description" in updates and updates["description"] != role.description:
            changes["description"] = {"old": role.description, "new": updates["description"]}
            role.description = updates["description"]

        if updates.get("is_active") is not None and updates["is_active"] != role.is_active:
            changes["is_active"] = {"old": role.is_active, "new": updates["is_active"]}
            role.is_active = updates["is_active"]

        if data.permission_ids is not None:
            before = set(role.permission_strings)
            permissions = await self._load_permissions(db, data.permission_ids)
            after = {p.permission_string for p in permissions}
            if before != after:
                changes["permissions"] = {
                    "added": sorted(after - before),
                    "removed": sorted(before - after),
                }
            role.permissions = permissions

        if not changes:
            return self._to_detail(role, await role_repository.count_holders(db, role.id))

        role_audit_repository.record(db, action="role_updated", context=context, role_id=role.id, changes=changes)
        await db.commit()

        logger.info("Role updated", role_id=role.id, fields=sorted(changes), actor_id=context.actor_id)
        if "permissions" in changes or "is_active" in changes:
            self.invalidation.role_permissions_changed(role.id, reason="role_updated")
        return await self._reload(db, role.id)

    async def delete_role(self, db: AsyncSession, role_id: int, context: AuditContext) -> None:
        role = await self._require_role(db, role_id)
        if role.is_system:
            raise SystemRoleProtectedError("Cannot delete system role")

        holders = await role_repository.count_holders(db, role.id)
        if holders > 0:
            raise BusinessRuleError(f"Cannot delete role. {holders} user(s) are assigned to this role.")

        name = role.name
        role_audit_repository.record(
            db,
            action="role_deleted",
            context=context,
            role_id=role.id,
            changes={"name": role.name, "permissions": role.permission_strings},
        )
        # Expired and revoked assignments of this role go with it
        await db.execute(delete(UserRole).where(UserRole.role_id == role.id))
        await role_repository.delete(db, role)
        await db.commit()

        logger.info("Role deleted", role_id=role_id, name=name, actor_id=context.actor_id)
        self.invalidation.role_permissions_changed(role_id, reason="role_deleted")

    async def clone_role(
        self, db: AsyncSession, role_id: int, data: RoleCloneRequest, context: AuditContext
    ) -> RoleDetail:
        source = await self._require_role(db, role_id)
        name = data.name.strip()
        await self._ensure_name_free(db, name)

        clone = Role(
            name=name,
            description=f"Clone of {source.name}" if not source.description else source.description,
            is_system=False,
            is_active=True,
        )
        clone.permissions = list(source.permissions)
        await role_repository.add(db, clone)

        role_audit_repository.record(
            db,
            action="role_cloned",
            context=context,
            role_id=clone.id,
            changes={"source_role_id": source.id, "source_role_name": source.name, "name": name},
        )
        await db.commit()

        logger.info("Role cloned", source_role_id=source.id, role_id=clone.id, actor_id=context.actor_id)
        return await self._reload(db, clone.id)

    async def audit_trail(self, db: AsyncSession, role_id: int, limit: int = 50) -> list[dict[str, Any]]:
        entries = await role_audit_repository.list_for_role(db, role_id, limit=limit)
        return [
            {
                "id": entry.id,
                "action": entry.action,
                "changes": entry.changes,
                "performed_by": entry.performed_by,
                "ip_address": entry.ip_address,
                "created_at": entry.created_at,
            }
            for entry in entries
        ]
