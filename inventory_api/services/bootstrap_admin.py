"""
Bootstrap seeding service.

Seeds the permission catalogue, the system roles and the first administrator.
Safe to run on every startup.
"""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.core.config import settings
from inventory_api.core.rbac import PERMISSION_CATALOG, ROLE_ADMIN, SYSTEM_ROLES, PermissionGrant
from inventory_api.core.security import get_password_hash
from inventory_api.core.time import utc_now
from inventory_api.models.role import Permission, Role
from inventory_api.models.user import User
from inventory_api.models.user_role import UserRole
from inventory_api.repositories.audit import SYSTEM_CONTEXT, role_audit_repository
from inventory_api.repositories.role import role_repository
from inventory_api.repositories.user import user_repository
from inventory_api.repositories.user_role import user_role_repository

logger = structlog.get_logger()


def _describe(grant: PermissionGrant) -> str:
    target = "all resources" if grant.scope.is_any else grant.resource
    return f"{grant.action.capitalize()} {grant.module.replace('_', ' ')} ({target})"


async def seed_permission_catalog(db: AsyncSession) -> dict[str, Permission]:
    """Insert missing catalogue permissions; returns every permission keyed by string"""
    result = await db.execute(select(Permission))
    existing = {permission.permission_string: permission for permission in result.scalars().all()}

    created = 0
    for grant in PERMISSION_CATALOG:
        key = grant.to_string()
        if key in existing:
            continue
        permission = Permission(
            module=grant.module,
            action=grant.action,
            resource=grant.resource,
            description=_describe(grant),
        )
        db.add(permission)
        existing[key] = permission
        created += 1

    await db.flush()
    if created:
        logger.info("Permission catalogue seeded", created=created, total=len(existing))
    return existing


async def seed_system_roles(db: AsyncSession, permissions: dict[str, Permission]) -> dict[str, Role]:
    """Create the system roles; existing ones keep their (possibly edited) permission set"""
    roles: dict[str, Role] = {}
    for name, definition in SYSTEM_ROLES.items():
        role = await role_repository.get_by_name(db, name)
        if role is None:
            role = Role(name=name, description=definition["description"], is_system=True, is_active=True)
            role.permissions = [permissions[key] for key in definition["permissions"]]
            db.add(role)
            logger.info("System role created", role=name, permissions=len(role.permissions))
        roles[name] = role

    await db.flush()
    return roles


def _assign_admin_role(db: AsyncSession, user_id: int, admin_role: Role) -> None:
    db.add(
        UserRole(
            user_id=user_id,
            role=admin_role,
            assigned_by=None,
            assigned_at=utc_now(),
            expires_at=None,
            is_active=True,
            revoked_by=None,
            revoked_at=None,
        )
    )
    role_audit_repository.record(
        db,
        action="user_assigned",
        context=SYSTEM_CONTEXT,
        role_id=admin_role.id,
        changes={"user_id": user_id, "role_name": admin_role.name, "bootstrap": True},
    )


async def ensure_bootstrap_admin_exists(db: AsyncSession, admin_role: Role) -> None:
    username = settings.BOOTSTRAP_ADMIN_USERNAME.lower().strip()

    existing = await user_repository.get_by_username(db, username)
    if existing:
        if not await user_role_repository.list_for_user(db, existing.id):
            _assign_admin_role(db, existing.id, admin_role)
            logger.info("Bootstrap admin had no roles; Admin role assigned", user_id=existing.id)
        else:
            logger.info("Bootstrap admin already exists", username=username, user_id=existing.id)
        return

    bootstrap_user = User(
        username=username,
        email=None,
        full_name=settings.BOOTSTRAP_ADMIN_FULL_NAME,
        hashed_password=get_password_hash(settings.BOOTSTRAP_ADMIN_PASSWORD),
        is_active=True,
        last_login_at=None,
    )
    await user_repository.add(db, bootstrap_user)
    _assign_admin_role(db, bootstrap_user.id, admin_role)

    logger.info("Bootstrap admin created", username=username, user_id=bootstrap_user.id)


async def bootstrap_permission_store(db: AsyncSession) -> None:
    permissions = await seed_permission_catalog(db)
    roles = await seed_system_roles(db, permissions)
    await ensure_bootstrap_admin_exists(db, roles[ROLE_ADMIN])
    await db.commit()
