"""
Permission resolver

Computes the permissions a user currently holds from the permission store:
valid role assignments -> active roles -> role permissions.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inventory_api.core.exceptions import PermissionResolutionError
from inventory_api.core.rbac import PermissionGrant
from inventory_api.core.time import utc_now
from inventory_api.models.role import Permission, Role, RolePermission
from inventory_api.models.user import User
from inventory_api.models.user_role import UserRole

logger = structlog.get_logger()


class PermissionResolver(ABC):
    @abstractmethod
    async def resolve(self, user_id: int) -> frozenset[str]:
        raise NotImplementedError


def valid_permissions_query(user_id: int, now: datetime):
    """Distinct (module, action, resource) rows granted through valid assignments"""
    return (
        select(Permission.module, Permission.action, Permission.resource)
        .select_from(UserRole)
        .join(User, User.id == UserRole.user_id)
        .join(Role, Role.id == UserRole.role_id)
        .join(RolePermission, RolePermission.role_id == UserRole.role_id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .where(
            UserRole.user_id == user_id,
            User.is_active.is_(True),
            UserRole.is_active.is_(True),
            Role.is_active.is_(True),
            or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
        )
        .distinct()
    )


class DBPermissionResolver(PermissionResolver):
    def __init__(
        self,
        session_factory: async_sessionmaker,
        timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._timeout = timeout_seconds
        self._clock = clock

    async def resolve(self, user_id: int) -> frozenset[str]:
        """
        Resolve the current permission strings for a user

        Unknown users and users without valid assignments yield an empty set.

        Raises:
            PermissionResolutionError: database failure or query timeout
        """
        try:
            rows = await asyncio.wait_for(self._fetch(user_id), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Permission resolution timed out", user_id=user_id, timeout=self._timeout)
            raise PermissionResolutionError("Permission lookup timed out") from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Permission resolution failed", user_id=user_id, error=str(exc))
            raise PermissionResolutionError("Permission store unavailable") from exc

        permissions = frozenset(
            PermissionGrant.build(module, action, resource).to_string()
            for module, action, resource in rows
        )
        logger.debug("Permissions resolved", user_id=user_id, count=len(permissions))
        return permissions

    async def _fetch(self, user_id: int) -> list[tuple]:
        session: AsyncSession
        async with self._session_factory() as session:
            result = await session.execute(valid_permissions_query(user_id, self._clock()))
            return list(result.all())
