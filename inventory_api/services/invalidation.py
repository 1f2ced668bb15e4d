"""
Permission cache invalidation hook.

Keeps the permission cache coherent with the permission store. Services call
it right after a mutation commits and before returning to their caller.
"""

from __future__ import annotations

import structlog

from inventory_api.core.permission_cache import PermissionCache

logger = structlog.get_logger()


class PermissionInvalidationHook:
    def __init__(self, cache: PermissionCache) -> None:
        self._cache = cache

    def user_roles_changed(self, user_id: int, reason: str = "assignment_changed") -> None:
        """A user's own assignments (or account state) changed"""
        self._cache.invalidate(user_id)
        logger.info("Permissions invalidated for user", user_id=user_id, reason=reason)

    def role_permissions_changed(self, role_id: int, reason: str = "role_changed") -> None:
        """
        A role's permission set or active flag changed.

        Role membership is not tracked here, so every cached user is dropped.
        """
        self._cache.invalidate_all()
        logger.info("Permissions invalidated for all users", role_id=role_id, reason=reason)
