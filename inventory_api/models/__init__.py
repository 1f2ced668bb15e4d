"""
SQLAlchemy Models Package
Factory inventory permission store
"""

from inventory_api.models.user import User
from inventory_api.models.role import Role, Permission, RolePermission
from inventory_api.models.user_role import UserRole
from inventory_api.models.audit import RoleAuditLog, ActivityLog

__all__ = [
    "User",
    "Role",
    "Permission",
    "RolePermission",
    "UserRole",
    "RoleAuditLog",
    "ActivityLog",
]
