"""
Role, Permission and RolePermission Models
"""

from sqlalchemy import Column, String, Text, Boolean, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from inventory_api.core.database import Base
from inventory_api.core.rbac import PermissionGrant
from inventory_api.models.base import BaseModel, IntegerIDMixin


class Role(BaseModel):
    """Named, administrator-managed bundle of permissions"""
    __tablename__ = "roles"

    name = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    # System roles cannot be deleted or renamed
    is_system = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    permissions = relationship(
        "Permission",
        secondary="role_permissions",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Role(name='{self.name}', system={self.is_system}, active={self.is_active})>"

    @property
    def permission_strings(self) -> list[str]:
        return sorted({permission.permission_string for permission in self.permissions})


class Permission(Base, IntegerIDMixin):
    """Atomic capability: module + action + optional resource (NULL means any)"""
    __tablename__ = "permissions"

    module = Column(String(50), nullable=False, index=True)
    action = Column(String(30), nullable=False)
    resource = Column(String(50), nullable=True)
    description = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint('module', 'action', 'resource', name='uq_permission_triple'),
        Index('ix_permission_module_action', 'module', 'action'),
    )

    def __repr__(self):
        return f"<Permission('{self.permission_string}')>"

    @property
    def grant(self) -> PermissionGrant:
        return PermissionGrant.build(self.module, self.action, self.resource)

    @property
    def permission_string(self) -> str:
        return self.grant.to_string()


class RolePermission(Base):
    """Presence of a row grants the permission to the role"""
    __tablename__ = "role_permissions"

    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
