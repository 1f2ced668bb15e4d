"""
Role, permission and assignment schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from inventory_api.schemas.base import BaseSchema


class PermissionOut(BaseSchema):
    id: int
    module: str
    action: str
    resource: Optional[str] = None
    description: Optional[str] = None
    permission_string: str


class PermissionModuleGroup(BaseSchema):
    module: str
    permissions: list[PermissionOut] = Field(default_factory=list)


class ModuleSummary(BaseSchema):
    module: str
    permission_count: int


class RoleSummary(BaseSchema):
    id: int
    name: str
    description: Optional[str] = None
    is_system: bool
    is_active: bool
    user_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleDetail(RoleSummary):
    permissions: list[PermissionOut] = Field(default_factory=list)


def _unique_ids(values: Optional[list[int]]) -> Optional[list[int]]:
    if values is None:
        return values
    return sorted(set(values))


class RoleCreateRequest(BaseSchema):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True
    permission_ids: list[int] = Field(default_factory=list)

    @field_validator("permission_ids")
    @classmethod
    def dedupe_permissions(cls, values: list[int]) -> list[int]:
        return _unique_ids(values)


class RoleUpdateRequest(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None
    # None keeps the current permission set; a list replaces it
    permission_ids: Optional[list[int]] = None

    @field_validator("permission_ids")
    @classmethod
    def dedupe_permissions(cls, values: Optional[list[int]]) -> Optional[list[int]]:
        return _unique_ids(values)


class RoleCloneRequest(BaseSchema):
    name: str = Field(..., min_length=1, max_length=50)


class RoleAssignmentRequest(BaseSchema):
    role_id: int
    expires_at: Optional[datetime] = Field(default=None, description="Omit for a permanent assignment")


class BulkRoleAssignmentRequest(BaseSchema):
    role_ids: list[int] = Field(..., min_length=1)

    @field_validator("role_ids")
    @classmethod
    def dedupe_roles(cls, values: list[int]) -> list[int]:
        return _unique_ids(values)


class UserRoleOut(BaseSchema):
    id: int
    name: str
    description: Optional[str] = None
    is_system: bool
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[int] = None
    expires_at: Optional[datetime] = None
    is_active: bool
    is_expired: bool
    revoked_at: Optional[datetime] = None


class UserEffectivePermissions(BaseSchema):
    user_id: int
    permissions: list[PermissionOut]
    grouped: list[PermissionModuleGroup]
    total: int


class BulkAssignmentResult(BaseSchema):
    success: bool = True
    message: str
    assigned_count: int
