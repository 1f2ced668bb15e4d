"""
User management schemas for admin CRUD operations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from inventory_api.schemas.base import BaseSchema


class UserListItem(BaseSchema):
    id: int
    username: str
    email: Optional[str] = None
    full_name: str
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None


class UserDetail(UserListItem):
    roles: list[str] = Field(default_factory=list)


class UserCreateRequest(BaseSchema):
    username: str = Field(..., min_length=3, max_length=50)
    email: Optional[str] = Field(default=None, max_length=254)
    full_name: str = Field(..., min_length=2, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)
    role_ids: list[int] = Field(default_factory=list)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        value = value.strip().lower()
        if not value.replace("_", "").replace(".", "").isalnum():
            raise ValueError("Username may only contain letters, digits, '.' and '_'")
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip().lower()
        return value or None


class UserUpdateRequest(BaseSchema):
    email: Optional[str] = Field(default=None, max_length=254)
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    is_active: Optional[bool] = None


class UserFilters(BaseSchema):
    search: Optional[str] = Field(default=None)
    is_active: Optional[bool] = Field(default=None)
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=20, ge=1, le=100)
