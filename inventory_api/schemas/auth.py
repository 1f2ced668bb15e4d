"""
Authentication Schemas
"""

from typing import Optional, List
from pydantic import Field
from inventory_api.schemas.base import BaseSchema


class LoginRequest(BaseSchema):
    """Login request schema"""
    username: str = Field(..., min_length=1, max_length=50, description="Username")
    password: str = Field(..., min_length=1, description="User password")


class RoleRef(BaseSchema):
    id: int
    name: str


class UserProfile(BaseSchema):
    """Profile of the authenticated user"""
    id: int
    username: str
    email: Optional[str] = None
    full_name: str
    role: str = Field(..., description="Primary role name")
    role_id: Optional[int] = None
    roles: List[RoleRef] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)


class LoginResponse(BaseSchema):
    success: bool = True
    message: str = "Login successful"
    token: str = Field(..., description="Bearer access token")
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserProfile


class EffectivePermissionsResponse(BaseSchema):
    user_id: int
    permissions: List[str]
    total: int
