"""
Authentication Endpoints
Login, profile and the caller's live permissions
"""

import asyncio
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from inventory_api.core.authorization import Identity
from inventory_api.core.config import settings
from inventory_api.core.container import ServiceContainer
from inventory_api.core.database import get_db
from inventory_api.core.deps import get_container, get_identity
from inventory_api.core.exceptions import InvalidCredentials, NotFoundError, Unauthenticated
from inventory_api.core.rbac import pick_primary_role
from inventory_api.core.security import create_access_token, verify_password
from inventory_api.core.time import utc_now
from inventory_api.models.user import User
from inventory_api.repositories.user import user_repository
from inventory_api.repositories.user_role import user_role_repository
from inventory_api.schemas.auth import (
    EffectivePermissionsResponse,
    LoginRequest,
    LoginResponse,
    RoleRef,
    UserProfile,
)
from inventory_api.schemas.base import SuccessResponse

logger = structlog.get_logger()
router = APIRouter()


async def _build_profile(db: AsyncSession, user: User, permissions: frozenset) -> UserProfile:
    assignments = await user_role_repository.list_current(db, user.id, utc_now())
    roles = [(a.role.id, a.role.name) for a in assignments if a.role is not None and a.role.is_active]
    role_id, role_name = pick_primary_role(roles)
    return UserProfile(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        role=role_name,
        role_id=role_id,
        roles=[RoleRef(id=rid, name=name) for rid, name in roles],
        permissions=sorted(permissions),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> Any:
    """
    User login endpoint

    Verifies the password, resolves the user's live permissions and issues a
    bearer token carrying a snapshot of them. The snapshot is advisory: every
    protected request re-checks against the permission store.

    Raises:
        InvalidCredentials: unknown user or wrong password
        Unauthenticated: the account is deactivated
    """
    user = await user_repository.get_by_username(db, login_data.username)
    if not user:
        logger.warning("Login attempt with unknown username", username=login_data.username)
        raise InvalidCredentials("Invalid username or password")

    # bcrypt is CPU bound
    password_valid = await asyncio.to_thread(verify_password, login_data.password, user.hashed_password)
    if not password_valid:
        logger.warning("Login attempt with invalid password", user_id=user.id)
        raise InvalidCredentials("Invalid username or password")

    if not user.is_active:
        logger.warning("Login attempt by inactive user", user_id=user.id)
        raise Unauthenticated("Account is inactive")

    # Fresh read so the token snapshot reflects the store at login time
    container.cache.invalidate(user.id)
    permissions = await container.authorizer.effective_permissions(user.id)
    profile = await _build_profile(db, user, permissions)

    token = create_access_token(
        user_id=user.id,
        username=user.username,
        role=profile.role,
        role_id=profile.role_id,
        permissions=permissions,
    )

    user.last_login_at = utc_now()
    await db.commit()

    logger.info("User logged in", user_id=user.id, role=profile.role, permissions=len(permissions))
    return LoginResponse(
        token=token,
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=profile,
    )


@router.get("/profile", response_model=UserProfile)
async def get_profile(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> Any:
    """Current user profile with live roles and permissions"""
    user = await user_repository.get(db, identity.user_id)
    if not user:
        raise NotFoundError("User not found")
    permissions = await container.authorizer.effective_permissions(user.id)
    return await _build_profile(db, user, permissions)


@router.get("/permissions", response_model=EffectivePermissionsResponse)
async def get_my_permissions(
    identity: Identity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
) -> Any:
    """The caller's effective permissions as currently resolved"""
    permissions = await container.authorizer.effective_permissions(identity.user_id)
    return EffectivePermissionsResponse(
        user_id=identity.user_id,
        permissions=sorted(permissions),
        total=len(permissions),
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(identity: Identity = Depends(get_identity)) -> Any:
    """Tokens are stateless; the client discards its copy"""
    logger.info("User logged out", user_id=identity.user_id)
    return SuccessResponse(message="Logout successful")
