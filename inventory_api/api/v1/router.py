"""
API v1 Router
Main router for all API v1 endpoints
"""

from fastapi import APIRouter
from inventory_api.api.v1.endpoints import auth, health, permissions, roles, user_roles, users

api_router = APIRouter()

# Authentication endpoints
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["authentication"]
)

# Permission catalogue
api_router.include_router(
    permissions.router,
    prefix="/permissions",
    tags=["permissions"]
)

# Role management endpoints
api_router.include_router(
    roles.router,
    prefix="/roles",
    tags=["roles"]
)

# User management endpoints
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)

# Role assignment endpoints
api_router.include_router(
    user_roles.router,
    prefix="/user-roles",
    tags=["user-roles"]
)

# Health and monitoring endpoints
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"]
)
