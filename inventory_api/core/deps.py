"""
FastAPI Dependencies
Authentication guard, authorization guard and container access
"""

from typing import Optional

from fastapi import BackgroundTasks, Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import structlog

from inventory_api.core.authorization import DecisionKind, Identity
from inventory_api.core.container import ServiceContainer
from inventory_api.core.events import AccessGranted
from inventory_api.core.exceptions import (
    MissingCredentials,
    PermissionCheckFailed,
    PermissionDenied,
    Unauthenticated,
)
from inventory_api.core.security import identity_from_claims, verify_token
from inventory_api.repositories.audit import AuditContext
from inventory_api.services.role_service import RoleService
from inventory_api.services.user import UserService
from inventory_api.services.user_role_service import UserRoleService

logger = structlog.get_logger()

# auto_error=False so a missing header reaches our own 401 handling
security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Identity:
    """
    Authentication guard: establish the caller from the bearer credential

    Raises:
        MissingCredentials: no Authorization header or empty token
        InvalidCredentials: signature, type, expiry or issuer check failed
    """
    if not credentials or not credentials.credentials:
        logger.warning("Missing authentication credentials", path=request.url.path)
        raise MissingCredentials()

    claims = verify_token(credentials.credentials, token_type="access")
    identity = identity_from_claims(claims)

    request.state.identity = identity
    structlog.contextvars.bind_contextvars(user_id=identity.user_id)
    return identity


def require_permission(module: str, action: str, resource: Optional[str] = None):
    """
    Dependency factory for the authorization guard

    Each protected route declares exactly one (module, action, resource)
    triple. Returns the caller's Identity when allowed.
    """
    async def permission_checker(
        request: Request,
        background_tasks: BackgroundTasks,
        identity: Identity = Depends(get_identity),
        container: ServiceContainer = Depends(get_container),
    ) -> Identity:
        decision = await container.authorizer.authorize(identity, module, action, resource)

        if decision.reason == DecisionKind.UNAUTHENTICATED:
            raise Unauthenticated("Unauthorized")
        if decision.reason == DecisionKind.ERROR:
            raise PermissionCheckFailed()
        if not decision.allowed:
            raise PermissionDenied(module, action, resource)

        # Runs after the response has been produced
        background_tasks.add_task(
            container.events.publish,
            AccessGranted(
                user_id=identity.user_id,
                username=identity.username,
                method=request.method,
                path=request.url.path,
                module=module,
                action=action,
                resource=resource,
                ip_address=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
            ),
        )
        return identity

    return permission_checker


def audit_context(request: Request, identity: Optional[Identity] = None) -> AuditContext:
    """Actor, client address and user agent for audit rows"""
    return AuditContext(
        actor_id=identity.user_id if identity else None,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def get_role_service(container: ServiceContainer = Depends(get_container)) -> RoleService:
    return RoleService(container.invalidation)


def get_user_role_service(container: ServiceContainer = Depends(get_container)) -> UserRoleService:
    return UserRoleService(container.invalidation)


def get_user_service(container: ServiceContainer = Depends(get_container)) -> UserService:
    return UserService(container.invalidation)
