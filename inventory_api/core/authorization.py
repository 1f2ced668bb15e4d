"""
Authorization decisions

``Authorizer.authorize`` is the single choke point deciding whether an
authenticated identity may perform a (module, action, resource) operation.
It never raises: infrastructure failures come back as an ERROR decision,
which is a denial.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import structlog

from inventory_api.core.permission_cache import PermissionCache
from inventory_api.core.permission_resolver import PermissionResolver
from inventory_api.core.rbac import MatchTier, match_permission

logger = structlog.get_logger()


@dataclass(frozen=True)
class Identity:
    """Caller identity established from a verified session credential"""
    user_id: int
    username: str
    role: Optional[str] = None
    role_id: Optional[int] = None
    # Advisory snapshot from token issuance; never used for decisions
    permission_snapshot: frozenset[str] = field(default_factory=frozenset)


class DecisionKind(str, Enum):
    ALLOWED_EXACT = "allowed_exact"
    ALLOWED_WILDCARD = "allowed_wildcard"
    DENIED = "denied"
    UNAUTHENTICATED = "unauthenticated"
    ERROR = "error"


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: DecisionKind
    module: str
    action: str
    resource: Optional[str] = None

    @property
    def required_permission(self) -> dict:
        return {"module": self.module, "action": self.action, "resource": self.resource}


_TIER_DECISIONS = {
    MatchTier.EXACT: DecisionKind.ALLOWED_EXACT,
    MatchTier.WILDCARD: DecisionKind.ALLOWED_WILDCARD,
}


class Authorizer:
    def __init__(self, cache: PermissionCache, resolver: PermissionResolver) -> None:
        self.cache = cache
        self.resolver = resolver

    async def effective_permissions(self, user_id: int) -> frozenset[str]:
        """
        Cached permission set, resolving and caching on a miss

        Raises:
            PermissionResolutionError: propagated from the resolver
        """
        permissions = self.cache.get(user_id)
        if permissions is None:
            generation = self.cache.generation
            resolved = await self.resolver.resolve(user_id)
            permissions = self.cache.put(user_id, resolved, generation=generation)
        return permissions

    async def authorize(
        self,
        identity: Optional[Identity],
        module: str,
        action: str,
        resource: Optional[str] = None,
    ) -> AuthorizationDecision:
        def decide(kind: DecisionKind) -> AuthorizationDecision:
            allowed = kind in (DecisionKind.ALLOWED_EXACT, DecisionKind.ALLOWED_WILDCARD)
            return AuthorizationDecision(allowed, kind, module, action, resource)

        if identity is None:
            return decide(DecisionKind.UNAUTHENTICATED)

        try:
            permissions = await self.effective_permissions(identity.user_id)
            tier = match_permission(permissions, module, action, resource)
        except Exception as exc:
            logger.error(
                "Permission check failed, denying",
                user_id=identity.user_id,
                module=module,
                action=action,
                resource=resource,
                error=str(exc),
            )
            return decide(DecisionKind.ERROR)

        if tier is MatchTier.NONE:
            logger.warning(
                "Permission denied",
                user_id=identity.user_id,
                module=module,
                action=action,
                resource=resource,
            )
            return decide(DecisionKind.DENIED)

        logger.debug(
            "Permission granted",
            user_id=identity.user_id,
            module=module,
            action=action,
            resource=resource,
            tier=tier.value,
        )
        return decide(_TIER_DECISIONS[tier])
