"""
RBAC permission representation and canonical definitions for the factory inventory system.

Permissions are ``module:action`` (any resource) or ``module:action:resource``
strings. Inside the engine they are handled as ``PermissionGrant`` values whose
resource scope is explicitly either ANY or EXACT.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


WILDCARD_RESOURCE = "*"


class ScopeKind(str, Enum):
    ANY = "any"
    EXACT = "exact"


class MatchTier(str, Enum):
    EXACT = "exact"
    WILDCARD = "wildcard"
    NONE = "none"


def normalize_segment(value: str) -> str:
    return value.strip().lower()


@dataclass(frozen=True)
class ResourceScope:
    kind: ScopeKind
    name: Optional[str] = None

    @classmethod
    def any(cls) -> "ResourceScope":
        return cls(ScopeKind.ANY)

    @classmethod
    def exact(cls, name: str) -> "ResourceScope":
        normalized = normalize_segment(name)
        if not normalized or normalized == WILDCARD_RESOURCE:
            raise ValueError(f"Invalid exact resource: {name!r}")
        return cls(ScopeKind.EXACT, normalized)

    @classmethod
    def from_column(cls, value: Optional[str]) -> "ResourceScope":
        """Stored resources: NULL, empty and '*' all mean any resource."""
        if value is None or not value.strip() or value.strip() == WILDCARD_RESOURCE:
            return cls.any()
        return cls.exact(value)

    @property
    def is_any(self) -> bool:
        return self.kind == ScopeKind.ANY


@dataclass(frozen=True)
class PermissionGrant:
    module: str
    action: str
    scope: ResourceScope = ResourceScope(ScopeKind.ANY)

    @classmethod
    def build(cls, module: str, action: str, resource: Optional[str] = None) -> "PermissionGrant":
        module, action = normalize_segment(module), normalize_segment(action)
        if not module or not action:
            raise ValueError("Permission module and action are required")
        return cls(module, action, ResourceScope.from_column(resource))

    @classmethod
    def parse(cls, text: str) -> "PermissionGrant":
        parts = text.split(":")
        if len(parts) not in (2, 3):
            raise ValueError(f"Malformed permission string: {text!r}")
        resource = parts[2] if len(parts) == 3 else None
        if len(parts) == 3 and not resource.strip():
            raise ValueError(f"Malformed permission string: {text!r}")
        return cls.build(parts[0], parts[1], resource)

    @property
    def resource(self) -> Optional[str]:
        return self.scope.name

    def to_string(self) -> str:
        if self.scope.is_any:
            return f"{self.module}:{self.action}"
        return f"{self.module}:{self.action}:{self.scope.name}"

    def __str__(self) -> str:
        return self.to_string()


def format_permission(module: str, action: str, resource: Optional[str] = None) -> str:
    return PermissionGrant.build(module, action, resource).to_string()


def match_permission(
    permissions: Iterable[str],
    module: str,
    action: str,
    resource: Optional[str] = None,
) -> MatchTier:
    """
    Match a requested triple against a set of permission strings.

    Precedence: exact ``module:action:resource`` first, then the
    ``module:action`` wildcard tier, otherwise no match. A request without a
    resource only consults the wildcard tier.
    """
    granted = permissions if isinstance(permissions, (set, frozenset)) else set(permissions)
    requested = PermissionGrant.build(module, action, resource)

    if not requested.scope.is_any and requested.to_string() in granted:
        return MatchTier.EXACT
    if f"{requested.module}:{requested.action}" in granted:
        return MatchTier.WILDCARD
    return MatchTier.NONE


# Canonical catalogue seeded at bootstrap. Each module:action pair exists as a
# wildcard grant; RESOURCE_SCOPED_PERMISSIONS adds the finer grained ones.
MODULE_ACTIONS: dict[str, tuple[str, ...]] = {
    "dashboard": ("read",),
    "inventory": ("read", "create", "update", "delete"),
    "stock": ("read", "execute"),
    "suppliers": ("read", "create", "update", "delete"),
    "purchase_orders": ("read", "create", "update", "delete", "execute"),
    "products": ("read", "create", "update", "delete"),
    "production": ("read", "create", "update", "delete", "execute"),
    "qc": ("read", "create", "update", "execute"),
    "customers": ("read", "create", "update", "delete"),
    "sales_orders": ("read", "create", "update", "delete", "execute"),
    "shipments": ("read", "create", "update"),
    "payments": ("read", "create", "execute"),
    "reports": ("read", "execute"),
    "users": ("read", "create", "update", "delete"),
    "roles": ("read", "create", "update", "delete", "execute"),
    "settings": ("read", "update"),
}

RESOURCE_SCOPED_PERMISSIONS: tuple[tuple[str, str, str], ...] = (
    ("products", "read", "bom"),
    ("products", "create", "bom"),
    ("products", "delete", "bom"),
    ("production", "update", "work_order"),
    ("production", "execute", "start_production"),
    ("production", "execute", "complete_production"),
    ("stock", "execute", "stock_in"),
    ("stock", "execute", "stock_out"),
    ("sales_orders", "execute", "confirm"),
    ("sales_orders", "execute", "ship"),
    ("sales_orders", "execute", "cancel"),
    ("users", "read", "user"),
    ("users", "update", "roles"),
    ("users", "update", "status"),
    ("roles", "read", "permissions"),
    ("roles", "update", "permissions"),
    ("settings", "read", "audit_log"),
)

ADMINISTRATION_MODULES: tuple[str, ...] = ("users", "roles", "settings")


def _catalog() -> tuple[PermissionGrant, ...]:
    grants = [
        PermissionGrant.build(module, action)
        for module, actions in MODULE_ACTIONS.items()
        for action in actions
    ]
    grants.extend(PermissionGrant.build(*triple) for triple in RESOURCE_SCOPED_PERMISSIONS)
    return tuple(grants)


PERMISSION_CATALOG: tuple[PermissionGrant, ...] = _catalog()


def _business_grants(actions: Iterable[str]) -> list[str]:
    wanted = set(actions)
    return [
        f"{module}:{action}"
        for module, module_actions in MODULE_ACTIONS.items()
        if module not in ADMINISTRATION_MODULES
        for action in module_actions
        if action in wanted
    ]


ROLE_ADMIN = "Admin"
ROLE_MANAGER = "Manager"
ROLE_VIEWER = "Viewer"

# Primary role shown in the session credential, most privileged first
PRIMARY_ROLE_PRIORITY: tuple[str, ...] = (ROLE_ADMIN, ROLE_MANAGER, ROLE_VIEWER)

SYSTEM_ROLES: dict[str, dict] = {
    ROLE_ADMIN: {
        "description": "Full access to every module, including user and role management",
        "permissions": [grant.to_string() for grant in PERMISSION_CATALOG if grant.scope.is_any],
    },
    ROLE_MANAGER: {
        "description": "Operational management of inventory, production and sales",
        "permissions": _business_grants(("read", "create", "update", "execute"))
        + ["users:read", "roles:read"],
    },
    ROLE_VIEWER: {
        "description": "Read-only access to operational data",
        "permissions": _business_grants(("read",)),
    },
}


def pick_primary_role(roles: list[tuple[Optional[int], str]]) -> tuple[Optional[int], str]:
    """
    Choose the role shown as the user's primary role.

    ``roles`` holds ``(role_id, role_name)`` pairs in assignment order.
    """
    by_name = {name: role_id for role_id, name in roles}
    for name in PRIMARY_ROLE_PRIORITY:
        if name in by_name:
            return by_name[name], name
    if roles:
        return roles[0]
    return None, ROLE_VIEWER
