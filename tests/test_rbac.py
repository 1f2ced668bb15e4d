import pytest

from inventory_api.core.rbac import (
    PERMISSION_CATALOG,
    SYSTEM_ROLES,
    MatchTier,
    PermissionGrant,
    ResourceScope,
    ScopeKind,
    format_permission,
    match_permission,
    pick_primary_role,
)


@pytest.mark.parametrize("resource", [None, "", "*"])
def test_wildcard_resource_sentinels_format_as_module_action(resource):
    assert format_permission("products", "read", resource) == "products:read"
    assert PermissionGrant.build("products", "read", resource).scope == ResourceScope.any()


def test_concrete_resource_formats_as_triple():
    grant = PermissionGrant.build("Products", "READ", "BOM")

    assert grant.to_string() == "products:read:bom"
    assert grant.scope.kind == ScopeKind.EXACT
    assert grant.resource == "bom"


def test_parse_round_trips_both_shapes():
    assert PermissionGrant.parse("users:update:roles").resource == "roles"
    assert PermissionGrant.parse("users:update").scope.is_any


@pytest.mark.parametrize("text", ["", "products", "a:b:c:d", ":read", "products::bom"])
def test_parse_rejects_malformed_strings(text):
    with pytest.raises(ValueError):
        PermissionGrant.parse(text)


def test_module_action_grant_covers_any_resource():
    permissions = {"products:read"}

    assert match_permission(permissions, "products", "read", "bom") == MatchTier.WILDCARD
    assert match_permission(permissions, "products", "write", "bom") == MatchTier.NONE


def test_exact_grant_takes_precedence_over_wildcard():
    permissions = {"products:read", "products:read:bom"}

    assert match_permission(permissions, "products", "read", "bom") == MatchTier.EXACT


def test_exact_grant_has_no_wildcard_fallback():
    permissions = {"orders:update:status"}

    assert match_permission(permissions, "orders", "update", "status") == MatchTier.EXACT
    assert match_permission(permissions, "orders", "update", "payment") == MatchTier.NONE


def test_request_without_resource_only_consults_wildcard_tier():
    assert match_permission({"orders:update:status"}, "orders", "update") == MatchTier.NONE
    assert match_permission({"orders:update"}, "orders", "update") == MatchTier.WILDCARD


def test_primary_role_prefers_admin_then_manager_then_viewer():
    assert pick_primary_role([(3, "Viewer"), (1, "Admin")]) == (1, "Admin")
    assert pick_primary_role([(3, "Viewer"), (2, "Manager")]) == (2, "Manager")
    assert pick_primary_role([(7, "Storekeeper"), (3, "Viewer")]) == (3, "Viewer")


def test_primary_role_falls_back_to_first_then_viewer():
    assert pick_primary_role([(7, "Storekeeper"), (8, "Auditor")]) == (7, "Storekeeper")
    assert pick_primary_role([]) == (None, "Viewer")


def test_system_roles_only_reference_catalogue_permissions():
    catalogue = {grant.to_string() for grant in PERMISSION_CATALOG}

    for definition in SYSTEM_ROLES.values():
        assert set(definition["permissions"]) <= catalogue


def test_viewer_role_is_read_only():
    assert all(p.split(":")[1] == "read" for p in SYSTEM_ROLES["Viewer"]["permissions"])
    assert "products:read" in SYSTEM_ROLES["Viewer"]["permissions"]
