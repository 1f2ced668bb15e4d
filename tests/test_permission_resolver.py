import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from inventory_api.core.exceptions import PermissionResolutionError
from inventory_api.core.permission_resolver import DBPermissionResolver
from inventory_api.core.time import utc_now

from conftest import create_role, create_user


@pytest.mark.asyncio
async def test_user_without_assignments_resolves_to_empty_set(db, session_factory):
    user = await create_user(db, "noroles")
    resolver = DBPermissionResolver(session_factory)

    assert await resolver.resolve(user.id) == frozenset()
    assert await resolver.resolve(987654) == frozenset()


@pytest.mark.asyncio
async def test_valid_assignment_grants_role_permissions(db, session_factory):
    viewer = await create_role(db, "Floor Viewer", [("products", "read", None), ("products", "read", "bom")])
    user = await create_user(db, "viewer", (viewer,))

    permissions = await DBPermissionResolver(session_factory).resolve(user.id)

    assert permissions == frozenset({"products:read", "products:read:bom"})


@pytest.mark.asyncio
async def test_expired_assignment_grants_nothing(db, session_factory):
    role = await create_role(db, "Temp Stock", [("stock", "execute", "stock_in")])
    user = await create_user(db, "temp", (role,), expires_at=utc_now() - timedelta(minutes=1))

    assert await DBPermissionResolver(session_factory).resolve(user.id) == frozenset()


@pytest.mark.asyncio
async def test_future_expiry_is_still_valid(db, session_factory):
    role = await create_role(db, "Temp Stock", [("stock", "execute", "stock_in")])
    user = await create_user(db, "temp", (role,), expires_at=utc_now() + timedelta(days=1))

    assert await DBPermissionResolver(session_factory).resolve(user.id) == frozenset({"stock:execute:stock_in"})


@pytest.mark.asyncio
async def test_inactive_role_grants_nothing(db, session_factory):
    role = await create_role(db, "Retired", [("qc", "read", None)], is_active=False)
    user = await create_user(db, "qc", (role,))

    assert await DBPermissionResolver(session_factory).resolve(user.id) == frozenset()


@pytest.mark.asyncio
async def test_deactivated_user_grants_nothing(db, session_factory):
    role = await create_role(db, "QC", [("qc", "read", None)])
    user = await create_user(db, "former", (role,), is_active=False)

    assert await DBPermissionResolver(session_factory).resolve(user.id) == frozenset()


@pytest.mark.asyncio
async def test_permissions_are_deduplicated_across_roles(db, session_factory):
    first = await create_role(db, "Sales", [("customers", "read", None), ("sales_orders", "read", None)])
    second = await create_role(db, "Support", [("customers", "read", None)])
    user = await create_user(db, "multi", (first, second))
    resolver = DBPermissionResolver(session_factory)

    permissions = await resolver.resolve(user.id)

    assert permissions == frozenset({"customers:read", "sales_orders:read"})
    assert await resolver.resolve(user.id) == permissions


@pytest.mark.asyncio
async def test_stored_wildcard_resource_serializes_as_module_action(db, session_factory):
    role = await create_role(db, "Legacy", [("reports", "read", "*")])
    user = await create_user(db, "legacy", (role,))

    assert await DBPermissionResolver(session_factory).resolve(user.id) == frozenset({"reports:read"})


@pytest.mark.asyncio
async def test_query_timeout_raises_resolution_error(session_factory, monkeypatch):
    resolver = DBPermissionResolver(session_factory, timeout_seconds=0.01)

    async def slow_fetch(user_id):
        await asyncio.sleep(1)
        return []

    monkeypatch.setattr(resolver, "_fetch", slow_fetch)

    with pytest.raises(PermissionResolutionError):
        await resolver.resolve(1)


@pytest.mark.asyncio
async def test_database_error_raises_resolution_error(session_factory, monkeypatch):
    resolver = DBPermissionResolver(session_factory)

    async def broken_fetch(user_id):
        raise OperationalError("SELECT 1", {}, Exception("database is unreachable"))

    monkeypatch.setattr(resolver, "_fetch", broken_fetch)

    with pytest.raises(PermissionResolutionError):
        await resolver.resolve(1)


@pytest.mark.asyncio
async def test_back_to_back_resolutions_are_identical(db, session_factory):
    role = await create_role(
        db,
        "Planner",
        [("production", "read", None), ("production", "execute", "start_production"), ("products", "read", "bom")],
    )
    user = await create_user(db, "planner", (role,))
    resolver = DBPermissionResolver(session_factory)

    first, second = await asyncio.gather(resolver.resolve(user.id), resolver.resolve(user.id))
    third = await resolver.resolve(user.id)

    assert first == second == third
    assert first == frozenset({"production:read", "production:execute:start_production", "products:read:bom"})
