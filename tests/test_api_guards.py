from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from inventory_api.core.exceptions import PermissionResolutionError
from inventory_api.core.permission_resolver import PermissionResolver
from inventory_api.core.security import create_access_token
from inventory_api.models import ActivityLog

from conftest import auth_headers, create_role, create_user, get_admin

ROLES_URL = "/api/v1/roles/"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client, seeded):
    response = await client.get(ROLES_URL)

    assert response.status_code == 401
    assert response.json()["message"] == "Access token required"
    assert response.json()["success"] is False
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(client, seeded):
    response = await client.get(ROLES_URL, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client, seeded, db):
    admin = await get_admin(db)
    token = create_access_token(user_id=admin.id, username=admin.username, expires_delta=timedelta(seconds=-1))

    response = await client.get(ROLES_URL, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_denied_request_reports_required_permission(client, seeded, db):
    clerk = await create_role(db, "Stock Clerk", [("stock", "read", None)])
    user = await create_user(db, "clerk", (clerk,))

    response = await client.get(ROLES_URL, headers=auth_headers(user))

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Access denied. Insufficient permissions."
    assert body["required_permission"] == {"module": "roles", "action": "read", "resource": None}
    assert body["request_id"] == response.headers["x-request-id"]


@pytest.mark.asyncio
async def test_token_snapshot_does_not_grant_access(client, seeded, db):
    clerk = await create_role(db, "Stock Clerk", [("stock", "read", None)])
    user = await create_user(db, "clerk", (clerk,))

    response = await client.get(ROLES_URL, headers=auth_headers(user, permissions=("roles:read",)))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_module_action_grant_covers_resource_scoped_route(client, seeded, db):
    reader = await create_role(db, "Role Reader", [("roles", "read", None)])
    user = await create_user(db, "reader", (reader,))

    roles = await client.get(ROLES_URL, headers=auth_headers(user))
    catalogue = await client.get("/api/v1/permissions/", headers=auth_headers(user))

    assert roles.status_code == 200
    assert catalogue.status_code == 200


@pytest.mark.asyncio
async def test_exact_only_grant_does_not_cover_the_wildcard_route(client, seeded, db):
    catalogue_reader = await create_role(db, "Catalogue Reader", [("roles", "read", "permissions")])
    user = await create_user(db, "catalogue", (catalogue_reader,))

    catalogue = await client.get("/api/v1/permissions/", headers=auth_headers(user))
    roles = await client.get(ROLES_URL, headers=auth_headers(user))

    assert catalogue.status_code == 200
    assert roles.status_code == 403


@pytest.mark.asyncio
async def test_resolver_failure_returns_500(client, seeded, db, container):
    admin = await get_admin(db)
    failing = AsyncMock(spec=PermissionResolver)
    failing.resolve.side_effect = PermissionResolutionError("Permission store unavailable")
    container.authorizer.resolver = failing

    response = await client.get(ROLES_URL, headers=auth_headers(admin))

    assert response.status_code == 500
    assert response.json()["message"] == "Error checking permissions"


@pytest.mark.asyncio
async def test_allowed_request_records_activity(client, seeded, db, session_factory):
    admin = await get_admin(db)

    response = await client.get(ROLES_URL, headers={**auth_headers(admin), "User-Agent": "guard-test"})

    assert response.status_code == 200
    async with session_factory() as session:
        rows = (await session.execute(select(ActivityLog))).scalars().all()
    assert [(row.user_id, row.action, row.module) for row in rows] == [(admin.id, "GET /api/v1/roles/", "roles")]
    assert rows[0].user_agent == "guard-test"


@pytest.mark.asyncio
async def test_denied_request_records_no_activity(client, seeded, db, session_factory):
    user = await create_user(db, "nobody")

    await client.get(ROLES_URL, headers=auth_headers(user))

    async with session_factory() as session:
        rows = (await session.execute(select(ActivityLog))).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_revocation_takes_effect_before_token_expiry(client, seeded, db):
    admin = await get_admin(db)
    reader = await create_role(db, "Role Reader", [("roles", "read", None)])
    fallback = await create_role(db, "Visitor", [("dashboard", "read", None)])
    user = await create_user(db, "reader", (reader, fallback))
    user_headers = auth_headers(user, permissions=("roles:read", "dashboard:read"))

    assert (await client.get(ROLES_URL, headers=user_headers)).status_code == 200

    revoked = await client.delete(
        f"/api/v1/user-roles/{user.id}/roles/{reader.id}",
        headers=auth_headers(admin),
    )
    assert revoked.status_code == 200

    assert (await client.get(ROLES_URL, headers=user_headers)).status_code == 403


@pytest.mark.asyncio
async def test_deactivating_a_role_applies_to_every_holder(client, seeded, db, container):
    admin = await get_admin(db)
    reader = await create_role(db, "Role Reader", [("roles", "read", None)])
    first = await create_user(db, "first", (reader,))
    second = await create_user(db, "second", (reader,))

    for user in (first, second):
        assert (await client.get(ROLES_URL, headers=auth_headers(user))).status_code == 200

    updated = await client.put(
        f"{ROLES_URL}{reader.id}",
        json={"is_active": False},
        headers=auth_headers(admin),
    )
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False

    for user in (first, second):
        assert (await client.get(ROLES_URL, headers=auth_headers(user))).status_code == 403


@pytest.mark.asyncio
async def test_security_headers_are_set(client, seeded):
    response = await client.get("/api/v1/health/")

    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "DENY"
    assert "x-request-id" in response.headers
