import pytest

from conftest import auth_headers, create_user, get_admin, get_role

USERS_URL = "/api/v1/users/"


@pytest.mark.asyncio
async def test_admin_creates_user_with_roles(client, seeded, db):
    admin = await get_admin(db)
    viewer = await get_role(db, "Viewer")

    response = await client.post(
        USERS_URL,
        json={
            "username": "Line.Lead",
            "email": "Lead@Factory.example",
            "full_name": "Line Lead",
            "password": "Secret123",
            "role_ids": [viewer.id],
        },
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "line.lead"
    assert body["email"] == "lead@factory.example"
    assert body["roles"] == ["Viewer"]

    login = await client.post("/api/v1/auth/login", json={"username": "line.lead", "password": "Secret123"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_duplicate_username_conflicts(client, seeded, db):
    admin = await get_admin(db)

    response = await client.post(
        USERS_URL,
        json={"username": "admin", "full_name": "Second Admin", "password": "Secret123"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_invalid_username_is_a_validation_error(client, seeded, db):
    admin = await get_admin(db)

    response = await client.post(
        USERS_URL,
        json={"username": "bad name!", "full_name": "Bad Name", "password": "Secret123"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_users_is_paginated_and_filtered(client, seeded, db):
    admin = await get_admin(db)
    await create_user(db, "picker")
    await create_user(db, "former", is_active=False)

    response = await client.get(USERS_URL, params={"is_active": "false"}, headers=auth_headers(admin))

    body = response.json()
    assert response.status_code == 200
    assert body["total"] == 1
    assert [item["username"] for item in body["items"]] == ["former"]


@pytest.mark.asyncio
async def test_deactivated_user_loses_access_immediately(client, seeded, db):
    admin = await get_admin(db)
    viewer = await get_role(db, "Viewer")
    manager = await get_role(db, "Manager")
    user = await create_user(db, "supervisor", (viewer, manager))
    user_headers = auth_headers(user)

    assert (await client.get("/api/v1/roles/", headers=user_headers)).status_code == 200

    response = await client.patch(f"{USERS_URL}{user.id}", json={"is_active": False}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    assert (await client.get("/api/v1/roles/", headers=user_headers)).status_code == 403


@pytest.mark.asyncio
async def test_admin_cannot_deactivate_themselves(client, seeded, db):
    admin = await get_admin(db)

    response = await client.patch(f"{USERS_URL}{admin.id}", json={"is_active": False}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json()["message"] == "You cannot deactivate your own account"
