import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-factory-inventory-0123456789")
os.environ.setdefault("BOOTSTRAP_ADMIN_PASSWORD", "AdminPass123")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select

from inventory_api.core.container import build_container
from inventory_api.core.database import build_engine, build_session_factory, init_database
from inventory_api.core.security import create_access_token, get_password_hash
from inventory_api.core.time import utc_now
from inventory_api.main import create_app
from inventory_api.models import Permission, Role, User, UserRole
from inventory_api.services.bootstrap_admin import bootstrap_permission_store


class FakeClock:
    """Monotonic clock the tests advance by hand"""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'permissions.db'}")
    await init_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session_factory):
    """Permission catalogue, system roles and the bootstrap admin"""
    async with session_factory() as session:
        await bootstrap_permission_store(session)


@pytest.fixture
def container(engine, session_factory, clock):
    return build_container(session_factory, engine, cache_ttl_seconds=300, clock=clock)


@pytest.fixture
def app(container):
    return create_app(container)


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


async def get_role(session, name: str) -> Role:
    result = await session.execute(select(Role).where(Role.name == name))
    return result.scalar_one()


async def create_role(session, name: str, grants: list[tuple], is_active: bool = True) -> Role:
    """Role holding the given (module, action, resource) triples, creating missing permissions"""
    permissions = []
    for module, action, resource in grants:
        query = select(Permission).where(Permission.module == module, Permission.action == action)
        query = query.where(Permission.resource.is_(None) if resource is None else Permission.resource == resource)
        permission = (await session.execute(query)).scalar_one_or_none()
        if permission is None:
            permission = Permission(module=module, action=action, resource=resource)
            session.add(permission)
        permissions.append(permission)

    role = Role(name=name, description=None, is_system=False, is_active=is_active)
    role.permissions = permissions
    session.add(role)
    await session.commit()
    return role


async def create_user(
    session,
    username: str,
    roles: tuple = (),
    *,
    password: str = "Secret123",
    is_active: bool = True,
    expires_at: Optional[datetime] = None,
) -> User:
    user = User(
        username=username,
        email=None,
        full_name=username.title(),
        hashed_password=get_password_hash(password),
        is_active=is_active,
        last_login_at=None,
    )
    session.add(user)
    await session.flush()
    for role in roles:
        session.add(
            UserRole(
                user_id=user.id,
                role=role,
                assigned_at=utc_now(),
                expires_at=expires_at,
                is_active=True,
                revoked_by=None,
                revoked_at=None,
            )
        )
    await session.commit()
    return user


def auth_headers(user: User, permissions: tuple = ()) -> dict:
    token = create_access_token(user_id=user.id, username=user.username, permissions=permissions)
    return {"Authorization": f"Bearer {token}"}


async def get_admin(session) -> User:
    result = await session.execute(select(User).where(User.username == "admin"))
    return result.scalar_one()
