from __future__ import annotations

import os

# Settings are read at import time; tests never touch the module-level engine.
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite://")
os.environ.setdefault("DATABASE_URL_SYNC", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import uuid
from typing import Any, Callable, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from agency_crm.core.roles import AdminRole, ClientRole
from agency_crm.core.security import create_access_token, hash_password
from agency_crm.db.session import enable_sqlite_foreign_keys, get_db, get_session_factory
from agency_crm.services.http import get_http_client_factory

# Ensure Base + models are registered before create_all
from agency_crm.db.base import Base
import agency_crm.models  # noqa: F401
from agency_crm.models.admin import Admin
from agency_crm.models.client import Client

DEFAULT_PASSWORD = "s3cret-pass"


# ---------------------------------------------------------
# Engine + schema lifecycle
# ---------------------------------------------------------
@pytest.fixture(scope="session")
def database_url_async(tmp_path_factory) -> str:
    path = tmp_path_factory.mktemp("db") / "agency_crm_test.db"
    return f"sqlite+aiosqlite:///{path}"


@pytest_asyncio.fixture(scope="session")
async def engine(database_url_async: str):
    engine = create_async_engine(database_url_async, future=True, echo=False, poolclass=NullPool)
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="session")
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ---------------------------------------------------------
# AUTOUSE: clean DB before every test
# ---------------------------------------------------------
@pytest_asyncio.fixture(autouse=True)
async def _clean_tables(engine):
    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(delete(table))
    yield


# ---------------------------------------------------------
# DB session for setup & assertions
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY.
    Data the app must see has to be committed.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# Outbound HTTP (Meta Conversions API)
# ---------------------------------------------------------
class OutboundRecorder:
    """MockTransport handler that records every outbound request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.json_body: Any = {"events_received": 1}
        self.error: Optional[Exception] = None

    def respond_with(self, status_code: int, json_body: Any = None) -> None:
        self.status_code = status_code
        self.json_body = json_body if json_body is not None else {}

    def fail_with(self, error: Exception) -> None:
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.json_body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture()
def outbound() -> OutboundRecorder:
    return OutboundRecorder()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker, outbound: OutboundRecorder):
    from agency_crm.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: sessionmaker
    fastapi_app.dependency_overrides[get_http_client_factory] = lambda: outbound.client
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------
# Accounts
# ---------------------------------------------------------
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def token_for(principal: Admin | Client) -> str:
    if isinstance(principal, Admin):
        return create_access_token(subject=str(principal.id), role=principal.role)
    return create_access_token(subject=str(principal.id), role=ClientRole.OWNER.value, slug=principal.slug)


@pytest.fixture()
def password() -> str:
    return DEFAULT_PASSWORD


@pytest.fixture()
def headers_for() -> Callable[[Admin | Client], dict[str, str]]:
    return lambda principal: auth_headers(token_for(principal))


@pytest.fixture()
def make_client(db) -> Callable:
    async def _make(slug: Optional[str] = None, **overrides: Any) -> Client:
        slug = slug or f"client-{uuid.uuid4().hex[:8]}"
        values = dict(
            name=f"Client {slug}",
            email=f"{slug}@example.com",
            slug=slug,
            password_hash=hash_password(DEFAULT_PASSWORD),
            plan="BASIC",
            is_active=True,
        )
        values.update(overrides)
        c = Client(**values)
        db.add(c)
        await db.commit()
        return c

    return _make


@pytest.fixture()
def make_admin(db) -> Callable:
    async def _make(role: str = AdminRole.MASTER.value, **overrides: Any) -> Admin:
        suffix = uuid.uuid4().hex[:8]
        values = dict(
            name=f"Admin {suffix}",
            email=f"admin-{suffix}@agency.com",
            password_hash=hash_password(DEFAULT_PASSWORD),
            role=role,
            is_active=True,
        )
        values.update(overrides)
        a = Admin(**values)
        db.add(a)
        await db.commit()
        return a

    return _make


@pytest_asyncio.fixture()
async def master_admin(make_admin) -> Admin:
    return await make_admin(AdminRole.MASTER.value, name="Ana Master")


@pytest.fixture()
def admin_headers(master_admin: Admin) -> dict[str, str]:
    return auth_headers(token_for(master_admin))


@pytest_asyncio.fixture()
async def tenant(make_client) -> Client:
    return await make_client("demo", name="Demo Ltda")


@pytest.fixture()
def tenant_headers(tenant: Client) -> dict[str, str]:
    return auth_headers(token_for(tenant))
