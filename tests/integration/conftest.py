"""Integration test fixtures for database and HTTP client operations.

The registry runs against an in-memory SQLite database created from the model
metadata, including the partial unique indexes on live rows. Remote access is
replaced with mocks; nothing here dials SSH or a Docker engine.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from src.hostctl.api.dependencies import get_connection_resolver, get_db_session
from src.hostctl.core.config import Settings
from src.hostctl.main import create_app
from src.hostctl.models import Organization, Server  # noqa: F401 - registers tables
from src.hostctl.remote import ConnectionResolver, ExecutionContext
from src.hostctl.repositories import OrganizationRepository, ServerRepository
from src.hostctl.services import ServerService
from tests.factories import OrganizationFactory, generate_uuid


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session configured like the application's (no autoflush, no expire on commit)."""
    async with AsyncSession(engine, expire_on_commit=False, autoflush=False) as session:
        yield session


@pytest.fixture
async def organization(db_session: AsyncSession) -> Organization:
    org = OrganizationFactory.build()
    db_session.add(org)
    await db_session.commit()
    return org


@pytest.fixture
def user_id() -> UUID:
    return generate_uuid()


@pytest.fixture
def probe() -> AsyncMock:
    """Reachability probe that always succeeds unless a test sets side_effect."""
    return AsyncMock(return_value=None)


@pytest.fixture
def server_service(db_session: AsyncSession, probe: AsyncMock) -> ServerService:
    return ServerService(
        ServerRepository(db_session),
        OrganizationRepository(db_session),
        db_session,
        probe=probe,
    )


@pytest.fixture
def docker_client() -> MagicMock:
    """Docker SDK client double handed out by the resolver."""
    return MagicMock(name="DockerClient")


@pytest.fixture
def resolver(
    settings: Settings, probe: AsyncMock, docker_client: MagicMock
) -> ConnectionResolver:
    """Real resolver with its network edges replaced."""
    resolver = ConnectionResolver(settings)
    resolver.probe = probe  # type: ignore[method-assign]
    resolver.docker_contexts: list[ExecutionContext] = []  # type: ignore[attr-defined]

    @asynccontextmanager
    async def _docker(ctx: ExecutionContext) -> AsyncIterator[MagicMock]:
        resolver.docker_contexts.append(ctx)  # type: ignore[attr-defined]
        yield docker_client

    resolver.docker = _docker  # type: ignore[method-assign]
    return resolver


@pytest.fixture
async def client(
    engine: AsyncEngine,
    organization: Organization,
    user_id: UUID,
    resolver: ConnectionResolver,
) -> AsyncGenerator[AsyncClient]:
    """HTTP client authenticated as user_id in organization."""
    app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with AsyncSession(engine, expire_on_commit=False, autoflush=False) as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_connection_resolver] = lambda: resolver

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={
            "X-User-ID": str(user_id),
            "X-Organization-ID": str(organization.id),
        },
    ) as client:
        yield client
