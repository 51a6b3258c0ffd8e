"""FastAPI dependency injection definitions."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.hostctl.core.config import Settings, get_settings
from src.hostctl.core.db import get_session
from src.hostctl.core.logging import bind_target_context, bind_user_context
from src.hostctl.remote import ConnectionResolver, ExecutionContext
from src.hostctl.repositories import OrganizationRepository, ServerRepository
from src.hostctl.services import ContainerService, HostService, ServerService

# =============================================================================
# Identity Dependencies
# =============================================================================


@dataclass(frozen=True)
class Identity:
    """Caller identity as asserted by the trusted upstream gateway."""

    user_id: UUID
    organization_id: UUID


def _parse_identity_header(value: str | None, header: str) -> UUID:
    if not value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{header} header is required",
        )
    try:
        return UUID(value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} header",
        ) from e


async def get_identity(
    x_user_id: Annotated[str | None, Header()] = None,
    x_organization_id: Annotated[str | None, Header()] = None,
) -> Identity:
    """Read the caller's user and organization from identity headers."""
    identity = Identity(
        user_id=_parse_identity_header(x_user_id, "X-User-ID"),
        organization_id=_parse_identity_header(x_organization_id, "X-Organization-ID"),
    )
    bind_user_context(identity.user_id, identity.organization_id)
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_identity)]


# =============================================================================
# Database Session Dependencies
# =============================================================================


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the duration of the request."""
    async with get_session() as session:
        yield session


DBSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


# =============================================================================
# Repository Dependencies
# =============================================================================


def get_server_repository(session: DBSession) -> ServerRepository:
    return ServerRepository(session)


def get_organization_repository(session: DBSession) -> OrganizationRepository:
    return OrganizationRepository(session)


ServerRepo = Annotated[ServerRepository, Depends(get_server_repository)]
OrganizationRepo = Annotated[OrganizationRepository, Depends(get_organization_repository)]


# =============================================================================
# Service Dependencies
# =============================================================================


def get_connection_resolver(settings: AppSettings) -> ConnectionResolver:
    """Get a connection resolver bound to the application settings."""
    return ConnectionResolver(settings)


Resolver = Annotated[ConnectionResolver, Depends(get_connection_resolver)]


def get_server_service(
    server_repo: ServerRepo,
    organization_repo: OrganizationRepo,
    session: DBSession,
    resolver: Resolver,
    settings: AppSettings,
) -> ServerService:
    """Get server service, probing reachability through the resolver."""
    return ServerService(
        server_repo,
        organization_repo,
        session,
        probe=resolver.probe,
        probe_on_update=settings.ssh_probe_on_update,
    )


def get_container_service(resolver: Resolver) -> ContainerService:
    return ContainerService(resolver)


def get_host_service(resolver: Resolver) -> HostService:
    return HostService(resolver)


ServerServiceDep = Annotated[ServerService, Depends(get_server_service)]
ContainerServiceDep = Annotated[ContainerService, Depends(get_container_service)]
HostServiceDep = Annotated[HostService, Depends(get_host_service)]


# =============================================================================
# Target Dependencies
# =============================================================================


async def get_execution_context(
    identity: CurrentIdentity,
    server_service: ServerServiceDep,
    x_server_id: Annotated[str | None, Header()] = None,
) -> ExecutionContext:
    """Resolve the optional X-Server-ID header into an execution context.

    Without the header the operation runs against the platform's default host.
    A named server must exist and belong to the caller.
    """
    server = await server_service.resolve_target(x_server_id, identity.user_id)
    bind_target_context(server.id if server else None)
    return ExecutionContext.for_server(server)


TargetContext = Annotated[ExecutionContext, Depends(get_execution_context)]
