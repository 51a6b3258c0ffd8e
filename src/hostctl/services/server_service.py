"""Server registry service."""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hostctl.core.exceptions import (
    AlreadyExistsError,
    OrganizationNotFoundError,
    ServerAlreadyExistsError,
    ServerHostAlreadyExistsError,
    ServerNotFoundError,
    TransactionFailureError,
)
from src.hostctl.core.logging import get_logger
from src.hostctl.core.validators import (
    validate_host,
    validate_name,
    validate_port,
    validate_server_id,
    validate_ssh_auth,
    validate_status,
    validate_update_auth,
    validate_username,
)
from src.hostctl.models import Server, ServerStatus
from src.hostctl.models.base import utc_now
from src.hostctl.remote.credentials import SSHCredentials
from src.hostctl.repositories import OrganizationRepository, ServerRepository
from src.hostctl.schemas import (
    PaginationMeta,
    ServerCreate,
    ServerListResponse,
    ServerQueryParams,
    ServerRead,
    ServerUpdate,
)
from src.hostctl.services.policies import ensure_owner, listing_scope

logger = get_logger(__name__)

ReachabilityProbe = Callable[[SSHCredentials], Awaitable[None]]

# Re-run on every write so callers that bypass schema validation get the same checks
_FIELD_VALIDATORS: dict[str, Callable[[Any], Any]] = {
    "name": validate_name,
    "host": validate_host,
    "port": validate_port,
    "username": validate_username,
}


def _conflict_from_integrity_error(e: IntegrityError) -> AlreadyExistsError:
    """Map a unique-index violation to the matching conflict error.

    PostgreSQL reports the index name; SQLite reports the column list.
    """
    detail = str(e.orig)
    if "uq_servers_host_port_org_live" in detail or "servers.host" in detail:
        return ServerHostAlreadyExistsError()
    return ServerAlreadyExistsError()


class ServerService:
    """Server registry - business logic only.

    Every mutating method runs as one transaction. Any failure rolls the
    session back before the exception leaves the service.
    """

    def __init__(
        self,
        server_repo: ServerRepository,
        organization_repo: OrganizationRepository,
        session: AsyncSession,
        probe: ReachabilityProbe,
        probe_on_update: bool = True,
    ):
        self.server_repo = server_repo
        self.organization_repo = organization_repo
        self.session = session
        self.probe = probe
        self.probe_on_update = probe_on_update

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise _conflict_from_integrity_error(e) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Server transaction failed to commit", error=str(e))
            raise TransactionFailureError() from e

    async def _get_owned(self, server_id: UUID, requester_user_id: UUID) -> Server:
        server = await self.server_repo.get_live(server_id)
        if server is None:
            raise ServerNotFoundError()
        ensure_owner(server, requester_user_id)
        return server

    async def create(
        self, request: ServerCreate, owner_user_id: UUID, organization_id: UUID
    ) -> Server:
        """Register a server after confirming it accepts the supplied credentials.

        The reachability probe runs before any transaction is opened.

        Raises:
            InvalidFieldError: Missing or conflicting SSH credentials
            SSHUnreachableError: The host did not accept the credentials
            OrganizationNotFoundError: Organization missing, inactive or deleted
            AlreadyExistsError: Name or host:port already registered in the organization
            TransactionFailureError: The commit failed
        """
        for field, check in _FIELD_VALIDATORS.items():
            check(getattr(request, field))
        validate_ssh_auth(request.ssh_password, request.ssh_private_key_path)
        initial_status = validate_status(request.status)

        await self.probe(
            SSHCredentials(
                host=request.host,
                port=request.port,
                username=request.username,
                password=request.ssh_password or None,
                private_key_path=request.ssh_private_key_path or None,
            )
        )

        try:
            if await self.organization_repo.get_active(organization_id) is None:
                raise OrganizationNotFoundError()

            if await self.server_repo.get_by_name(request.name, organization_id):
                raise ServerAlreadyExistsError()
            if await self.server_repo.get_by_host(request.host, request.port, organization_id):
                raise ServerHostAlreadyExistsError()

            server = Server(
                name=request.name,
                description=request.description,
                host=request.host,
                port=request.port,
                username=request.username,
                ssh_password=request.ssh_password or None,
                ssh_private_key_path=request.ssh_private_key_path or None,
                status=initial_status.value,
                user_id=owner_user_id,
                organization_id=organization_id,
            )
            self.server_repo.add(server)
            await self._commit()
            await self.session.refresh(server)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Server registered",
            server_id=str(server.id),
            server_name=server.name,
            target=f"{server.username}@{server.host}:{server.port}",
        )
        return server

    async def get(self, server_id: UUID | str, requester_user_id: UUID) -> Server:
        """Get a live server owned by the requester.

        Raises:
            ServerNotFoundError: No live server with this id
            PermissionDeniedError: The server belongs to another user
        """
        return await self._get_owned(validate_server_id(server_id), requester_user_id)

    async def resolve_target(
        self, server_id: UUID | str | None, requester_user_id: UUID
    ) -> Server | None:
        """Resolve an optional target-server id. No id means the default host."""
        if not server_id:
            return None
        return await self.get(server_id, requester_user_id)

    async def update(
        self, server_id: UUID | str, request: ServerUpdate, requester_user_id: UUID
    ) -> Server:
        """Apply a partial update.

        Uniqueness is re-checked only for the facts that change, excluding the
        record itself. When connection facts change (and probing on update is
        enabled) the new credentials are probed before the write transaction.
        """
        server_id = validate_server_id(server_id)
        changes = {
            field: getattr(request, field) for field in request.changed_fields()
        }
        for field, check in _FIELD_VALIDATORS.items():
            if field in changes:
                check(changes[field])

        try:
            current = await self._get_owned(server_id, requester_user_id)
            merged = self._merged_credentials(current, changes)
            validate_update_auth(merged.password, merged.private_key_path)
            if self.probe_on_update and merged != SSHCredentials.from_server(current):
                # Release the read transaction before dialing out
                await self.session.rollback()
                await self.probe(merged)
                current = await self._get_owned(server_id, requester_user_id)

            if "name" in changes and changes["name"] != current.name:
                if await self.server_repo.get_by_name(
                    changes["name"], current.organization_id, exclude_id=current.id
                ):
                    raise ServerAlreadyExistsError()

            if (merged.host, merged.port) != (current.host, current.port):
                if await self.server_repo.get_by_host(
                    merged.host, merged.port, current.organization_id, exclude_id=current.id
                ):
                    raise ServerHostAlreadyExistsError()

            for field, value in changes.items():
                if field in ("ssh_password", "ssh_private_key_path"):
                    value = value or None
                setattr(current, field, value)
            current.updated_at = utc_now()
            self.server_repo.add(current)
            await self._commit()
            await self.session.refresh(current)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Server updated",
            server_id=str(current.id),
            fields=sorted(changes),
        )
        return current

    @staticmethod
    def _merged_credentials(server: Server, changes: dict[str, object]) -> SSHCredentials:
        """Credentials the server will have once changes are applied. "" clears a secret."""

        def pick(field: str) -> object:
            return changes[field] if field in changes else getattr(server, field)

        return SSHCredentials(
            host=pick("host"),  # type: ignore[arg-type]
            port=pick("port"),  # type: ignore[arg-type]
            username=pick("username"),  # type: ignore[arg-type]
            password=pick("ssh_password") or None,  # type: ignore[arg-type]
            private_key_path=pick("ssh_private_key_path") or None,  # type: ignore[arg-type]
        )

    async def update_status(
        self,
        server_id: UUID | str,
        status: ServerStatus | str,
        requester_user_id: UUID,
    ) -> Server:
        """Change only the status. Returns the record as re-read after commit."""
        server_id = validate_server_id(server_id)
        new_status = validate_status(status)

        try:
            await self._get_owned(server_id, requester_user_id)
            if await self.server_repo.set_status(server_id, new_status.value) == 0:
                raise ServerNotFoundError()
            await self._commit()
        except Exception:
            await self.session.rollback()
            raise

        # The bulk UPDATE bypassed the identity map
        self.session.expire_all()
        server = await self.server_repo.get_live(server_id)
        if server is None:
            raise ServerNotFoundError()

        logger.info("Server status changed", server_id=str(server_id), status=server.status)
        return server

    async def delete(self, server_id: UUID | str, requester_user_id: UUID) -> None:
        """Soft-delete a server. The row stays for history but is never read again."""
        server_id = validate_server_id(server_id)

        try:
            server = await self._get_owned(server_id, requester_user_id)
            self.server_repo.soft_delete(server)
            await self._commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Server deleted", server_id=str(server_id))

    async def list(
        self,
        organization_id: UUID,
        requester_user_id: UUID,
        query: ServerQueryParams,
    ) -> ServerListResponse:
        """List the requester's live servers in the organization, one page at a time."""
        scope = listing_scope(organization_id, requester_user_id)
        total = await self.server_repo.count_scoped(scope, query.search)
        servers = await self.server_repo.list_scoped(scope, query)
        total_pages = query.total_pages(total)

        return ServerListResponse(
            servers=[ServerRead.model_validate(s) for s in servers],
            pagination=PaginationMeta(
                current_page=query.page,
                page_size=query.page_size,
                total_pages=total_pages,
                total_items=total,
                has_next=query.page < total_pages,
                has_prev=query.page > 1,
            ),
        )
