"""Repository for Server entity.

Every query here filters out soft-deleted rows; there is no method that can
read or write a deleted server.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlmodel import select

from src.hostctl.models import Server
from src.hostctl.models.base import utc_now
from src.hostctl.repositories.base import BaseRepository
from src.hostctl.schemas.pagination import ServerQueryParams

_SORT_COLUMNS: dict[str, Any] = {
    "name": Server.name,
    "host": Server.host,
    "port": Server.port,
    "username": Server.username,
    "created_at": Server.created_at,
    "updated_at": Server.updated_at,
}


def _live() -> Any:
    return Server.deleted_at.is_(None)  # type: ignore[union-attr]


def _substring_pattern(search: str) -> str:
    """LIKE pattern matching search as a literal, case-folded substring."""
    escaped = search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ServerRepository(BaseRepository[Server]):
    """Repository for Server entity."""

    model = Server

    async def get_live(self, server_id: UUID) -> Server | None:
        """Get a non-deleted server by id, regardless of owner."""
        result = await self.session.execute(
            select(Server).where(Server.id == server_id, _live())
        )
        return result.scalar_one_or_none()

    async def get_by_name(
        self, name: str, organization_id: UUID, exclude_id: UUID | None = None
    ) -> Server | None:
        """Get a live server with this name in the organization."""
        query = select(Server).where(
            Server.name == name,
            Server.organization_id == organization_id,
            _live(),
        )
        if exclude_id is not None:
            query = query.where(Server.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def get_by_host(
        self,
        host: str,
        port: int,
        organization_id: UUID,
        exclude_id: UUID | None = None,
    ) -> Server | None:
        """Get a live server registered at host:port in the organization."""
        query = select(Server).where(
            Server.host == host,
            Server.port == port,
            Server.organization_id == organization_id,
            _live(),
        )
        if exclude_id is not None:
            query = query.where(Server.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def set_status(self, server_id: UUID, status: str) -> int:
        """Write status and updated_at only. Returns the number of rows changed."""
        result = await self.session.execute(
            update(Server)
            .where(Server.id == server_id, _live())  # type: ignore[arg-type]
            .values(status=status, updated_at=utc_now())
        )
        return result.rowcount or 0

    def soft_delete(self, server: Server) -> None:
        """Mark a server as deleted (no flush/commit)."""
        now = utc_now()
        server.deleted_at = now
        server.updated_at = now
        self.session.add(server)

    def _scoped_query(self, scope: list[Any], search: str) -> Any:
        query = select(Server).where(*scope, _live())
        if search:
            pattern = _substring_pattern(search)
            query = query.where(
                or_(
                    func.lower(Server.name).like(pattern, escape="\\"),
                    func.lower(Server.host).like(pattern, escape="\\"),
                    func.lower(Server.username).like(pattern, escape="\\"),
                    func.lower(Server.description).like(pattern, escape="\\"),
                )
            )
        return query

    async def count_scoped(self, scope: list[Any], search: str = "") -> int:
        """Count live servers matching the scope filters and search term."""
        return await self.count(self._scoped_query(scope, search))

    async def list_scoped(self, scope: list[Any], params: ServerQueryParams) -> list[Server]:
        """List one page of live servers matching the scope filters.

        Args:
            scope: Filter clauses restricting visibility (tenant/owner)
            params: Validated query parameters; sort_by is already known-good
        """
        column = _SORT_COLUMNS[params.sort_by]
        order_by = column.asc() if params.sort_order == "asc" else column.desc()
        query = self._scoped_query(scope, params.search)
        return await self.paginate_offset(query, params.offset, params.limit, order_by)
