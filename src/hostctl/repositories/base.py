"""Base repository with common CRUD operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    should be done in the service layer.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def count(self, query: Any) -> int:
        """Count the rows a select would return."""
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        result = await self.session.execute(count_query)
        return int(result.scalar_one())

    async def paginate_offset(
        self,
        query: Any,  # SelectOfScalar or Select - SQLModel/SQLAlchemy query
        offset: int,
        limit: int,
        order_by: Any,
    ) -> list[ModelType]:
        """Execute offset-based pagination on an already-filtered query.

        Args:
            query: The base SQLAlchemy query to paginate
            offset: Number of rows to skip
            limit: Maximum number of items to return
            order_by: Column expression (with direction) to order by. The
                primary key is appended as a tie-breaker so pages are stable.
        """
        query = query.order_by(order_by, self.model.id)  # type: ignore[attr-defined]
        query = query.offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
