"""Repository for Organization entity."""

from uuid import UUID

from sqlmodel import select

from src.hostctl.models import Organization
from src.hostctl.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    """Read access to the organization registry."""

    model = Organization

    async def get_active(self, organization_id: UUID) -> Organization | None:
        """Get an organization that is active and not soft-deleted."""
        result = await self.session.execute(
            select(Organization).where(
                Organization.id == organization_id,
                Organization.is_active == True,  # noqa: E712
                Organization.deleted_at.is_(None),  # type: ignore[union-attr]
            )
        )
        return result.scalar_one_or_none()
