"""Organization model - the tenant that scopes server records."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.hostctl.models.base import utc_now


class Organization(SQLModel, table=True):
    """Organization registry.

    Owned by the identity provider; this service only reads it to confirm a
    tenant exists before registering servers under it.
    """

    __tablename__ = "organizations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=255, index=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    deleted_at: datetime | None = Field(default=None)
