"""Server model - a registered remote host and its SSH connection facts."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, Index, Text, text
from sqlmodel import Field, SQLModel

from src.hostctl.models.base import utc_now
from src.hostctl.models.enums import AuthMethod, ServerStatus

LIVE_ROWS = text("deleted_at IS NULL")


class Server(SQLModel, table=True):
    """Server record.

    Uniqueness of (name, organization) and (host, port, organization) holds
    only among rows that are not soft-deleted, so both are partial unique
    indexes rather than table constraints. A deleted name or address can be
    registered again.
    """

    __tablename__ = "servers"
    __table_args__ = (
        Index(
            "uq_servers_name_org_live",
            "name",
            "organization_id",
            unique=True,
            postgresql_where=LIVE_ROWS,
            sqlite_where=LIVE_ROWS,
        ),
        Index(
            "uq_servers_host_port_org_live",
            "host",
            "port",
            "organization_id",
            unique=True,
            postgresql_where=LIVE_ROWS,
            sqlite_where=LIVE_ROWS,
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=255)
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    host: str = Field(max_length=255)
    port: int
    username: str = Field(max_length=255)
    ssh_password: str | None = Field(default=None)
    ssh_private_key_path: str | None = Field(default=None, max_length=1024)
    status: str = Field(default=ServerStatus.ACTIVE.value, max_length=20)
    user_id: UUID = Field(index=True)
    organization_id: UUID = Field(foreign_key="organizations.id", index=True)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)
    deleted_at: datetime | None = Field(default=None)

    @property
    def auth_method(self) -> AuthMethod:
        """Which credential the connection resolver will try first."""
        if self.ssh_private_key_path:
            return AuthMethod.PRIVATE_KEY
        if self.ssh_password:
            return AuthMethod.PASSWORD
        return AuthMethod.NONE
