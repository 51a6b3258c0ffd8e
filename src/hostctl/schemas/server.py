"""Server schemas for API request/response."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from src.hostctl.core.validators import (
    validate_host,
    validate_name,
    validate_port,
    validate_ssh_auth,
    validate_status,
    validate_update_auth,
    validate_username,
)
from src.hostctl.models.enums import AuthMethod, ServerStatus


class ServerCreate(BaseModel):
    """Schema for registering a server.

    Exactly one of ssh_password / ssh_private_key_path must be given.
    """

    name: str
    description: str = ""
    host: str
    port: int = 22
    username: str
    ssh_password: str | None = None
    ssh_private_key_path: str | None = None
    status: ServerStatus = ServerStatus.ACTIVE

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return validate_name(v)

    @field_validator("host")
    @classmethod
    def check_host(cls, v: str) -> str:
        return validate_host(v.strip())

    @field_validator("port")
    @classmethod
    def check_port(cls, v: int) -> int:
        return validate_port(v)

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def check_auth(self) -> "ServerCreate":
        validate_ssh_auth(self.ssh_password, self.ssh_private_key_path)
        return self


class ServerUpdate(BaseModel):
    """Schema for a partial server update. Omitted fields are left unchanged.

    Setting a credential to an empty string clears it.
    """

    name: str | None = None
    description: str | None = None
    host: str | None = None
    port: int | None = None
    username: str | None = None
    ssh_password: str | None = None
    ssh_private_key_path: str | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        return validate_name(v) if v is not None else None

    @field_validator("host")
    @classmethod
    def check_host(cls, v: str | None) -> str | None:
        return validate_host(v.strip()) if v is not None else None

    @field_validator("port")
    @classmethod
    def check_port(cls, v: int | None) -> int | None:
        return validate_port(v) if v is not None else None

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str | None) -> str | None:
        return validate_username(v) if v is not None else None

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @model_validator(mode="after")
    def check_auth(self) -> "ServerUpdate":
        validate_update_auth(self.ssh_password, self.ssh_private_key_path)
        return self

    def changed_fields(self) -> set[str]:
        """Names of fields explicitly provided in this update."""
        return {name for name in self.model_fields_set if getattr(self, name) is not None}


class ServerStatusUpdate(BaseModel):
    """Schema for the narrow status-change operation."""

    status: ServerStatus

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, v: str | ServerStatus) -> ServerStatus:
        return validate_status(v)


class ServerRead(BaseModel):
    """Server as returned to clients. Credentials are never included."""

    id: UUID
    name: str
    description: str
    host: str
    port: int
    username: str
    status: str
    auth_method: AuthMethod
    user_id: UUID
    organization_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ServerCreateResponse(BaseModel):
    id: UUID


class PaginationMeta(BaseModel):
    current_page: int
    page_size: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool


class ServerListResponse(BaseModel):
    servers: list[ServerRead] = Field(default_factory=list)
    pagination: PaginationMeta
