"""Shared enums for models."""

from enum import Enum


class ServerStatus(str, Enum):
    """Operational status of a registered server."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class AuthMethod(str, Enum):
    """SSH authentication method configured for a server."""

    PRIVATE_KEY = "private_key"
    PASSWORD = "password"
    NONE = "none"
