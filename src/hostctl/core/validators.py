"""Structural validation for server fields.

Every check raises InvalidFieldError naming the offending field. The checks are
pure: they never touch storage or the network.
"""

import ipaddress
import re
from pathlib import PurePosixPath, PureWindowsPath
from typing import Final
from uuid import UUID

from src.hostctl.core.exceptions import InvalidFieldError
from src.hostctl.models.enums import ServerStatus

MIN_NAME_LENGTH: Final[int] = 2
MAX_NAME_LENGTH: Final[int] = 255
MIN_PORT: Final[int] = 1
MAX_PORT: Final[int] = 65535
ALLOWED_KEY_EXTENSIONS: Final[frozenset[str]] = frozenset({".pem", ".key", ".ppk"})

_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9\-_\s]+$")
_HOSTNAME_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$"
)
_USERNAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9\-_]+$")


def _is_set(value: str | None) -> bool:
    return value is not None and value != ""


def validate_server_id(value: str | UUID | None) -> UUID:
    """Parse a server identifier, raising InvalidFieldError if it is missing or malformed."""
    if isinstance(value, UUID):
        return value
    if not value:
        raise InvalidFieldError("id", "server id is required")
    try:
        return UUID(value)
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidFieldError("id", "invalid server id") from e


def validate_name(name: str | None) -> str:
    if not name:
        raise InvalidFieldError("name", "server name is required")
    if len(name) < MIN_NAME_LENGTH:
        raise InvalidFieldError("name", "server name too short")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidFieldError("name", "server name too long")
    if not _NAME_PATTERN.match(name):
        raise InvalidFieldError("name", "invalid server name")
    return name


def validate_host(host: str | None) -> str:
    """Accept an IPv4/IPv6 literal or an RFC 1123 hostname."""
    if not host:
        raise InvalidFieldError("host", "host is required")
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        pass
    if not _HOSTNAME_PATTERN.match(host):
        raise InvalidFieldError("host", "invalid host")
    return host


def validate_port(port: int | None) -> int:
    if port is None or port <= 0:
        raise InvalidFieldError("port", "port is required")
    if port < MIN_PORT or port > MAX_PORT:
        raise InvalidFieldError("port", "invalid port")
    return port


def validate_username(username: str | None) -> str:
    if not username:
        raise InvalidFieldError("username", "username is required")
    if not _USERNAME_PATTERN.match(username):
        raise InvalidFieldError("username", "invalid username")
    return username


def validate_private_key_path(path: str) -> str:
    """Key paths must be absolute; an extension, if present, must be a known key type."""
    posix, windows = PurePosixPath(path), PureWindowsPath(path)
    if not (posix.is_absolute() or windows.is_absolute()):
        raise InvalidFieldError("ssh_private_key_path", "invalid ssh private key path")
    suffix = posix.suffix
    if suffix and suffix.lower() not in ALLOWED_KEY_EXTENSIONS:
        raise InvalidFieldError("ssh_private_key_path", "invalid ssh private key path")
    return path


def validate_ssh_auth(password: str | None, private_key_path: str | None) -> None:
    """Exactly one of password / private key path must be provided."""
    has_password = _is_set(password)
    has_key = _is_set(private_key_path)

    if not has_password and not has_key:
        raise InvalidFieldError(
            "ssh_auth", "either ssh_password or ssh_private_key_path is required"
        )
    if has_password and has_key:
        raise InvalidFieldError(
            "ssh_auth", "provide either ssh_password or ssh_private_key_path, not both"
        )
    if has_key:
        validate_private_key_path(private_key_path)  # type: ignore[arg-type]


def validate_update_auth(password: str | None, private_key_path: str | None) -> None:
    """After an update is merged, at most one credential may remain set."""
    if _is_set(password) and _is_set(private_key_path):
        raise InvalidFieldError(
            "ssh_auth", "provide either ssh_password or ssh_private_key_path, not both"
        )
    if _is_set(private_key_path):
        validate_private_key_path(private_key_path)  # type: ignore[arg-type]


def validate_status(value: str | ServerStatus | None) -> ServerStatus:
    if value is None or value == "":
        raise InvalidFieldError("status", "status is required")
    try:
        return ServerStatus(value)
    except ValueError as e:
        raise InvalidFieldError("status", "invalid status") from e
