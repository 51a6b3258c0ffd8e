"""Access policies for server records.

Reads and writes of a single record are per-user; listing is scoped to the
organization and the requesting user. They are kept apart so either can change
without touching the other.
"""

from typing import Any
from uuid import UUID

from src.hostctl.core.exceptions import PermissionDeniedError
from src.hostctl.models import Server


def ensure_owner(server: Server, user_id: UUID) -> None:
    """Raise PermissionDeniedError unless user_id registered this server."""
    if server.user_id != user_id:
        raise PermissionDeniedError()


def listing_scope(organization_id: UUID, user_id: UUID) -> list[Any]:
    """Filter clauses for the servers a user may see in a listing."""
    return [
        Server.organization_id == organization_id,
        Server.user_id == user_id,
    ]
