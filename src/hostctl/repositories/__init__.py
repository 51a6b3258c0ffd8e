"""Repository layer - data access abstraction."""

from src.hostctl.repositories.base import BaseRepository
from src.hostctl.repositories.organization import OrganizationRepository
from src.hostctl.repositories.server import ServerRepository

__all__ = [
    "BaseRepository",
    "OrganizationRepository",
    "ServerRepository",
]
