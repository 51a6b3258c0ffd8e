"""Model exports.

Import from here: `from src.hostctl.models import Server, Organization`
"""

from src.hostctl.models.enums import AuthMethod, ServerStatus
from src.hostctl.models.organization import Organization
from src.hostctl.models.server import Server

__all__ = [
    # Enums
    "AuthMethod",
    "ServerStatus",
    # Tables
    "Organization",
    "Server",
]
