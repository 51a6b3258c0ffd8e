from src.hostctl.services.container_service import ContainerService
from src.hostctl.services.host_service import HostService
from src.hostctl.services.policies import ensure_owner, listing_scope
from src.hostctl.services.server_service import ServerService

__all__ = [
    "ContainerService",
    "HostService",
    "ServerService",
    "ensure_owner",
    "listing_scope",
]
