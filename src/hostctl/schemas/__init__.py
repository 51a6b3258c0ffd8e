from src.hostctl.schemas.container import (
    ContainerAction,
    ContainerActionResult,
    ContainerSummary,
    HostInfo,
)
from src.hostctl.schemas.pagination import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    VALID_SORT_FIELDS,
    ServerQueryParams,
)
from src.hostctl.schemas.server import (
    PaginationMeta,
    ServerCreate,
    ServerCreateResponse,
    ServerListResponse,
    ServerRead,
    ServerStatusUpdate,
    ServerUpdate,
)

__all__ = [
    # Containers
    "ContainerAction",
    "ContainerActionResult",
    "ContainerSummary",
    "HostInfo",
    # Listing
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "VALID_SORT_FIELDS",
    "ServerQueryParams",
    # Server
    "PaginationMeta",
    "ServerCreate",
    "ServerCreateResponse",
    "ServerListResponse",
    "ServerRead",
    "ServerStatusUpdate",
    "ServerUpdate",
]
