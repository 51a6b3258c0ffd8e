"""Server registry endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import ValidationError

from src.hostctl.api.dependencies import CurrentIdentity, ServerServiceDep
from src.hostctl.schemas import (
    ServerCreate,
    ServerCreateResponse,
    ServerListResponse,
    ServerQueryParams,
    ServerRead,
    ServerStatusUpdate,
    ServerUpdate,
)

router = APIRouter(prefix="/servers", tags=["servers"])


@router.get(
    "",
    response_model=ServerListResponse,
    summary="List servers",
    description="List the caller's servers in their organization with search, sorting and paging.",
    responses={
        200: {"description": "One page of servers"},
        400: {"description": "Invalid sort field"},
    },
)
async def list_servers(
    identity: CurrentIdentity,
    server_service: ServerServiceDep,
    page: Annotated[str | None, Query(description="1-based page number")] = None,
    page_size: Annotated[str | None, Query(description="Items per page (1-100)")] = None,
    search: Annotated[str | None, Query(description="Substring match on name, host, username, description")] = None,
    sort_by: Annotated[str | None, Query(description="name, host, port, username, created_at, updated_at")] = None,
    sort_order: Annotated[str | None, Query(description="asc or desc")] = None,
) -> ServerListResponse:
    """List servers visible to the caller."""
    try:
        query = ServerQueryParams(
            page=page,
            page_size=page_size,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors()[0]["msg"].removeprefix("Value error, "),
        ) from e

    return await server_service.list(identity.organization_id, identity.user_id, query)


@router.post(
    "",
    response_model=ServerCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register server",
    description="Register a server. Its SSH credentials are verified before it is stored.",
    responses={
        201: {"description": "Server registered"},
        400: {"description": "Invalid fields or host unreachable over SSH"},
        404: {"description": "Organization not found"},
        409: {"description": "Name or host:port already registered"},
    },
)
async def create_server(
    request: ServerCreate,
    identity: CurrentIdentity,
    server_service: ServerServiceDep,
) -> ServerCreateResponse:
    """Register a new server."""
    server = await server_service.create(request, identity.user_id, identity.organization_id)
    return ServerCreateResponse(id=server.id)


@router.get(
    "/{server_id}",
    response_model=ServerRead,
    summary="Get server",
    responses={
        200: {"description": "Server details"},
        404: {"description": "Server not found"},
    },
)
async def get_server(
    server_id: str,
    identity: CurrentIdentity,
    server_service: ServerServiceDep,
) -> ServerRead:
    server = await server_service.get(server_id, identity.user_id)
    return ServerRead.model_validate(server)


@router.patch(
    "/{server_id}",
    response_model=ServerRead,
    summary="Update server",
    description="Partially update a server. Omitted fields are unchanged.",
    responses={
        200: {"description": "Updated server"},
        400: {"description": "Invalid fields"},
        404: {"description": "Server not found"},
        409: {"description": "Name or host:port already registered"},
    },
)
async def update_server(
    server_id: str,
    request: ServerUpdate,
    identity: CurrentIdentity,
    server_service: ServerServiceDep,
) -> ServerRead:
    server = await server_service.update(server_id, request, identity.user_id)
    return ServerRead.model_validate(server)


@router.patch(
    "/{server_id}/status",
    response_model=ServerRead,
    summary="Change server status",
    responses={
        200: {"description": "Server with its new status"},
        400: {"description": "Invalid status"},
        404: {"description": "Server not found"},
    },
)
async def update_server_status(
    server_id: str,
    request: ServerStatusUpdate,
    identity: CurrentIdentity,
    server_service: ServerServiceDep,
) -> ServerRead:
    server = await server_service.update_status(server_id, request.status, identity.user_id)
    return ServerRead.model_validate(server)


@router.delete(
    "/{server_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete server",
    responses={
        204: {"description": "Server deleted"},
        404: {"description": "Server not found"},
    },
)
async def delete_server(
    server_id: str,
    identity: CurrentIdentity,
    server_service: ServerServiceDep,
) -> Response:
    await server_service.delete(server_id, identity.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
