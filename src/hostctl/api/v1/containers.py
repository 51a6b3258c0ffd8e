"""Container control endpoints.

The target host comes from the optional X-Server-ID header; without it the
platform's default host is used.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from src.hostctl.api.dependencies import ContainerServiceDep, TargetContext
from src.hostctl.schemas import ContainerAction, ContainerActionResult, ContainerSummary

router = APIRouter(prefix="/containers", tags=["containers"])


@router.get(
    "",
    response_model=list[ContainerSummary],
    summary="List containers",
    responses={
        200: {"description": "Containers on the target host"},
        404: {"description": "Target server not found"},
        502: {"description": "Container engine unreachable"},
    },
)
async def list_containers(
    ctx: TargetContext,
    container_service: ContainerServiceDep,
    include_stopped: Annotated[
        bool, Query(alias="all", description="Include containers that are not running")
    ] = True,
) -> list[ContainerSummary]:
    return await container_service.list_containers(ctx, include_stopped=include_stopped)


@router.post(
    "/{container_id}/{action}",
    response_model=ContainerActionResult,
    summary="Start, stop, restart or remove a container",
    description="Platform containers are never touched; the result status is then 'skipped'.",
    responses={
        200: {"description": "Action applied or skipped"},
        404: {"description": "Target server or container not found"},
        502: {"description": "Container engine unreachable"},
    },
)
async def container_action(
    container_id: str,
    action: ContainerAction,
    ctx: TargetContext,
    container_service: ContainerServiceDep,
) -> ContainerActionResult:
    return await container_service.apply(ctx, container_id, action)
