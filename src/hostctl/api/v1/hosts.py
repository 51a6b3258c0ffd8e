"""Target host endpoints."""

from fastapi import APIRouter

from src.hostctl.api.dependencies import HostServiceDep, TargetContext
from src.hostctl.schemas import HostInfo

router = APIRouter(prefix="/host", tags=["host"])


@router.get(
    "/info",
    response_model=HostInfo,
    summary="Describe the target host",
    responses={
        200: {"description": "Hostname, kernel and uptime"},
        404: {"description": "Target server not found"},
        502: {"description": "SSH connection or command failed"},
    },
)
async def host_info(ctx: TargetContext, host_service: HostServiceDep) -> HostInfo:
    return await host_service.info(ctx)
