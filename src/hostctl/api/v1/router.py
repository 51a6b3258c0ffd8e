from fastapi import APIRouter

from src.hostctl.api.v1 import containers, hosts, servers

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(servers.router)
api_router.include_router(containers.router)
api_router.include_router(hosts.router)
