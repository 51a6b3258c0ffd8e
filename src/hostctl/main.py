from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.hostctl.api.middlewares import setup_middlewares
from src.hostctl.api.v1.router import api_router
from src.hostctl.core.config import get_settings
from src.hostctl.core.db import dispose_engine
from src.hostctl.core.exceptions import setup_exception_handlers
from src.hostctl.core.health import setup_health_endpoint
from src.hostctl.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    yield

    logger.info("Closing connections...")
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "servers", "description": "Server registry"},
    {"name": "containers", "description": "Container control on the target host"},
    {"name": "host", "description": "Target host information"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Remote server registry and agentless host control over SSH",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)
    setup_middlewares(app, settings)
    app.include_router(api_router)
    setup_health_endpoint(app)

    return app


app = create_app()
