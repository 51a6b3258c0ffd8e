"""Resolves an execution context into live SSH and Docker handles."""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from docker import DockerClient

from src.hostctl.core.config import Settings
from src.hostctl.core.exceptions import (
    EngineUnavailableError,
    HostctlError,
    SSHUnreachableError,
)
from src.hostctl.core.logging import get_logger
from src.hostctl.remote.context import ExecutionContext
from src.hostctl.remote.credentials import SSHCredentials
from src.hostctl.remote.docker_client import build_local_docker_client, build_ssh_docker_client
from src.hostctl.remote.ssh import SSHConnector, SSHHandle

logger = get_logger(__name__)

T = TypeVar("T")


async def _build_in_thread(factory: Callable[..., T], *args: Any) -> T:
    """Run a blocking client factory in a thread.

    If the caller is cancelled before the factory returns, the client it
    eventually produces is closed instead of leaking.
    """
    task = asyncio.ensure_future(asyncio.to_thread(factory, *args))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        task.add_done_callback(_close_orphan)
        raise


def _close_orphan(task: "asyncio.Future[Any]") -> None:
    if task.cancelled() or task.exception() is not None:
        return
    task.result().close()


class ConnectionResolver:
    """Builds per-operation connections to the target host.

    Nothing is pooled: every handle is opened for one operation and closed when
    it finishes.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._connector = SSHConnector(settings)

    def credentials_for(self, ctx: ExecutionContext) -> SSHCredentials:
        if ctx.server is not None:
            return SSHCredentials.from_server(ctx.server)
        return SSHCredentials.from_settings(self.settings)

    async def connect(self, credentials: SSHCredentials) -> SSHHandle:
        return await self._connector.connect(credentials)

    @asynccontextmanager
    async def ssh(self, ctx: ExecutionContext) -> AsyncIterator[SSHHandle]:
        handle = await self.connect(self.credentials_for(ctx))
        try:
            yield handle
        finally:
            handle.close()

    async def probe(self, credentials: SSHCredentials) -> None:
        """Check that the host accepts these credentials, then disconnect."""
        try:
            handle = await self.connect(credentials)
        except HostctlError as e:
            logger.warning("SSH reachability probe failed", target=credentials.target, error=str(e))
            raise SSHUnreachableError(f"ssh connection to server failed: {e.detail}") from e
        handle.close()
        logger.debug("SSH reachability probe succeeded", target=credentials.target)

    @asynccontextmanager
    async def docker(self, ctx: ExecutionContext) -> AsyncIterator[DockerClient]:
        client = await self._engine_client(ctx)
        try:
            yield client
        finally:
            await asyncio.to_thread(client.close)

    async def _engine_client(self, ctx: ExecutionContext) -> DockerClient:
        credentials = self.credentials_for(ctx)
        try:
            return await _build_in_thread(build_ssh_docker_client, credentials, self.settings)
        except Exception as e:
            if ctx.explicit_target:
                logger.error(
                    "Container engine unreachable on target server",
                    target=credentials.target,
                    error=str(e),
                )
                raise EngineUnavailableError(
                    f"container engine unavailable on {credentials.target}: {e}"
                ) from e
            logger.warning(
                "Container engine unreachable over ssh, using local socket",
                target=credentials.target,
                socket=self.settings.docker_local_socket,
                error=str(e),
            )

        try:
            return await _build_in_thread(build_local_docker_client, self.settings)
        except Exception as e:
            raise EngineUnavailableError(f"local container engine unavailable: {e}") from e
