"""Container control on the resolved target host."""

import asyncio
from collections.abc import Callable
from typing import Any

from docker import DockerClient
from docker.errors import APIError, NotFound
from docker.models.containers import Container

from src.hostctl.core.exceptions import ContainerNotFoundError, EngineUnavailableError
from src.hostctl.core.logging import get_logger
from src.hostctl.remote import ConnectionResolver, ExecutionContext, display_name, is_protected
from src.hostctl.schemas import ContainerAction, ContainerActionResult, ContainerSummary

logger = get_logger(__name__)

_ACTIONS: dict[str, Callable[[Container], Any]] = {
    "start": lambda c: c.start(),
    "stop": lambda c: c.stop(),
    "restart": lambda c: c.restart(),
    "remove": lambda c: c.remove(force=True),
}


class ContainerService:
    """Lists and controls containers through the connection resolver.

    Each call opens one engine client and closes it before returning.
    Containers whose name carries the protected marker are never mutated.
    """

    def __init__(self, resolver: ConnectionResolver):
        self.resolver = resolver
        self.marker = resolver.settings.protected_name_marker

    async def list_containers(
        self, ctx: ExecutionContext, include_stopped: bool = True
    ) -> list[ContainerSummary]:
        async with self.resolver.docker(ctx) as client:
            try:
                containers = await asyncio.to_thread(client.containers.list, all=include_stopped)
            except APIError as e:
                raise EngineUnavailableError(f"container engine error: {e}") from e
            return [self._summary(c) for c in containers]

    def _summary(self, container: Container) -> ContainerSummary:
        tags = container.image.tags if container.image is not None else []
        return ContainerSummary(
            id=container.short_id,
            name=display_name(container.name),
            image=tags[0] if tags else container.attrs.get("Config", {}).get("Image", ""),
            status=container.status,
            protected=is_protected(container.name, self.marker),
        )

    async def start(self, ctx: ExecutionContext, container_id: str) -> ContainerActionResult:
        return await self._apply(ctx, container_id, "start")

    async def stop(self, ctx: ExecutionContext, container_id: str) -> ContainerActionResult:
        return await self._apply(ctx, container_id, "stop")

    async def restart(self, ctx: ExecutionContext, container_id: str) -> ContainerActionResult:
        return await self._apply(ctx, container_id, "restart")

    async def remove(self, ctx: ExecutionContext, container_id: str) -> ContainerActionResult:
        return await self._apply(ctx, container_id, "remove")

    async def apply(
        self, ctx: ExecutionContext, container_id: str, action: ContainerAction
    ) -> ContainerActionResult:
        """Dispatch an action by name."""
        return await self._apply(ctx, container_id, action)

    async def _apply(
        self, ctx: ExecutionContext, container_id: str, action: str
    ) -> ContainerActionResult:
        async with self.resolver.docker(ctx) as client:
            container = await self._get(client, container_id)
            name = display_name(container.name)

            if is_protected(name, self.marker):
                logger.info(
                    "Skipping action on protected container",
                    action=action,
                    container_id=container_id,
                    container_name=name,
                )
                return ContainerActionResult(
                    status="skipped",
                    message=f"{name} is a platform container and was not {_past(action)}",
                    container_id=container_id,
                )

            try:
                await asyncio.to_thread(_ACTIONS[action], container)
            except NotFound as e:
                raise ContainerNotFoundError(f"container {container_id} not found") from e
            except APIError as e:
                raise EngineUnavailableError(f"container engine error: {e}") from e

        logger.info("Container action applied", action=action, container_id=container_id)
        return ContainerActionResult(
            status="success",
            message=f"container {name} {_past(action)}",
            container_id=container_id,
        )

    async def _get(self, client: DockerClient, container_id: str) -> Container:
        try:
            return await asyncio.to_thread(client.containers.get, container_id)
        except NotFound as e:
            raise ContainerNotFoundError(f"container {container_id} not found") from e
        except APIError as e:
            raise EngineUnavailableError(f"container engine error: {e}") from e


def _past(action: str) -> str:
    return {"start": "started", "stop": "stopped", "restart": "restarted", "remove": "removed"}[
        action
    ]
