"""Basic facts about the resolved target host, read over SSH."""

from src.hostctl.remote import ConnectionResolver, ExecutionContext
from src.hostctl.schemas import HostInfo


class HostService:
    def __init__(self, resolver: ConnectionResolver):
        self.resolver = resolver

    async def info(self, ctx: ExecutionContext) -> HostInfo:
        """Run a few read-only commands on one SSH session."""
        async with self.resolver.ssh(ctx) as handle:
            hostname = await handle.run("hostname")
            kernel = await handle.run("uname -sr")
            uptime = await handle.run("uptime")
            target = handle.credentials.target

        return HostInfo(
            target=target,
            hostname=hostname.strip(),
            kernel=kernel.strip(),
            uptime=uptime.strip(),
        )
