"""Execution context threaded through every remote operation."""

from dataclasses import dataclass

from src.hostctl.models import Server


@dataclass(frozen=True)
class ExecutionContext:
    """What a single inbound operation runs against.

    Attributes:
        server: The record the caller targeted, already resolved and
            ownership-checked by the registry. None means the platform's own
            management host.
        explicit_target: True when the caller named a target id
    """

    server: Server | None = None
    explicit_target: bool = False

    @classmethod
    def for_server(cls, server: Server | None) -> "ExecutionContext":
        return cls(server=server, explicit_target=server is not None)
