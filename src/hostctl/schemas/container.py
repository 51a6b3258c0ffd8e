"""Container schemas for API responses."""

from typing import Literal

from pydantic import BaseModel

ContainerAction = Literal["start", "stop", "restart", "remove"]


class ContainerSummary(BaseModel):
    id: str
    name: str
    image: str
    status: str
    protected: bool = False


class ContainerActionResult(BaseModel):
    """Outcome of a mutating container operation.

    skipped means the container belongs to the platform itself and was left alone.
    """

    status: Literal["success", "skipped"]
    message: str
    container_id: str


class HostInfo(BaseModel):
    target: str
    hostname: str
    kernel: str
    uptime: str
