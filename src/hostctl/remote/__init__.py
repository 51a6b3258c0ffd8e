from src.hostctl.remote.context import ExecutionContext
from src.hostctl.remote.credentials import SSHCredentials
from src.hostctl.remote.guard import display_name, is_protected
from src.hostctl.remote.resolver import ConnectionResolver
from src.hostctl.remote.ssh import SSHConnector, SSHHandle

__all__ = [
    "ConnectionResolver",
    "ExecutionContext",
    "SSHConnector",
    "SSHCredentials",
    "SSHHandle",
    "display_name",
    "is_protected",
]
