"""SSH credentials resolved for a single remote operation."""

from dataclasses import dataclass

from src.hostctl.core.config import Settings
from src.hostctl.models import Server


@dataclass(frozen=True)
class SSHCredentials:
    """Connection facts for one SSH dial.

    Attributes:
        host: Hostname or IP address
        port: SSH port
        username: Login user
        password: Password, if password auth is configured
        private_key_path: Absolute path to a private key file, if key auth is configured
    """

    host: str
    port: int
    username: str
    password: str | None = None
    private_key_path: str | None = None

    @classmethod
    def from_server(cls, server: Server) -> "SSHCredentials":
        return cls(
            host=server.host,
            port=server.port,
            username=server.username,
            password=server.ssh_password or None,
            private_key_path=server.ssh_private_key_path or None,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SSHCredentials":
        """Credentials for the platform's own management host."""
        return cls(
            host=settings.ssh_host,
            port=settings.ssh_port,
            username=settings.ssh_user,
            password=settings.ssh_password or None,
            private_key_path=settings.ssh_private_key_path or None,
        )

    @property
    def has_password(self) -> bool:
        return bool(self.password)

    @property
    def has_private_key(self) -> bool:
        return bool(self.private_key_path)

    @property
    def target(self) -> str:
        """user@host:port, safe to log."""
        return f"{self.username}@{self.host}:{self.port}"

    def __repr__(self) -> str:
        return (
            f"SSHCredentials(target={self.target!r}, "
            f"password={'***' if self.has_password else None}, "
            f"private_key_path={self.private_key_path!r})"
        )
