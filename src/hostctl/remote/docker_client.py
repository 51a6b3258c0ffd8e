"""Docker engine clients over SSH (paramiko) or the local socket.

The Docker SDK's own SSH adapter reads ~/.ssh/config and only knows key auth.
The adapter here takes credentials directly and applies the same key-then-
password order as SSHConnector.
"""

from typing import Any

import paramiko
from docker import APIClient, DockerClient
from docker.transport import SSHHTTPAdapter

from src.hostctl.core.config import Settings
from src.hostctl.core.exceptions import AuthenticationFailedError
from src.hostctl.core.logging import get_logger
from src.hostctl.remote.credentials import SSHCredentials
from src.hostctl.remote.ssh import new_ssh_client

logger = get_logger(__name__)

# Any version works here; the real one is negotiated once the adapter is mounted
_BOOTSTRAP_API_VERSION = "1.41"
_SSH_MOUNT = "http+docker://ssh"


def ssh_url(credentials: SSHCredentials) -> str:
    host = f"[{credentials.host}]" if ":" in credentials.host else credentials.host
    return f"ssh://{credentials.username}@{host}:{credentials.port}"


class CredentialSSHHTTPAdapter(SSHHTTPAdapter):
    """SSHHTTPAdapter that authenticates with explicit credentials.

    Pool sizes stay at 1: every pooled connection is an SSH channel running
    `docker system dial-stdio`, and extra channels hit the server's MaxSessions.
    """

    def __init__(self, credentials: SSHCredentials, settings: Settings):
        self.credentials = credentials
        self.settings = settings
        super().__init__(
            base_url=ssh_url(credentials),
            timeout=settings.docker_timeout,
            pool_connections=1,
            max_pool_size=1,
            shell_out=False,
        )

    def _create_paramiko_client(self, base_url: str) -> None:
        self.ssh_client = new_ssh_client(self.settings)
        self.ssh_params = {
            "hostname": self.credentials.host,
            "port": self.credentials.port,
            "username": self.credentials.username,
            "timeout": self.settings.ssh_connect_timeout,
            "banner_timeout": self.settings.ssh_connect_timeout,
            "auth_timeout": self.settings.ssh_connect_timeout,
            "look_for_keys": False,
            "allow_agent": False,
        }

    def _auth_attempts(self) -> list[tuple[str, dict[str, Any]]]:
        attempts = []
        if self.credentials.has_private_key:
            attempts.append(("key", {"key_filename": self.credentials.private_key_path}))
        if self.credentials.has_password:
            attempts.append(("password", {"password": self.credentials.password}))
        return attempts

    def _connect(self) -> None:
        if not self.ssh_client:
            return

        attempts = self._auth_attempts()
        if not attempts:
            raise AuthenticationFailedError("no ssh password or private key configured")

        errors: dict[str, str] = {}
        for method, auth in attempts:
            try:
                self.ssh_client.connect(**self.ssh_params, **auth)
                return
            except (paramiko.SSHException, OSError) as e:
                errors[method] = str(e) or type(e).__name__
                self.ssh_client.close()
                self.ssh_client = new_ssh_client(self.settings)

        raise AuthenticationFailedError(
            key_error=errors.get("key"), password_error=errors.get("password")
        )


class CredentialSSHAPIClient(APIClient):
    """APIClient that talks to a remote engine through CredentialSSHHTTPAdapter."""

    def __init__(self, credentials: SSHCredentials, settings: Settings):
        # Dummy URL so APIClient does not build its own SSH adapter
        super().__init__(
            base_url="tcp://127.0.0.1:2375",
            timeout=settings.docker_timeout,
            version=_BOOTSTRAP_API_VERSION,
        )
        try:
            self._ssh_adapter = CredentialSSHHTTPAdapter(credentials, settings)
            self.mount(_SSH_MOUNT, self._ssh_adapter)
            self.base_url = _SSH_MOUNT
            self._version = self._retrieve_server_version()
        except Exception:
            self.close()
            raise


def build_ssh_docker_client(credentials: SSHCredentials, settings: Settings) -> DockerClient:
    """Connect to the engine on a remote host over SSH. Blocking."""
    if not credentials.username or not credentials.host:
        raise AuthenticationFailedError("user and host are required for ssh connection")

    api_client = CredentialSSHAPIClient(credentials, settings)
    # DockerClient.__init__ would build a second APIClient
    client = DockerClient.__new__(DockerClient)
    client.api = api_client
    logger.debug("Docker client connected over ssh", target=credentials.target)
    return client


def build_local_docker_client(settings: Settings) -> DockerClient:
    """Connect to the engine on the local socket. Blocking."""
    return DockerClient(base_url=settings.docker_local_socket, timeout=settings.docker_timeout)
