"""SSH handles over paramiko.

paramiko is blocking, so every dial and command runs in a worker thread. When
the awaiting task is cancelled the client is closed, which tears down the
transport and unblocks the worker. A dial that completes after cancellation
is closed as soon as its worker returns.
"""

import asyncio
import functools
import os
from typing import Any

import paramiko

from src.hostctl.core.config import Settings
from src.hostctl.core.exceptions import (
    AuthenticationFailedError,
    ConnectivityError,
    RemoteCommandError,
)
from src.hostctl.core.logging import get_logger
from src.hostctl.remote.credentials import SSHCredentials

logger = get_logger(__name__)


def new_ssh_client(settings: Settings) -> paramiko.SSHClient:
    """Create an SSHClient with the configured host-key policy."""
    client = paramiko.SSHClient()
    if settings.ssh_strict_host_key_checking:
        client.load_system_host_keys()
        if settings.ssh_known_hosts_path and os.path.exists(settings.ssh_known_hosts_path):
            client.load_host_keys(settings.ssh_known_hosts_path)
        client.set_missing_host_key_policy(paramiko.RejectPolicy())
    else:
        # Unknown host keys are accepted and not pinned.
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    return client


class SSHHandle:
    """An authenticated SSH session to one host.

    A handle belongs to the call that opened it and is closed when that call
    finishes. Use it as an async context manager or call close() explicitly.
    """

    def __init__(
        self,
        client: paramiko.SSHClient,
        credentials: SSHCredentials,
        command_timeout: float,
    ):
        self._client = client
        self.credentials = credentials
        self.command_timeout = command_timeout
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self, command: str) -> str:
        """Run a command and return its stdout.

        Raises:
            RemoteCommandError: The command exited non-zero
            ConnectivityError: The session failed or the command timed out
        """
        if self._closed:
            raise ConnectivityError("ssh handle is closed")

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._run_blocking, command),
                timeout=self.command_timeout,
            )
        except asyncio.CancelledError:
            self.close()
            raise
        except TimeoutError as e:
            self.close()
            raise ConnectivityError(
                f"command timed out after {self.command_timeout}s on {self.credentials.target}"
            ) from e

    def _run_blocking(self, command: str) -> str:
        try:
            _, stdout, stderr = self._client.exec_command(command, timeout=self.command_timeout)
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            exit_status = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise ConnectivityError(f"ssh session failed: {e}") from e

        if exit_status != 0:
            raise RemoteCommandError(command, exit_status, err)
        return out

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._client.close()

    async def __aenter__(self) -> "SSHHandle":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class SSHConnector:
    """Opens SSHHandles, trying key auth and then password auth."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def connect(self, credentials: SSHCredentials) -> SSHHandle:
        if not credentials.username or not credentials.host:
            raise AuthenticationFailedError("user and host are required for ssh connection")
        if not credentials.has_private_key and not credentials.has_password:
            raise AuthenticationFailedError("no ssh password or private key configured")

        key_error: str | None = None
        password_error: str | None = None

        if credentials.has_private_key:
            try:
                client = await self._dial(credentials, key_filename=credentials.private_key_path)
                logger.debug("SSH connected with private key", target=credentials.target)
                return SSHHandle(client, credentials, self.settings.ssh_command_timeout)
            except Exception as e:
                key_error = str(e) or type(e).__name__
                logger.warning(
                    "SSH private key authentication failed",
                    target=credentials.target,
                    error=key_error,
                    password_fallback=credentials.has_password,
                )

        if credentials.has_password:
            try:
                client = await self._dial(credentials, password=credentials.password)
                logger.debug("SSH connected with password", target=credentials.target)
                return SSHHandle(client, credentials, self.settings.ssh_command_timeout)
            except Exception as e:
                password_error = str(e) or type(e).__name__
                logger.warning(
                    "SSH password authentication failed",
                    target=credentials.target,
                    error=password_error,
                )

        raise AuthenticationFailedError(key_error=key_error, password_error=password_error)

    async def _dial(self, credentials: SSHCredentials, **auth: Any) -> paramiko.SSHClient:
        client = new_ssh_client(self.settings)
        timeout = self.settings.ssh_connect_timeout
        task = asyncio.ensure_future(
            asyncio.to_thread(
                client.connect,
                hostname=credentials.host,
                port=credentials.port,
                username=credentials.username,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
                look_for_keys=False,
                allow_agent=False,
                **auth,
            )
        )
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # close() is a no-op until the transport exists, so a dial that
            # completes after cancellation is closed when the worker returns
            client.close()
            task.add_done_callback(functools.partial(_close_late_dial, client))
            raise
        except BaseException:
            client.close()
            raise
        return client


def _close_late_dial(client: paramiko.SSHClient, task: "asyncio.Future[None]") -> None:
    if not task.cancelled():
        # Consume the dial error; nobody is awaiting it any more
        task.exception()
    client.close()
