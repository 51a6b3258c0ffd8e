"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

# Set env before any app imports so the cached settings pick it up
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SSH_HOST", "mgmt.internal")
os.environ.setdefault("SSH_USER", "deploy")
os.environ.setdefault("SSH_PRIVATE_KEY_PATH", "/etc/hostctl/id_ed25519.pem")

# ruff: noqa: E402 - Imports must be after env var setup
import pytest

from src.hostctl.core.config import Settings, get_settings

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings for remote-access tests, independent of the environment."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        ssh_host="mgmt.internal",
        ssh_port=22,
        ssh_user="deploy",
        ssh_password=None,
        ssh_private_key_path="/etc/hostctl/id_ed25519.pem",
        ssh_connect_timeout=2.0,
        ssh_command_timeout=5.0,
        docker_local_socket="unix:///var/run/docker.sock",
        protected_name_marker="hostctl",
    )
