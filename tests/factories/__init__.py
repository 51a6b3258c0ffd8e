"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import ServerFactory, OrganizationFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.organization import OrganizationFactory
from tests.factories.server import ServerFactory

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    # Organization
    "OrganizationFactory",
    # Server
    "ServerFactory",
]
