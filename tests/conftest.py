"""Root conftest for all tests."""

from typing import Awaitable, Callable

from aiohttp.test_utils import TestClient
from aiohttp.web import Application

# Register database fixtures as a plugin
pytest_plugins = ["tests.plugins.db_fixtures"]

# Shared test users known to the fake user service
OWNER_ID = 1
OWNER_EMAIL = "alice@example.com"
OTHER_ID = 2
OTHER_EMAIL = "bob@example.com"
THIRD_ID = 3
THIRD_EMAIL = "carol@example.com"

# Type alias for the aiohttp_client fixture - shared across all tests
AiohttpClient = Callable[[Application], Awaitable[TestClient]]
