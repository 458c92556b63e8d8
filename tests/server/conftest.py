"""Shared pytest fixtures for server tests."""

from pathlib import Path

import jwt
import pytest

from folderhub.server.config import AuthConfig, ServerConfig
from folderhub.server.db.session import DatabaseSessionManager
from folderhub.server.services.aggregator import FileAggregator
from folderhub.server.services.coordination import LocalCoordinationService
from folderhub.server.services.events import UserEventHandler
from folderhub.server.services.folder import FolderService
from folderhub.server.services.share import FolderShareService
from folderhub.server.services.user import UserDirectory
from tests.conftest import (
    OTHER_EMAIL,
    OTHER_ID,
    OWNER_EMAIL,
    OWNER_ID,
    THIRD_EMAIL,
    THIRD_ID,
)
from tests.server.services.fakes import FakeFileService, FakeUserService

TEST_SECRET = "test-secret-key"


@pytest.fixture
def file_service() -> FakeFileService:
    return FakeFileService()


@pytest.fixture
def user_service() -> FakeUserService:
    service = FakeUserService()
    service.add_user(OWNER_ID, OWNER_EMAIL)
    service.add_user(OTHER_ID, OTHER_EMAIL)
    service.add_user(THIRD_ID, THIRD_EMAIL)
    return service


@pytest.fixture
def coordination_service() -> LocalCoordinationService:
    return LocalCoordinationService()


@pytest.fixture
def user_directory(
    user_service: FakeUserService, coordination_service: LocalCoordinationService
) -> UserDirectory:
    return UserDirectory(user_service, coordination_service, cache_ttl=60)


@pytest.fixture
def folder_service(
    session_manager: DatabaseSessionManager,
    file_service: FakeFileService,
    user_directory: UserDirectory,
    coordination_service: LocalCoordinationService,
) -> FolderService:
    return FolderService(
        session_manager,
        FileAggregator(file_service),
        user_directory,
        coordination_service,
    )


@pytest.fixture
def share_service(
    session_manager: DatabaseSessionManager,
    user_directory: UserDirectory,
    coordination_service: LocalCoordinationService,
) -> FolderShareService:
    return FolderShareService(session_manager, user_directory, coordination_service)


@pytest.fixture
def event_handler(
    session_manager: DatabaseSessionManager,
    user_directory: UserDirectory,
    coordination_service: LocalCoordinationService,
) -> UserEventHandler:
    return UserEventHandler(session_manager, user_directory, coordination_service)


@pytest.fixture
def server_config(tmp_path: Path) -> ServerConfig:
    """Create a ServerConfig object for testing."""
    return ServerConfig(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'folderhub.db'}",
        trace_log_file=str(tmp_path / "trace.log"),
        auth=AuthConfig(secret_key=TEST_SECRET),
    )


def make_auth_headers(user_id: int) -> dict[str, str]:
    token = jwt.encode({"userId": user_id}, TEST_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="auth_headers")
def auth_headers_fixture() -> dict[str, str]:
    """Bearer token headers for the folder owner."""
    return make_auth_headers(OWNER_ID)
