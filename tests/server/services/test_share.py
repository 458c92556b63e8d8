import asyncio

import pytest

from folderhub.models.base import ShareStatus
from folderhub.server.db.models.folder import now_ms
from folderhub.server.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidRequestException,
    NotFoundException,
)
from folderhub.server.services.folder import FolderService
from folderhub.server.services.share import FolderShareService
from tests.conftest import (
    OTHER_EMAIL,
    OTHER_ID,
    OWNER_EMAIL,
    OWNER_ID,
    THIRD_EMAIL,
    THIRD_ID,
)
from tests.server.services.fakes import FakeUserService


@pytest.fixture
async def folder_id(folder_service: FolderService) -> int:
    folder = await folder_service.create_folder(OWNER_ID, "Shared")
    return folder.id


async def test_share_starts_pending(
    share_service: FolderShareService, folder_id: int
) -> None:
    share = await share_service.share_folder(
        folder_id, OWNER_ID, OTHER_EMAIL, permissions="WRITE", message="Have a look"
    )

    assert share.status == ShareStatus.PENDING.value
    assert share.permissions == "write"
    assert share.folder_name == "Shared"
    assert share.owner_email == OWNER_EMAIL
    assert share.target_user_email == OTHER_EMAIL
    assert share.responded_at is None
    assert not share.requires_password

    # Not accessible until accepted
    assert not await share_service.has_access(folder_id, OTHER_ID)
    assert await share_service.get_permission(folder_id, OTHER_ID) == "none"
    pending = await share_service.get_pending_shares(OTHER_ID)
    assert [s.id for s in pending] == [share.id]


async def test_share_without_approval(
    share_service: FolderShareService, folder_id: int
) -> None:
    share = await share_service.share_folder(
        folder_id, OWNER_ID, OTHER_EMAIL, requires_approval=False
    )

    assert share.status == ShareStatus.ACCEPTED.value
    assert share.responded_at is not None
    assert await share_service.has_access(folder_id, OTHER_ID)
    assert await share_service.get_permission(folder_id, OTHER_ID) == "read"
    assert [s.id for s in await share_service.get_shared_with(OTHER_ID)] == [share.id]


async def test_share_validation(
    share_service: FolderShareService, folder_service: FolderService, folder_id: int
) -> None:
    with pytest.raises(ConflictException):
        await share_service.share_folder(folder_id, OWNER_ID, OWNER_EMAIL)
    with pytest.raises(InvalidRequestException):
        await share_service.share_folder(
            folder_id, OWNER_ID, OTHER_EMAIL, permissions="owner"
        )
    with pytest.raises(NotFoundException):
        await share_service.share_folder(folder_id, OWNER_ID, "nobody@example.com")
    with pytest.raises(NotFoundException):
        await share_service.share_folder(folder_id, OTHER_ID, THIRD_EMAIL)

    await share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL)
    with pytest.raises(ConflictException):
        await share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL.upper())


async def test_concurrent_shares_to_same_user(
    share_service: FolderShareService, folder_id: int, user_service: FakeUserService
) -> None:
    user_service.latency = 0.05

    results = await asyncio.gather(
        share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL),
        share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL),
        return_exceptions=True,
    )

    assert sum(isinstance(r, ConflictException) for r in results) == 1
    shares = await share_service.get_folder_shares(folder_id, OWNER_ID)
    assert [(s.target_user_email, s.status) for s in shares] == [
        (OTHER_EMAIL, ShareStatus.PENDING.value)
    ]


async def test_share_again_after_reject(
    share_service: FolderShareService, folder_id: int
) -> None:
    share = await share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL)
    rejected = await share_service.respond_to_share(share.id, OTHER_ID, accept=False)
    assert rejected.status == ShareStatus.REJECTED.value

    again = await share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL)
    assert again.id != share.id


async def test_respond_to_share(
    share_service: FolderShareService, folder_id: int
) -> None:
    share = await share_service.share_folder(
        folder_id, OWNER_ID, OTHER_EMAIL, permissions="admin"
    )

    with pytest.raises(ForbiddenException):
        await share_service.respond_to_share(share.id, THIRD_ID, accept=True)
    with pytest.raises(NotFoundException):
        await share_service.respond_to_share(999, OTHER_ID, accept=True)

    accepted = await share_service.respond_to_share(share.id, OTHER_ID, accept=True)
    assert accepted.status == ShareStatus.ACCEPTED.value
    assert accepted.responded_at is not None
    assert await share_service.get_permission(folder_id, OTHER_ID) == "admin"
    assert await share_service.get_permission(folder_id, OWNER_ID) == "admin"
    assert not await share_service.has_access(folder_id, THIRD_ID)

    with pytest.raises(ConflictException):
        await share_service.respond_to_share(share.id, OTHER_ID, accept=False)


async def test_password_protected_share(
    share_service: FolderShareService, folder_id: int
) -> None:
    share = await share_service.share_folder(
        folder_id, OWNER_ID, OTHER_EMAIL, password="s3cret"
    )
    assert share.requires_password

    with pytest.raises(ForbiddenException):
        await share_service.respond_to_share(share.id, OTHER_ID, accept=True)
    with pytest.raises(ForbiddenException):
        await share_service.respond_to_share(
            share.id, OTHER_ID, accept=True, password="wrong"
        )

    accepted = await share_service.respond_to_share(
        share.id, OTHER_ID, accept=True, password="s3cret"
    )
    assert accepted.status == ShareStatus.ACCEPTED.value


async def test_expired_share(share_service: FolderShareService, folder_id: int) -> None:
    share = await share_service.share_folder(
        folder_id, OWNER_ID, OTHER_EMAIL, expires_at=now_ms() - 1000
    )

    with pytest.raises(ConflictException):
        await share_service.respond_to_share(share.id, OTHER_ID, accept=True)

    # Rejecting an expired share is still allowed
    rejected = await share_service.respond_to_share(share.id, OTHER_ID, accept=False)
    assert rejected.status == ShareStatus.REJECTED.value


async def test_expired_accepted_share_grants_nothing(
    share_service: FolderShareService, folder_id: int
) -> None:
    await share_service.share_folder(
        folder_id,
        OWNER_ID,
        OTHER_EMAIL,
        expires_at=now_ms() - 1000,
        requires_approval=False,
    )

    assert not await share_service.has_access(folder_id, OTHER_ID)


async def test_revoke_share(share_service: FolderShareService, folder_id: int) -> None:
    share = await share_service.share_folder(
        folder_id, OWNER_ID, OTHER_EMAIL, requires_approval=False
    )

    with pytest.raises(ForbiddenException):
        await share_service.revoke_share(share.id, OTHER_ID)

    await share_service.revoke_share(share.id, OWNER_ID)

    assert not await share_service.has_access(folder_id, OTHER_ID)
    shares = await share_service.get_folder_shares(folder_id, OWNER_ID)
    assert [s.status for s in shares] == [ShareStatus.REVOKED.value]


async def test_share_listings(
    share_service: FolderShareService, folder_service: FolderService, folder_id: int
) -> None:
    second = await folder_service.create_folder(OWNER_ID, "Second")
    s1 = await share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL)
    s2 = await share_service.share_folder(second.id, OWNER_ID, THIRD_EMAIL)

    created = await share_service.get_shares_created_by(OWNER_ID)
    assert {s.id for s in created} == {s1.id, s2.id}
    assert await share_service.get_shares_created_by(OTHER_ID) == []
    assert await share_service.get_shared_with(OTHER_ID) == []

    with pytest.raises(NotFoundException):
        await share_service.get_folder_shares(folder_id, OTHER_ID)


async def test_remove_user_from_folder(
    share_service: FolderShareService, folder_id: int
) -> None:
    await share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL)
    await share_service.share_folder(folder_id, OWNER_ID, THIRD_EMAIL)

    removed = await share_service.remove_user_from_folder(
        folder_id, OWNER_ID, OTHER_EMAIL
    )

    assert removed == 1
    remaining = await share_service.get_folder_shares(folder_id, OWNER_ID)
    assert [s.target_user_email for s in remaining] == [THIRD_EMAIL]

    with pytest.raises(NotFoundException):
        await share_service.remove_user_from_folder(folder_id, OTHER_ID, THIRD_EMAIL)


async def test_unknown_emails_render_as_unknown(
    share_service: FolderShareService,
    folder_id: int,
    user_service: FakeUserService,
) -> None:
    share = await share_service.share_folder(folder_id, OWNER_ID, OTHER_EMAIL)
    await share_service.user_directory.evict(OTHER_ID)
    await share_service.user_directory.evict(OWNER_ID)
    user_service.available = False

    pending = await share_service.get_pending_shares(OTHER_ID)

    assert [s.id for s in pending] == [share.id]
    assert pending[0].owner_email == "unknown"
    assert pending[0].target_user_email == "unknown"
