import logging
from typing import Optional

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from folderhub.models.base import (
    ACTIVE_SHARE_STATUSES,
    NO_PERMISSION,
    SharePermission,
    ShareStatus,
)
from folderhub.models.share import FolderShareVO

from ..db.models.folder import FolderShareDO, now_ms
from ..db.session import DatabaseSessionManager
from ..exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidRequestException,
    NotFoundException,
)
from ..utils.hashing import hash_password, verify_password
from .coordination import CoordinationService
from .tree import FolderTree
from .user import UserDirectory

logger = logging.getLogger(__name__)


def _parse_permission(permissions: Optional[str]) -> SharePermission:
    if not permissions:
        return SharePermission.READ
    try:
        return SharePermission.from_value(permissions.strip().lower())
    except ValueError as err:
        raise InvalidRequestException(
            f"Invalid permission '{permissions}', expected read, write or admin"
        ) from err


class FolderShareService:
    """Sharing folders between an owner and target users."""

    def __init__(
        self,
        session_manager: DatabaseSessionManager,
        user_directory: UserDirectory,
        coordination_service: CoordinationService,
    ) -> None:
        """Initialize the share service."""
        self.session_manager = session_manager
        self.user_directory = user_directory
        self.coordination_service = coordination_service

    async def share_folder(
        self,
        folder_id: int,
        owner_id: int,
        target_email: str,
        permissions: Optional[str] = None,
        message: Optional[str] = None,
        expires_at: Optional[int] = None,
        password: Optional[str] = None,
        requires_approval: bool = True,
    ) -> FolderShareVO:
        """Share an owned folder with the user registered under target_email.

        The share starts pending when approval is required, otherwise it is
        accepted immediately.
        """
        permission = _parse_permission(permissions)
        if not (target_email or "").strip():
            raise InvalidRequestException("Target user email is required")

        async with self.coordination_service.lock(f"share:{folder_id}"):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                folder = await tree.get_folder(owner_id, folder_id)
                if folder is None:
                    raise NotFoundException(
                        "Folder not found or you don't have permission to share it"
                    )

                target = await self.user_directory.get_user_by_email(
                    target_email.strip()
                )
                if target.id == owner_id:
                    raise ConflictException("Cannot share folder with yourself")

                existing = await self._find_active(session, folder_id, target.id)
                if existing is not None:
                    raise ConflictException("Folder is already shared with this user")

                status = (
                    ShareStatus.PENDING if requires_approval else ShareStatus.ACCEPTED
                )
                share = FolderShareDO(
                    folder_id=folder_id,
                    owner_id=owner_id,
                    target_user_id=target.id,
                    permissions=permission.value,
                    message=message,
                    expires_at=expires_at,
                    status=status.value,
                    shared_at=now_ms(),
                    requires_approval=requires_approval,
                    responded_at=None if requires_approval else now_ms(),
                )
                if password:
                    share.password_hash = hash_password(password)
                    share.requires_password = True
                session.add(share)
                await session.commit()

                logger.info(
                    "Folder %s shared by user %s with user %s (%s)",
                    folder_id,
                    owner_id,
                    target.id,
                    status.value,
                )
                return await self._to_share_vo(tree, share)

    async def respond_to_share(
        self,
        share_id: int,
        user_id: int,
        accept: bool,
        password: Optional[str] = None,
    ) -> FolderShareVO:
        """Accept or reject a pending share addressed to user_id."""
        async with self.session_manager.session() as session:
            share = await session.get(FolderShareDO, share_id)
            if share is None:
                raise NotFoundException("Share not found")
            if share.target_user_id != user_id:
                raise ForbiddenException("You can only respond to shares sent to you")
            if share.status != ShareStatus.PENDING.value:
                raise ConflictException(f"Share has already been {share.status}")
            if accept:
                if share.is_expired():
                    raise ConflictException("Share has expired")
                if share.requires_password and not (
                    password
                    and share.password_hash
                    and verify_password(password, share.password_hash)
                ):
                    raise ForbiddenException("Invalid share password")

            share.status = (
                ShareStatus.ACCEPTED.value if accept else ShareStatus.REJECTED.value
            )
            share.responded_at = now_ms()
            await session.commit()

            logger.info("User %s %s share %s", user_id, share.status, share_id)
            return await self._to_share_vo(FolderTree(session), share)

    async def revoke_share(self, share_id: int, owner_id: int) -> None:
        """Mark a share as revoked. Only the folder owner may revoke."""
        async with self.session_manager.session() as session:
            share = await session.get(FolderShareDO, share_id)
            if share is None:
                raise NotFoundException("Share not found")
            if share.owner_id != owner_id:
                raise ForbiddenException("You can only revoke shares you created")
            share.status = ShareStatus.REVOKED.value
            await session.commit()
            logger.info("Share %s revoked by user %s", share_id, owner_id)

    async def remove_user_from_folder(
        self, folder_id: int, owner_id: int, target_email: str
    ) -> int:
        """Delete every share of folder_id with the given user.

        Returns the number of shares removed.
        """
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            if await tree.get_folder(owner_id, folder_id) is None:
                raise NotFoundException(
                    "Folder not found or you don't have permission"
                )
            target = await self.user_directory.get_user_by_email(target_email)
            stmt = delete(FolderShareDO).where(
                FolderShareDO.folder_id == folder_id,
                FolderShareDO.target_user_id == target.id,
            )
            result = await session.execute(stmt)
            await session.commit()
            removed = result.rowcount or 0
            logger.info(
                "Removed user %s from folder %s (%d shares)",
                target.id,
                folder_id,
                removed,
            )
            return removed

    async def has_access(self, folder_id: int, user_id: int) -> bool:
        """True if the user owns the folder or holds an accepted share."""
        return await self.get_permission(folder_id, user_id) != NO_PERMISSION

    async def get_permission(self, folder_id: int, user_id: int) -> str:
        """Permission of user_id on folder_id: admin for the owner, else the
        accepted share's permission, else none."""
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            folder = await tree.get_by_id(folder_id)
            if folder is None:
                return NO_PERMISSION
            if folder.user_id == user_id:
                return SharePermission.ADMIN.value
            stmt = select(FolderShareDO).where(
                FolderShareDO.folder_id == folder_id,
                FolderShareDO.target_user_id == user_id,
                FolderShareDO.status == ShareStatus.ACCEPTED.value,
            )
            result = await session.execute(stmt)
            now = now_ms()
            for share in result.scalars().all():
                if not share.is_expired(now):
                    return share.permissions
            return NO_PERMISSION

    async def get_folder_shares(
        self, folder_id: int, owner_id: int
    ) -> list[FolderShareVO]:
        """All shares of an owned folder, newest first."""
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            if await tree.get_folder(owner_id, folder_id) is None:
                raise NotFoundException(
                    "Folder not found or you don't have permission"
                )
            stmt = (
                select(FolderShareDO)
                .where(FolderShareDO.folder_id == folder_id)
                .order_by(FolderShareDO.shared_at.desc(), FolderShareDO.id.desc())
            )
            return await self._query_vos(tree, stmt)

    async def get_pending_shares(self, user_id: int) -> list[FolderShareVO]:
        """Shares awaiting a response from user_id."""
        stmt = (
            select(FolderShareDO)
            .where(
                FolderShareDO.target_user_id == user_id,
                FolderShareDO.status == ShareStatus.PENDING.value,
            )
            .order_by(FolderShareDO.shared_at.desc(), FolderShareDO.id.desc())
        )
        async with self.session_manager.session() as session:
            return await self._query_vos(FolderTree(session), stmt)

    async def get_shares_created_by(self, user_id: int) -> list[FolderShareVO]:
        stmt = (
            select(FolderShareDO)
            .where(FolderShareDO.owner_id == user_id)
            .order_by(FolderShareDO.shared_at.desc(), FolderShareDO.id.desc())
        )
        async with self.session_manager.session() as session:
            return await self._query_vos(FolderTree(session), stmt)

    async def get_shared_with(self, user_id: int) -> list[FolderShareVO]:
        """Accepted shares addressed to user_id."""
        stmt = (
            select(FolderShareDO)
            .where(
                FolderShareDO.target_user_id == user_id,
                FolderShareDO.status == ShareStatus.ACCEPTED.value,
            )
            .order_by(FolderShareDO.shared_at.desc(), FolderShareDO.id.desc())
        )
        async with self.session_manager.session() as session:
            return await self._query_vos(FolderTree(session), stmt)

    async def _find_active(
        self, session: AsyncSession, folder_id: int, target_user_id: int
    ) -> Optional[FolderShareDO]:
        stmt = select(FolderShareDO).where(
            FolderShareDO.folder_id == folder_id,
            FolderShareDO.target_user_id == target_user_id,
            FolderShareDO.status.in_([s.value for s in ACTIVE_SHARE_STATUSES]),
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def _query_vos(self, tree: FolderTree, stmt: Select) -> list[FolderShareVO]:
        result = await tree.db.execute(stmt)
        shares = result.scalars().all()
        return [await self._to_share_vo(tree, share) for share in shares]

    async def _to_share_vo(
        self, tree: FolderTree, share: FolderShareDO
    ) -> FolderShareVO:
        folder = await tree.get_by_id(share.folder_id)
        return FolderShareVO(
            id=share.id,
            folder_id=share.folder_id,
            folder_name=folder.name if folder else "unknown",
            owner_email=await self.user_directory.get_email(share.owner_id),
            target_user_email=await self.user_directory.get_email(
                share.target_user_id
            ),
            permissions=share.permissions,
            status=share.status,
            shared_at=int(share.shared_at),
            message=share.message,
            expires_at=share.expires_at,
            responded_at=share.responded_at,
            requires_password=share.requires_password,
            requires_approval=share.requires_approval,
        )
