"""Reactions to user lifecycle events published by the user service."""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, or_
from sqlalchemy.exc import SQLAlchemyError

from ..db.models.folder import FolderDO, FolderShareDO
from ..db.session import DatabaseSessionManager
from .coordination import CoordinationService
from .tree import FolderTree
from .user import UserDirectory

logger = logging.getLogger(__name__)


@dataclass
class UserCleanupResult:
    shares_deleted: int = 0
    folders_deleted: int = 0


class UserEventHandler:
    """Keeps folder data consistent with the user service."""

    def __init__(
        self,
        session_manager: DatabaseSessionManager,
        user_directory: UserDirectory,
        coordination_service: CoordinationService,
    ) -> None:
        self.session_manager = session_manager
        self.user_directory = user_directory
        self.coordination_service = coordination_service

    async def handle_user_created(self, user_id: int, email: str) -> None:
        logger.info("Received user created event for user %s (%s)", user_id, email)

    async def handle_user_deleted(self, user_id: int) -> UserCleanupResult:
        """Delete every share involving the user and every folder they own.

        Folder files are left to the file service, which handles the same
        event for its own data.
        """
        logger.info("Received user deleted event for user %s", user_id)
        result = UserCleanupResult()
        try:
            async with self.coordination_service.lock(f"tree:{user_id}"):
                async with self.session_manager.session() as session:
                    tree = FolderTree(session)
                    owned = await tree.list_owned(user_id)

                    stmt = delete(FolderShareDO).where(
                        or_(
                            FolderShareDO.target_user_id == user_id,
                            FolderShareDO.owner_id == user_id,
                        )
                    )
                    shares = await session.execute(stmt)
                    result.shares_deleted = shares.rowcount or 0

                    for root in [f for f in owned if f.parent_id is None]:
                        result.folders_deleted += await tree.delete_subtree_rows(root)
                    # Rows with a broken parent chain
                    leftovers = await session.execute(
                        delete(FolderDO).where(FolderDO.user_id == user_id)
                    )
                    result.folders_deleted += leftovers.rowcount or 0
                    await session.commit()
        except SQLAlchemyError as err:
            logger.error("Failed to clean up data for user %s: %s", user_id, err)
            raise

        await self.user_directory.evict(user_id)
        logger.info(
            "Deleted %d shares and %d folders for user %s",
            result.shares_deleted,
            result.folders_deleted,
            user_id,
        )
        return result
