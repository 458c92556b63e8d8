import logging
from contextlib import AbstractAsyncContextManager
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from folderhub.models.folder import (
    BreadcrumbVO,
    BulkDeleteVO,
    FolderVO,
    SubfolderVO,
)

from ..db.models.folder import FolderDO
from ..db.session import DatabaseSessionManager
from ..exceptions import (
    ConflictException,
    InvalidRequestException,
    NotFoundException,
)
from ..utils.formatting import format_file_size
from .aggregator import FileAggregator
from .coordination import CoordinationService
from .tree import FolderTree
from .user import UserDirectory

logger = logging.getLogger(__name__)


__all__ = [
    "FolderService",
    "clean_folder_name",
]


def clean_folder_name(name: Optional[str]) -> str:
    """Validate and trim a folder name."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidRequestException("Folder name is required")
    if "/" in cleaned:
        raise InvalidRequestException("Folder name cannot contain '/'")
    return cleaned


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


def _unique_ids(folder_ids: list[int], operation: str) -> list[int]:
    if not folder_ids:
        raise InvalidRequestException(f"No folders specified for bulk {operation}")
    return list(dict.fromkeys(folder_ids))


def _location(parent_id: Optional[int]) -> str:
    return "the root directory" if parent_id is None else "this location"


class FolderService:
    """Folder tree operations for one owner at a time."""

    def __init__(
        self,
        session_manager: DatabaseSessionManager,
        aggregator: FileAggregator,
        user_directory: UserDirectory,
        coordination_service: CoordinationService,
    ) -> None:
        """Initialize the folder service."""
        self.session_manager = session_manager
        self.aggregator = aggregator
        self.user_directory = user_directory
        self.coordination_service = coordination_service

    def _tree_lock(self, owner_id: int) -> AbstractAsyncContextManager[None]:
        """Serialize structural changes to one owner's tree."""
        return self.coordination_service.lock(f"tree:{owner_id}")

    async def _require_folder(
        self, tree: FolderTree, owner_id: int, folder_id: int
    ) -> FolderDO:
        if (folder := await tree.get_folder(owner_id, folder_id)) is None:
            raise NotFoundException(f"Folder not found with id: {folder_id}")
        return folder

    async def _require_destination(
        self, tree: FolderTree, owner_id: int, parent_id: Optional[int]
    ) -> Optional[FolderDO]:
        if parent_id is None:
            return None
        if (parent := await tree.get_folder(owner_id, parent_id)) is None:
            raise NotFoundException("Destination folder not found")
        return parent

    async def _to_folder_vo(
        self, tree: FolderTree, folder: FolderDO, include_children: bool = False
    ) -> FolderVO:
        """Build the folder view, fetching statistics from the file service."""
        parent = (
            await tree.get_by_id(folder.parent_id)
            if folder.parent_id is not None
            else None
        )
        stats = await self.aggregator.folder_stats(folder.id, folder.user_id)
        vo = FolderVO(
            id=folder.id,
            name=folder.name,
            path=folder.path,
            user_id=folder.user_id,
            parent_id=folder.parent_id,
            parent_name=parent.name if parent else None,
            is_favorite=folder.is_favorite,
            color=folder.color,
            description=folder.description,
            create_time=int(folder.create_time),
            update_time=int(folder.update_time),
            file_count=stats.file_count,
            subfolder_count=await tree.count_children(folder.id),
            total_size=stats.total_size,
            formatted_size=format_file_size(stats.total_size),
        )
        if include_children:
            for child in await tree.list_children(folder.user_id, folder.id):
                vo.subfolders.append(
                    SubfolderVO(
                        id=child.id,
                        name=child.name,
                        path=child.path,
                        is_favorite=child.is_favorite,
                        color=child.color,
                        subfolder_count=await tree.count_children(child.id),
                    )
                )
            vo.files = await self.aggregator.list_files(folder.id, folder.user_id)
        if parent is not None:
            vo.breadcrumb = [
                BreadcrumbVO(id=node.id, name=node.name)
                for node in await tree.ancestors(folder)
            ]
        return vo

    async def create_folder(
        self,
        owner_id: int,
        name: str,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> FolderVO:
        """Create a folder at the root or under parent_id."""
        name = clean_folder_name(name)
        # Raises if the owner is unknown to the user service
        await self.user_directory.get_user_by_id(owner_id)

        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                parent = None
                if parent_id is not None:
                    parent = await tree.get_folder(owner_id, parent_id)
                    if parent is None:
                        raise NotFoundException("Parent folder not found")
                if await tree.find_child(owner_id, parent_id, name):
                    raise ConflictException(
                        f"A folder with this name already exists in {_location(parent_id)}"
                    )
                folder = await tree.create_folder(
                    owner_id,
                    parent,
                    name,
                    description=_clean_optional(description),
                    color=_clean_optional(color),
                )
                await session.commit()
                logger.info("Created folder %s (ID: %s)", folder.path, folder.id)
                return await self._to_folder_vo(tree, folder)

    async def get_root_folders(self, owner_id: int) -> list[FolderVO]:
        """List the owner's root folders ordered by name."""
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            return [
                await self._to_folder_vo(tree, folder, include_children=True)
                for folder in await tree.list_children(owner_id, None)
            ]

    async def get_subfolders(self, parent_id: int, owner_id: int) -> list[FolderVO]:
        """List the direct children of an owned folder ordered by name."""
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            await self._require_folder(tree, owner_id, parent_id)
            return [
                await self._to_folder_vo(tree, folder, include_children=True)
                for folder in await tree.list_children(owner_id, parent_id)
            ]

    async def get_folder_details(self, folder_id: int, owner_id: int) -> FolderVO:
        """Folder with its subfolders, files and breadcrumb."""
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            folder = await self._require_folder(tree, owner_id, folder_id)
            return await self._to_folder_vo(tree, folder, include_children=True)

    async def get_favorite_folders(self, owner_id: int) -> list[FolderVO]:
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            return [
                await self._to_folder_vo(tree, folder)
                for folder in await tree.list_favorites(owner_id)
            ]

    async def search_folders(self, query: str, owner_id: int) -> list[FolderVO]:
        """Search the owner's folders by name."""
        query = (query or "").strip()
        if not query:
            return []
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            return [
                await self._to_folder_vo(tree, folder)
                for folder in await tree.search(owner_id, query)
            ]

    async def toggle_favorite(self, folder_id: int, owner_id: int) -> FolderVO:
        async with self.session_manager.session() as session:
            tree = FolderTree(session)
            folder = await self._require_folder(tree, owner_id, folder_id)
            folder.is_favorite = not folder.is_favorite
            await session.commit()
            return await self._to_folder_vo(tree, folder)

    async def _rename(
        self, tree: FolderTree, folder: FolderDO, new_name: str, owner_id: int
    ) -> None:
        if new_name == folder.name:
            return
        existing = await tree.find_child(owner_id, folder.parent_id, new_name)
        if existing is not None and existing.id != folder.id:
            raise ConflictException(
                f"A folder with this name already exists in {_location(folder.parent_id)}"
            )
        old_path = folder.path
        folder.name = new_name
        updated = await tree.refresh_paths(folder)
        logger.info(
            "Renamed folder %s to %s (%d descendants updated)",
            old_path,
            folder.path,
            updated,
        )

    async def rename_folder(
        self, folder_id: int, new_name: str, owner_id: int
    ) -> FolderVO:
        """Rename a folder and propagate the new path to its descendants."""
        new_name = clean_folder_name(new_name)
        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                folder = await self._require_folder(tree, owner_id, folder_id)
                await self._rename(tree, folder, new_name, owner_id)
                await session.commit()
                return await self._to_folder_vo(tree, folder, include_children=True)

    async def update_folder(
        self,
        folder_id: int,
        owner_id: int,
        name: Optional[str] = None,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> FolderVO:
        """Partially update a folder. A new name is applied like a rename."""
        new_name = clean_folder_name(name) if name is not None else None
        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                folder = await self._require_folder(tree, owner_id, folder_id)
                if new_name is not None:
                    await self._rename(tree, folder, new_name, owner_id)
                if color is not None:
                    folder.color = _clean_optional(color)
                if description is not None:
                    folder.description = _clean_optional(description)
                await session.commit()
                return await self._to_folder_vo(tree, folder, include_children=True)

    async def _validate_move(
        self,
        tree: FolderTree,
        folder: FolderDO,
        new_parent: Optional[FolderDO],
        owner_id: int,
    ) -> None:
        if new_parent is not None:
            if new_parent.id == folder.id:
                raise ConflictException("Cannot move folder into itself")
            if await tree.is_in_subtree(folder.id, new_parent.id):
                raise ConflictException("Cannot move folder into its descendant")
        new_parent_id = new_parent.id if new_parent else None
        if folder.parent_id == new_parent_id:
            return
        existing = await tree.find_child(owner_id, new_parent_id, folder.name)
        if existing is not None and existing.id != folder.id:
            raise ConflictException(
                f"A folder with name '{folder.name}' already exists in "
                f"{'the root directory' if new_parent is None else 'the destination'}"
            )

    async def move_folder(
        self, folder_id: int, new_parent_id: Optional[int], owner_id: int
    ) -> FolderVO:
        """Move a folder under new_parent_id, or to the root for None."""
        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                folder = await self._require_folder(tree, owner_id, folder_id)
                if new_parent_id == folder.id:
                    raise ConflictException("Cannot move folder into itself")
                new_parent = await self._require_destination(
                    tree, owner_id, new_parent_id
                )
                await self._validate_move(tree, folder, new_parent, owner_id)
                if folder.parent_id != new_parent_id:
                    folder.parent_id = new_parent_id
                    await tree.refresh_paths(folder)
                    await session.commit()
                    logger.info(
                        "Moved folder '%s' (ID: %s) to new parent (ID: %s)",
                        folder.name,
                        folder_id,
                        new_parent_id,
                    )
                return await self._to_folder_vo(tree, folder, include_children=True)

    async def copy_folder(
        self,
        folder_id: int,
        new_parent_id: Optional[int],
        owner_id: int,
        new_name: Optional[str] = None,
    ) -> FolderVO:
        """Copy a folder subtree, then copy the files of every copied folder."""
        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                source = await self._require_folder(tree, owner_id, folder_id)
                final_name = (
                    clean_folder_name(new_name)
                    if new_name and new_name.strip()
                    else source.name
                )
                dest = await self._require_destination(tree, owner_id, new_parent_id)
                if await tree.find_child(owner_id, new_parent_id, final_name):
                    raise ConflictException(
                        f"A folder with this name already exists in "
                        f"{'the root directory' if dest is None else 'the destination'}"
                    )
                pairs = await tree.copy_subtree(source, dest, final_name)
                await session.commit()
                copied = pairs[0][1]

                # Files are copied only once the folder structure is committed
                report = await self.aggregator.copy_files(
                    [(src.id, dst.id) for src, dst in pairs], owner_id
                )
                logger.info(
                    "Copied folder '%s' (ID: %s) to '%s' (ID: %s): %d folders, %d files",
                    source.name,
                    folder_id,
                    copied.path,
                    copied.id,
                    len(pairs),
                    report.copied,
                )
                return await self._to_folder_vo(tree, copied, include_children=True)

    async def delete_folder(self, folder_id: int, owner_id: int) -> int:
        """Delete a folder, its descendants, their shares and their files.

        Returns the number of folders removed.
        """
        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                folder = await self._require_folder(tree, owner_id, folder_id)
                deleted = await self._delete_subtree(tree, folder, owner_id)
                await session.commit()
                return deleted

    async def _delete_subtree(
        self, tree: FolderTree, folder: FolderDO, owner_id: int
    ) -> int:
        path = folder.path
        folder_ids = [node.id for node in await tree.subtree(folder)]
        shares = await tree.delete_shares(folder_ids)
        if shares:
            logger.info("Deleted %d folder shares under %s", shares, path)
        await self.aggregator.delete_files(folder_ids, owner_id)
        deleted = await tree.delete_subtree_rows(folder)
        logger.info("Deleted folder %s (%d folders)", path, deleted)
        return deleted

    async def bulk_move(
        self, folder_ids: list[int], new_parent_id: Optional[int], owner_id: int
    ) -> list[FolderVO]:
        """Move several folders. Nothing moves unless every move is valid."""
        ids = _unique_ids(folder_ids, "move")
        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                folders = [
                    await self._require_folder(tree, owner_id, folder_id)
                    for folder_id in ids
                ]
                new_parent = await self._require_destination(
                    tree, owner_id, new_parent_id
                )
                incoming: set[str] = set()
                for folder in folders:
                    await self._validate_move(tree, folder, new_parent, owner_id)
                    if folder.parent_id == new_parent_id:
                        continue
                    if folder.name in incoming:
                        raise ConflictException(
                            f"More than one folder named '{folder.name}' selected"
                        )
                    incoming.add(folder.name)

                for folder in folders:
                    folder.parent_id = new_parent_id
                    await tree.refresh_paths(folder)
                await session.commit()
                logger.info(
                    "Moved %d folders to parent (ID: %s)", len(folders), new_parent_id
                )
                return [await self._to_folder_vo(tree, folder) for folder in folders]

    async def _generate_copy_name(
        self, tree: FolderTree, owner_id: int, parent_id: Optional[int], name: str
    ) -> str:
        copy_name = f"{name} - Copy"
        counter = 1
        while await tree.find_child(owner_id, parent_id, copy_name):
            counter += 1
            copy_name = f"{name} - Copy ({counter})"
        return copy_name

    async def bulk_copy(
        self, folder_ids: list[int], new_parent_id: Optional[int], owner_id: int
    ) -> list[FolderVO]:
        """Copy several folders, each under a generated unique name."""
        ids = _unique_ids(folder_ids, "copy")
        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                sources = [
                    await self._require_folder(tree, owner_id, folder_id)
                    for folder_id in ids
                ]
                dest = await self._require_destination(tree, owner_id, new_parent_id)

                copies: list[FolderDO] = []
                mapping: list[tuple[int, int]] = []
                for source in sources:
                    copy_name = await self._generate_copy_name(
                        tree, owner_id, new_parent_id, source.name
                    )
                    pairs = await tree.copy_subtree(source, dest, copy_name)
                    copies.append(pairs[0][1])
                    mapping.extend((src.id, dst.id) for src, dst in pairs)
                await session.commit()

                await self.aggregator.copy_files(mapping, owner_id)
                logger.info(
                    "Copied %d folders to parent (ID: %s)", len(copies), new_parent_id
                )
                return [await self._to_folder_vo(tree, copy) for copy in copies]

    async def bulk_delete(self, folder_ids: list[int], owner_id: int) -> BulkDeleteVO:
        """Delete several folders.

        Every ID is checked before anything is deleted. Deletion is then best
        effort per folder.
        """
        ids = _unique_ids(folder_ids, "delete")
        async with self._tree_lock(owner_id):
            async with self.session_manager.session() as session:
                tree = FolderTree(session)
                for folder_id in ids:
                    await self._require_folder(tree, owner_id, folder_id)

            deleted_count = 0
            for folder_id in ids:
                try:
                    async with self.session_manager.session() as session:
                        tree = FolderTree(session)
                        folder = await tree.get_folder(owner_id, folder_id)
                        if folder is not None:
                            await self._delete_subtree(tree, folder, owner_id)
                            await session.commit()
                        # Otherwise removed along with an ancestor earlier in the list
                        deleted_count += 1
                except SQLAlchemyError as err:
                    logger.error("Failed to delete folder %s: %s", folder_id, err)

        return BulkDeleteVO(
            deleted_count=deleted_count,
            total_requested=len(ids),
            message=f"Successfully deleted {deleted_count} out of {len(ids)} folders",
        )
