import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from folderhub.server.db.models.folder import FolderDO, FolderShareDO

logger = logging.getLogger(__name__)


def build_path(parent: Optional[FolderDO], name: str) -> str:
    """Materialized path of a folder named name under parent."""
    if parent is None:
        return f"/{name}"
    return f"{parent.path}/{name}"


class FolderTree:
    """
    Folder hierarchy stored as rows keyed by id with explicit parent_id links.

    Methods stage changes on the session and flush; committing is left to
    the caller so a mutation and its path propagation land in one transaction.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_folder(self, owner_id: int, folder_id: int) -> Optional[FolderDO]:
        """Get a folder if it exists and is owned by owner_id."""
        stmt = select(FolderDO).where(
            FolderDO.id == folder_id,
            FolderDO.user_id == owner_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, folder_id: int) -> Optional[FolderDO]:
        """Get a folder regardless of owner."""
        return await self.db.get(FolderDO, folder_id)

    async def find_child(
        self, owner_id: int, parent_id: Optional[int], name: str
    ) -> Optional[FolderDO]:
        """Find the sibling named name under parent_id (None for root)."""
        stmt = select(FolderDO).where(
            FolderDO.user_id == owner_id,
            FolderDO.name == name,
            FolderDO.parent_id.is_(None)
            if parent_id is None
            else FolderDO.parent_id == parent_id,
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_children(
        self, owner_id: int, parent_id: Optional[int]
    ) -> list[FolderDO]:
        """List direct children ordered by name (root folders for None)."""
        stmt = (
            select(FolderDO)
            .where(
                FolderDO.user_id == owner_id,
                FolderDO.parent_id.is_(None)
                if parent_id is None
                else FolderDO.parent_id == parent_id,
            )
            .order_by(FolderDO.name.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_children(self, folder_id: int) -> int:
        stmt = select(func.count()).where(FolderDO.parent_id == folder_id)
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def list_favorites(self, owner_id: int) -> list[FolderDO]:
        stmt = (
            select(FolderDO)
            .where(FolderDO.user_id == owner_id, FolderDO.is_favorite.is_(True))
            .order_by(FolderDO.name.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def search(self, owner_id: int, query: str) -> list[FolderDO]:
        """Case-insensitive substring search on folder names."""
        stmt = (
            select(FolderDO)
            .where(
                FolderDO.user_id == owner_id,
                func.lower(FolderDO.name).contains(query.lower(), autoescape=True),
            )
            .order_by(FolderDO.path.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_owned(self, owner_id: int) -> list[FolderDO]:
        stmt = select(FolderDO).where(FolderDO.user_id == owner_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def descendant_levels(self, folder: FolderDO) -> list[list[FolderDO]]:
        """Descendants grouped by depth, shallowest first.

        The folder itself is not included. One query per level.
        """
        levels: list[list[FolderDO]] = []
        frontier = [folder.id]
        seen = {folder.id}
        while frontier:
            stmt = (
                select(FolderDO)
                .where(FolderDO.parent_id.in_(frontier))
                .order_by(FolderDO.name.asc())
            )
            result = await self.db.execute(stmt)
            children = [c for c in result.scalars().all() if c.id not in seen]
            if not children:
                break
            seen.update(c.id for c in children)
            levels.append(children)
            frontier = [c.id for c in children]
        return levels

    async def subtree(self, folder: FolderDO) -> list[FolderDO]:
        """The folder followed by all descendants, parents before children."""
        nodes = [folder]
        for level in await self.descendant_levels(folder):
            nodes.extend(level)
        return nodes

    async def ancestors(self, folder: FolderDO) -> list[FolderDO]:
        """Chain from the root folder down to folder, inclusive."""
        chain = [folder]
        seen = {folder.id}
        current = folder
        while current.parent_id is not None:
            parent = await self.get_by_id(current.parent_id)
            if parent is None or parent.id in seen:
                logger.error("Broken parent chain at folder %s", current.id)
                break
            seen.add(parent.id)
            chain.insert(0, parent)
            current = parent
        return chain

    async def is_in_subtree(self, root_id: int, candidate_id: int) -> bool:
        """True if candidate_id is root_id or one of its descendants.

        Walks upward from the candidate, O(depth).
        """
        current_id: Optional[int] = candidate_id
        seen: set[int] = set()
        while current_id is not None:
            if current_id == root_id:
                return True
            if current_id in seen:
                logger.error("Cycle detected above folder %s", candidate_id)
                return True
            seen.add(current_id)
            node = await self.get_by_id(current_id)
            if node is None:
                return False
            current_id = node.parent_id
        return False

    async def create_folder(
        self,
        owner_id: int,
        parent: Optional[FolderDO],
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        is_favorite: bool = False,
    ) -> FolderDO:
        """Stage a new folder and flush to assign its ID."""
        folder = FolderDO(
            name=name,
            path=build_path(parent, name),
            user_id=owner_id,
            parent_id=parent.id if parent else None,
            description=description,
            color=color,
            is_favorite=is_favorite,
        )
        self.db.add(folder)
        await self.db.flush()
        return folder

    async def refresh_paths(self, folder: FolderDO) -> int:
        """Recompute the path of folder and every descendant.

        Returns the number of descendants updated.
        """
        parent = (
            await self.get_by_id(folder.parent_id)
            if folder.parent_id is not None
            else None
        )
        folder.path = build_path(parent, folder.name)
        by_id = {folder.id: folder}
        updated = 0
        for level in await self.descendant_levels(folder):
            for child in level:
                child.path = build_path(by_id[child.parent_id], child.name)
                by_id[child.id] = child
                updated += 1
        await self.db.flush()
        return updated

    async def copy_subtree(
        self, source: FolderDO, dest_parent: Optional[FolderDO], new_name: str
    ) -> list[tuple[FolderDO, FolderDO]]:
        """Duplicate source and its descendants under dest_parent.

        The source subtree is read before any copy is created, so copying a
        folder into its own subtree terminates.

        Returns:
            (source, copy) pairs, parents before children. The first pair is
            the copied root.
        """
        levels = await self.descendant_levels(source)
        root_copy = await self._copy_one(source, dest_parent, new_name)
        pairs = [(source, root_copy)]
        copies = {source.id: root_copy}
        for level in levels:
            for original in level:
                copy = await self._copy_one(
                    original, copies[original.parent_id], original.name
                )
                copies[original.id] = copy
                pairs.append((original, copy))
        return pairs

    async def _copy_one(
        self, original: FolderDO, parent: Optional[FolderDO], name: str
    ) -> FolderDO:
        description = (
            f"{original.description} (Copy)"
            if original.description is not None
            else f"Copy of {original.name}"
        )
        return await self.create_folder(
            original.user_id,
            parent,
            name,
            description=description,
            color=original.color,
        )

    async def delete_shares(self, folder_ids: list[int]) -> int:
        """Delete every share of the given folders."""
        if not folder_ids:
            return 0
        stmt = delete(FolderShareDO).where(FolderShareDO.folder_id.in_(folder_ids))
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    async def delete_subtree_rows(self, folder: FolderDO) -> int:
        """Delete folder and all descendant rows, deepest level first."""
        levels = [[folder]] + await self.descendant_levels(folder)
        deleted = 0
        for level in reversed(levels):
            ids = [node.id for node in level]
            result = await self.db.execute(delete(FolderDO).where(FolderDO.id.in_(ids)))
            deleted += result.rowcount or 0
        return deleted
