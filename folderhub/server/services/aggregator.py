"""Bridge from folder operations to the file service.

Every call to the file service may fail. Statistics degrade to zero or empty
values, and cascading deletes/copies are logged and skipped so that a file
service outage never aborts a folder level operation.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from folderhub.client.exceptions import ApiException
from folderhub.models.folder import FileVO

logger = logging.getLogger(__name__)


class FileCollaborator(Protocol):
    """Remote file service, see folderhub.client.file.FileServiceClient."""

    async def files_in_folder(self, folder_id: int, owner_id: int) -> list[FileVO]: ...

    async def file_count(self, folder_id: int, owner_id: int) -> int: ...

    async def total_size(self, folder_id: int, owner_id: int) -> int: ...

    async def delete_files(self, folder_id: int, owner_id: int) -> None: ...

    async def copy_file(
        self, file_id: int, dest_folder_id: int, owner_id: int
    ) -> FileVO: ...


@dataclass
class FolderStats:
    file_count: int = 0
    total_size: int = 0


@dataclass
class CopyReport:
    """Outcome of copying the files of a folder hierarchy."""

    copied: int = 0
    failed: int = 0


class FileAggregator:
    """Best-effort access to the files stored in folders."""

    def __init__(self, file_client: FileCollaborator) -> None:
        """Create a file aggregator."""
        self._file_client = file_client

    async def folder_stats(self, folder_id: int, owner_id: int) -> FolderStats:
        """Return file count and total size, zero if unavailable."""
        try:
            file_count = await self._file_client.file_count(folder_id, owner_id)
            total_size = await self._file_client.total_size(folder_id, owner_id)
        except ApiException as err:
            logger.debug(
                "Could not fetch file statistics for folder %s: %s", folder_id, err
            )
            return FolderStats()
        return FolderStats(file_count=file_count or 0, total_size=total_size or 0)

    async def list_files(self, folder_id: int, owner_id: int) -> list[FileVO]:
        """Return the files of a folder, empty if unavailable."""
        try:
            return await self._file_client.files_in_folder(folder_id, owner_id)
        except ApiException as err:
            logger.debug("Could not fetch files for folder %s: %s", folder_id, err)
            return []

    async def delete_files(self, folder_ids: list[int], owner_id: int) -> int:
        """Delete the files of each folder. Returns the number of failures."""
        failures = 0
        for folder_id in folder_ids:
            try:
                await self._file_client.delete_files(folder_id, owner_id)
            except ApiException as err:
                failures += 1
                logger.warning(
                    "Could not delete files for folder %s: %s", folder_id, err
                )
        return failures

    async def copy_files(
        self, folder_mapping: list[tuple[int, int]], owner_id: int
    ) -> CopyReport:
        """Copy files from each source folder into its copied folder.

        Args:
            folder_mapping: (source folder ID, copied folder ID) pairs.
            owner_id: Owner of both folders.
        """
        report = CopyReport()
        for source_id, dest_id in folder_mapping:
            try:
                files = await self._file_client.files_in_folder(source_id, owner_id)
            except ApiException as err:
                logger.warning("Could not get files for folder %s: %s", source_id, err)
                continue
            for file in files:
                try:
                    await self._file_client.copy_file(file.id, dest_id, owner_id)
                except ApiException as err:
                    report.failed += 1
                    logger.warning(
                        "Failed to copy file %s to folder %s: %s", file.id, dest_id, err
                    )
                    continue
                report.copied += 1
        if report.failed:
            logger.warning(
                "Copied %d files, %d failed, for owner %s",
                report.copied,
                report.failed,
                owner_id,
            )
        return report
