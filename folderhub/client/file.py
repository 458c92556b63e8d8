"""Client for the file service that owns the files inside folders."""

import logging

from folderhub.models.folder import FileVO

from .client import Client
from .exceptions import ApiException

_LOGGER = logging.getLogger(__name__)


class FileServiceClient:
    """Client for the file service folder APIs."""

    def __init__(self, client: Client) -> None:
        """Initialize the FileServiceClient."""
        self._client = client

    async def files_in_folder(self, folder_id: int, owner_id: int) -> list[FileVO]:
        """List the files stored in a folder."""
        result = await self._client.request_json(
            "get", f"/api/files/folder/{folder_id}", user_id=owner_id
        )
        if not isinstance(result, list):
            raise ApiException(f"Expected file list for folder {folder_id}")
        try:
            return [FileVO.from_dict(item) for item in result]
        except (LookupError, ValueError, TypeError, AttributeError) as err:
            raise ApiException(
                f"Invalid file list for folder {folder_id}: {err}"
            ) from err

    async def file_count(self, folder_id: int, owner_id: int) -> int:
        """Return the number of files in a folder."""
        result = await self._client.request_json(
            "get", f"/api/files/folder/{folder_id}/count", user_id=owner_id
        )
        return _to_int(result, "file count")

    async def total_size(self, folder_id: int, owner_id: int) -> int:
        """Return the total size in bytes of the files in a folder."""
        result = await self._client.request_json(
            "get", f"/api/files/folder/{folder_id}/size", user_id=owner_id
        )
        return _to_int(result, "folder size")

    async def delete_files(self, folder_id: int, owner_id: int) -> None:
        """Delete every file in a folder."""
        await self._client.delete(f"/api/files/folder/{folder_id}", user_id=owner_id)

    async def copy_file(
        self, file_id: int, dest_folder_id: int, owner_id: int
    ) -> FileVO:
        """Copy a file into another folder and return the new file."""
        return await self._client.post_json(
            f"/api/files/{file_id}/copy",
            FileVO,
            user_id=owner_id,
            params={"destinationFolderId": str(dest_folder_id)},
        )


def _to_int(result: object, name: str) -> int:
    if result is None:
        return 0
    if isinstance(result, bool) or not isinstance(result, (int, float, str)):
        raise ApiException(f"Invalid {name} response: {result!r}")
    try:
        return int(result)
    except ValueError as err:
        raise ApiException(f"Invalid {name} response: {result!r}") from err
