"""Folder API data models."""

from dataclasses import dataclass, field

from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.json import DataClassJSONMixin

from .base import BaseResponse


@dataclass
class FolderCreateDTO(DataClassJSONMixin):
    """Request to create a folder."""

    name: str
    """Folder name, must not contain a slash."""

    parent_id: int | None = field(
        metadata=field_options(alias="parentId"), default=None
    )
    """Parent folder ID, or None for a root folder."""

    description: str | None = None
    color: str | None = None


@dataclass
class FolderUpdateDTO(DataClassJSONMixin):
    """Partial update of a folder. Omitted fields are left unchanged."""

    name: str | None = None
    color: str | None = None
    description: str | None = None


@dataclass
class FolderMoveDTO(DataClassJSONMixin):
    """Request to move a folder under a new parent."""

    new_parent_id: int | None = field(
        metadata=field_options(alias="newParentId"), default=None
    )
    """Destination folder ID, or None to move to the root."""


@dataclass
class FolderCopyDTO(DataClassJSONMixin):
    """Request to copy a folder subtree."""

    new_parent_id: int | None = field(
        metadata=field_options(alias="newParentId"), default=None
    )
    new_name: str | None = field(metadata=field_options(alias="newName"), default=None)
    """Name of the copy. The source name is used when blank."""


@dataclass
class BulkOperationDTO(DataClassJSONMixin):
    """Request applying one operation to many folders."""

    folder_ids: list[int] = field(
        metadata=field_options(alias="folderIds"), default_factory=list
    )
    new_parent_id: int | None = field(
        metadata=field_options(alias="newParentId"), default=None
    )
    """Destination for move/copy. Ignored by delete."""


@dataclass
class FileVO(DataClassJSONMixin):
    """A file as reported by the file service."""

    id: int
    file_name: str | None = field(
        metadata=field_options(alias="fileName"), default=None
    )
    original_file_name: str | None = field(
        metadata=field_options(alias="originalFileName"), default=None
    )
    name: str | None = None
    file_size: int = field(metadata=field_options(alias="fileSize"), default=0)
    content_type: str | None = field(
        metadata=field_options(alias="contentType"), default=None
    )
    file_uuid: str | None = field(
        metadata=field_options(alias="fileUuid"), default=None
    )
    is_favorite: bool | None = field(
        metadata=field_options(alias="isFavorite"), default=None
    )
    file_extension: str | None = field(
        metadata=field_options(alias="fileExtension"), default=None
    )
    folder_id: int | None = field(
        metadata=field_options(alias="folderId"), default=None
    )
    created_at: str | None = field(
        metadata=field_options(alias="createdAt"), default=None
    )
    updated_at: str | None = field(
        metadata=field_options(alias="updatedAt"), default=None
    )

    class Config(BaseConfig):
        serialize_by_alias = True
        omit_none = True


@dataclass
class BreadcrumbVO(DataClassJSONMixin):
    """One step of the path from the root to a folder."""

    id: int
    name: str


@dataclass
class SubfolderVO(DataClassJSONMixin):
    """Summary of a direct child folder."""

    id: int
    name: str
    path: str
    is_favorite: bool = field(metadata=field_options(alias="isFavorite"), default=False)
    color: str | None = None
    subfolder_count: int = field(
        metadata=field_options(alias="subfolderCount"), default=0
    )

    class Config(BaseConfig):
        serialize_by_alias = True
        omit_none = True


@dataclass
class FolderVO(DataClassJSONMixin):
    """Folder view with statistics from the file service."""

    id: int
    name: str
    path: str
    user_id: int = field(metadata=field_options(alias="userId"))
    parent_id: int | None = field(
        metadata=field_options(alias="parentId"), default=None
    )
    parent_name: str | None = field(
        metadata=field_options(alias="parentName"), default=None
    )
    is_favorite: bool = field(metadata=field_options(alias="isFavorite"), default=False)
    color: str | None = None
    description: str | None = None
    create_time: int = field(metadata=field_options(alias="createTime"), default=0)
    update_time: int = field(metadata=field_options(alias="updateTime"), default=0)

    file_count: int = field(metadata=field_options(alias="fileCount"), default=0)
    subfolder_count: int = field(
        metadata=field_options(alias="subfolderCount"), default=0
    )
    total_size: int = field(metadata=field_options(alias="totalSize"), default=0)
    formatted_size: str = field(
        metadata=field_options(alias="formattedSize"), default="0 B"
    )

    subfolders: list[SubfolderVO] = field(default_factory=list)
    """Direct children, only populated for detail views."""

    files: list[FileVO] = field(default_factory=list)
    """Files in the folder, only populated for detail views."""

    breadcrumb: list[BreadcrumbVO] = field(default_factory=list)
    """Path from the root folder to this folder, inclusive."""

    class Config(BaseConfig):
        serialize_by_alias = True
        omit_none = True


@dataclass
class FolderResponseVO(BaseResponse):
    """Response carrying a single folder."""

    folder: FolderVO | None = None


@dataclass
class FolderListVO(BaseResponse):
    """Response carrying a list of folders."""

    folders: list[FolderVO] = field(default_factory=list)


@dataclass
class BulkDeleteVO(BaseResponse):
    """Result of a bulk delete."""

    deleted_count: int = field(metadata=field_options(alias="deletedCount"), default=0)
    total_requested: int = field(
        metadata=field_options(alias="totalRequested"), default=0
    )
    message: str = ""


@dataclass
class FolderAccessVO(BaseResponse):
    """Access level of the caller on a folder."""

    folder_id: int = field(metadata=field_options(alias="folderId"), default=0)
    has_access: bool = field(metadata=field_options(alias="hasAccess"), default=False)
    permission: str = "none"
