"""Folder sharing API data models."""

from dataclasses import dataclass, field

from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.json import DataClassJSONMixin

from .base import BaseResponse, SharePermission


@dataclass
class FolderShareDTO(DataClassJSONMixin):
    """Request to share a folder with another user."""

    target_user_email: str = field(metadata=field_options(alias="targetUserEmail"))
    message: str | None = None
    permissions: str = SharePermission.READ.value
    """One of read, write or admin."""

    expires_at: int | None = field(
        metadata=field_options(alias="expiresAt"), default=None
    )
    """Expiry time in milliseconds since the epoch."""

    password: str | None = None
    """Optional password the target must present to accept."""

    requires_approval: bool = field(
        metadata=field_options(alias="requiresApproval"), default=True
    )
    """When false the share is accepted on creation."""


@dataclass
class ShareRespondDTO(DataClassJSONMixin):
    """Target user's answer to a pending share."""

    accept: bool
    password: str | None = None


@dataclass
class FolderShareVO(DataClassJSONMixin):
    """A folder share as seen by the owner or the target user."""

    id: int
    folder_id: int = field(metadata=field_options(alias="folderId"))
    folder_name: str = field(metadata=field_options(alias="folderName"))
    owner_email: str = field(metadata=field_options(alias="ownerEmail"))
    target_user_email: str = field(metadata=field_options(alias="targetUserEmail"))
    permissions: str
    status: str
    shared_at: int = field(metadata=field_options(alias="sharedAt"))
    message: str | None = None
    expires_at: int | None = field(
        metadata=field_options(alias="expiresAt"), default=None
    )
    responded_at: int | None = field(
        metadata=field_options(alias="respondedAt"), default=None
    )
    requires_password: bool = field(
        metadata=field_options(alias="requiresPassword"), default=False
    )
    requires_approval: bool = field(
        metadata=field_options(alias="requiresApproval"), default=True
    )

    class Config(BaseConfig):
        serialize_by_alias = True
        omit_none = True


@dataclass
class FolderShareResponseVO(BaseResponse):
    """Response carrying a single share."""

    share: FolderShareVO | None = None


@dataclass
class FolderShareListVO(BaseResponse):
    """Response carrying a list of shares."""

    shares: list[FolderShareVO] = field(default_factory=list)


@dataclass
class ShareNotificationVO(DataClassJSONMixin):
    """A pending share formatted for the notification feed."""

    id: int
    owner: str
    folder_name: str = field(metadata=field_options(alias="folderName"))
    permissions: str
    user_id: int = field(metadata=field_options(alias="userId"))
    type: str = "folder"
    message: str | None = None

    class Config(BaseConfig):
        serialize_by_alias = True
        omit_none = True


@dataclass
class ShareNotificationListVO(BaseResponse):
    """Response carrying the caller's share notifications."""

    notifications: list[ShareNotificationVO] = field(default_factory=list)
