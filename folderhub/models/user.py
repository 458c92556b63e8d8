"""User data models shared with the user service."""

from dataclasses import dataclass, field

from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.json import DataClassJSONMixin

from .base import BaseResponse


@dataclass
class UserVO(DataClassJSONMixin):
    """A user as reported by the user service."""

    id: int
    email: str
    first_name: str | None = field(
        metadata=field_options(alias="firstName"), default=None
    )
    last_name: str | None = field(
        metadata=field_options(alias="lastName"), default=None
    )
    storage_used: int | None = field(
        metadata=field_options(alias="storageUsed"), default=None
    )
    storage_limit: int | None = field(
        metadata=field_options(alias="storageLimit"), default=None
    )

    class Config(BaseConfig):
        serialize_by_alias = True
        omit_none = True


@dataclass
class UserCreatedEventDTO(DataClassJSONMixin):
    """Event published by the user service when an account is created."""

    id: int
    email: str | None = None


@dataclass
class UserDeletedEventDTO(DataClassJSONMixin):
    """Event published by the user service when an account is removed."""

    user_id: int = field(metadata=field_options(alias="userId"))


@dataclass
class UserDeletedVO(BaseResponse):
    """Cleanup performed for a deleted user."""

    shares_deleted: int = field(
        metadata=field_options(alias="sharesDeleted"), default=0
    )
    folders_deleted: int = field(
        metadata=field_options(alias="foldersDeleted"), default=0
    )
