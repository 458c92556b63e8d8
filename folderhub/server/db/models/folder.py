import time
from typing import Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from folderhub.server.db.base import Base


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class FolderDO(Base):
    """Database model for a folder in a user's tree."""

    __tablename__ = "folders"
    __table_args__ = (Index("ix_folders_user_parent", "user_id", "parent_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Internal database ID."""

    name: Mapped[str] = mapped_column(String, nullable=False)
    """Folder name, unique among siblings of the same owner."""

    path: Mapped[str] = mapped_column(String, nullable=False)
    """Materialized path, e.g. /Parent/Child."""

    user_id: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
    """Owner user ID."""

    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("folders.id"), nullable=True
    )
    """Parent folder ID, null for root folders."""

    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    color: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    create_time: Mapped[int] = mapped_column(BigInteger, default=now_ms)
    """Creation timestamp."""

    update_time: Mapped[int] = mapped_column(
        BigInteger, default=now_ms, onupdate=now_ms
    )
    """Update timestamp."""

    def __repr__(self) -> str:
        return f"<FolderDO(id={self.id}, path='{self.path}', user_id={self.user_id})>"


class FolderShareDO(Base):
    """Database model for a folder shared with another user."""

    __tablename__ = "folder_shares"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Internal database ID."""

    folder_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("folders.id"), index=True, nullable=False
    )

    owner_id: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
    """Owner of the shared folder."""

    target_user_id: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
    """User the folder is shared with."""

    permissions: Mapped[str] = mapped_column(String, default="read", nullable=False)
    """One of read, write, admin."""

    message: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    shared_at: Mapped[int] = mapped_column(BigInteger, default=now_ms)

    expires_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    """Expiry in milliseconds, null for no expiry."""

    status: Mapped[str] = mapped_column(String, default="pending", nullable=False)
    """One of pending, accepted, rejected, revoked."""

    password_hash: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    """Salted password hash, see utils.hashing."""

    requires_password: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    requires_approval: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    responded_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    def is_expired(self, now: int | None = None) -> bool:
        """Return True if the share has an expiry in the past."""
        if self.expires_at is None:
            return False
        return (now if now is not None else now_ms()) >= self.expires_at

    def __repr__(self) -> str:
        return (
            f"<FolderShareDO(id={self.id}, folder_id={self.folder_id}, "
            f"target_user_id={self.target_user_id}, status='{self.status}')>"
        )
