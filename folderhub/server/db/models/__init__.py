"""Module for database models."""

from . import folder  # noqa: F401

__all__ = [
    "folder",
]
