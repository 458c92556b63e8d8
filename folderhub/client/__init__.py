"""Clients for the services folderhub collaborates with."""

from .client import Client
from .file import FileServiceClient
from .user import UserServiceClient

__all__ = [
    "Client",
    "FileServiceClient",
    "UserServiceClient",
]
