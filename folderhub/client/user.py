"""Client for the user service."""

import urllib.parse

from folderhub.models.user import UserVO

from .client import Client


class UserServiceClient:
    """Client for user lookups."""

    def __init__(self, client: Client) -> None:
        """Initialize the UserServiceClient."""
        self._client = client

    async def user_by_id(self, user_id: int) -> UserVO:
        """Fetch a user by ID."""
        return await self._client.get_json(f"/api/users/{user_id}", UserVO)

    async def user_by_email(self, email: str) -> UserVO:
        """Fetch a user by e-mail address."""
        quoted = urllib.parse.quote(email, safe="")
        return await self._client.get_json(f"/api/users/email/{quoted}", UserVO)
