import logging
from typing import Protocol

from folderhub.client.exceptions import ApiException
from folderhub.client.exceptions import NotFoundException as ClientNotFoundException
from folderhub.models.user import UserVO

from ..exceptions import NotFoundException, ServiceUnavailableException
from .coordination import CoordinationService

logger = logging.getLogger(__name__)


class UserCollaborator(Protocol):
    """Remote user service, see folderhub.client.user.UserServiceClient."""

    async def user_by_id(self, user_id: int) -> UserVO: ...

    async def user_by_email(self, email: str) -> UserVO: ...


class UserDirectory:
    """Cached user lookups against the user service."""

    def __init__(
        self,
        client: UserCollaborator,
        coordination_service: CoordinationService,
        cache_ttl: int = 300,
    ) -> None:
        """Create a user directory."""
        self._client = client
        self._coordination_service = coordination_service
        self._cache_ttl = cache_ttl

    async def get_user_by_id(self, user_id: int) -> UserVO:
        """Return the user with the given ID.

        Raises NotFoundException if the user does not exist and
        ServiceUnavailableException if the user service cannot be reached.
        """
        key = f"user:id:{user_id}"
        if (cached := await self._coordination_service.get_value(key)) is not None:
            return UserVO.from_json(cached)
        try:
            user = await self._client.user_by_id(user_id)
        except ClientNotFoundException as err:
            raise NotFoundException(f"User not found with id: {user_id}") from err
        except ApiException as err:
            logger.warning("User service lookup for id %s failed: %s", user_id, err)
            raise ServiceUnavailableException("User service unavailable") from err
        await self._cache(user)
        return user

    async def get_user_by_email(self, email: str) -> UserVO:
        """Return the user with the given e-mail address."""
        key = f"user:email:{email.lower()}"
        if (cached := await self._coordination_service.get_value(key)) is not None:
            return UserVO.from_json(cached)
        try:
            user = await self._client.user_by_email(email)
        except ClientNotFoundException as err:
            raise NotFoundException(f"User with email {email} not found") from err
        except ApiException as err:
            logger.warning("User service lookup for %s failed: %s", email, err)
            raise ServiceUnavailableException("User service unavailable") from err
        await self._cache(user)
        return user

    async def get_email(self, user_id: int) -> str:
        """Return the user's e-mail, or "unknown" if it cannot be resolved."""
        try:
            return (await self.get_user_by_id(user_id)).email
        except (NotFoundException, ServiceUnavailableException):
            logger.warning("Could not fetch email for user %s", user_id)
            return "unknown"

    async def evict(self, user_id: int) -> None:
        """Drop a cached user, e.g. after the account was deleted."""
        key = f"user:id:{user_id}"
        if (cached := await self._coordination_service.pop_value(key)) is not None:
            user = UserVO.from_json(cached)
            await self._coordination_service.delete_value(
                f"user:email:{user.email.lower()}"
            )

    async def _cache(self, user: UserVO) -> None:
        value = user.to_json()
        await self._coordination_service.set_value(
            f"user:id:{user.id}", value, ttl=self._cache_ttl
        )
        await self._coordination_service.set_value(
            f"user:email:{user.email.lower()}", value, ttl=self._cache_ttl
        )
