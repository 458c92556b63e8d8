"""Low level HTTP client shared by the collaborator clients."""

import asyncio
import logging
from typing import Any, TypeVar

import aiohttp
from mashumaro.mixins.json import DataClassJSONMixin

from .exceptions import (
    ApiException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T", bound=DataClassJSONMixin)

USER_ID_HEADER = "X-User-Id"


class Client:
    """Thin wrapper around an aiohttp session for one collaborator host."""

    def __init__(
        self,
        websession: aiohttp.ClientSession,
        host: str,
        timeout: float | None = None,
    ) -> None:
        """Initialize the client."""
        self._websession = websession
        self._host = host.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

    def _url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._host}/{url.lstrip('/')}"

    async def request(
        self,
        method: str,
        url: str,
        user_id: int | None = None,
        **kwargs: Any,
    ) -> aiohttp.ClientResponse:
        """Make a request and raise on error statuses."""
        headers = dict(kwargs.pop("headers", None) or {})
        if user_id is not None:
            headers[USER_ID_HEADER] = str(user_id)
        if self._timeout is not None:
            kwargs.setdefault("timeout", self._timeout)
        _LOGGER.debug("request: %s %s", method, url)
        try:
            response = await self._websession.request(
                method, self._url(url), headers=headers, **kwargs
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise ApiException(f"Error connecting to {self._host}: {err}") from err

        if response.status >= 400:
            error_detail = await response.text()
            response.release()
            if response.status == 401:
                raise UnauthorizedException(f"Unauthorized response from {url}")
            if response.status == 403:
                raise ForbiddenException(f"Forbidden response from {url}")
            if response.status == 404:
                raise NotFoundException(f"Resource not found: {url}")
            raise ApiException(
                f"Error from API {url} ({response.status}): {error_detail}"
            )
        return response

    async def request_json(
        self, method: str, url: str, user_id: int | None = None, **kwargs: Any
    ) -> Any:
        """Make a request and return the decoded JSON body."""
        response = await self.request(method, url, user_id=user_id, **kwargs)
        try:
            return await response.json(content_type=None)
        except ValueError as err:
            raise ApiException("Server return malformed response") from err

    async def get_json(
        self, url: str, data_cls: type[_T], user_id: int | None = None, **kwargs: Any
    ) -> _T:
        """GET a JSON object and decode it into data_cls."""
        result = await self.request_json("get", url, user_id=user_id, **kwargs)
        return _decode(data_cls, result)

    async def post_json(
        self, url: str, data_cls: type[_T], user_id: int | None = None, **kwargs: Any
    ) -> _T:
        """POST and decode the JSON object response into data_cls."""
        result = await self.request_json("post", url, user_id=user_id, **kwargs)
        return _decode(data_cls, result)

    async def delete(self, url: str, user_id: int | None = None, **kwargs: Any) -> None:
        """Make a DELETE request, ignoring the body."""
        response = await self.request("delete", url, user_id=user_id, **kwargs)
        response.release()


def _decode(data_cls: type[_T], result: Any) -> _T:
    if not isinstance(result, dict):
        raise ApiException(f"Expected JSON object, got {type(result).__name__}")
    try:
        return data_cls.from_dict(result)
    except (LookupError, ValueError, TypeError) as err:
        raise ApiException(f"Invalid {data_cls.__name__} response: {err}") from err
