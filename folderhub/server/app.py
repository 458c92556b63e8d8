import json
import logging
import time
from typing import Any, Awaitable, Callable

import aiohttp
import jwt
from aiohttp import web
from mashumaro.exceptions import InvalidFieldValue, MissingField

from folderhub.client import Client, FileServiceClient, UserServiceClient
from folderhub.client.client import USER_ID_HEADER
from folderhub.models.base import create_error_response

from .config import ServerConfig
from .db.session import DatabaseSessionManager
from .exceptions import FolderServiceException
from .routes import events, folders, shares
from .services.aggregator import FileAggregator, FileCollaborator
from .services.coordination import LocalCoordinationService
from .services.events import UserEventHandler
from .services.folder import FolderService
from .services.share import FolderShareService
from .services.user import UserCollaborator, UserDirectory

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error_response(message: str, error_code: str, status: int) -> web.Response:
    return web.json_response(
        create_error_response(message, error_code).to_dict(), status=status
    )


@web.middleware
async def trace_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    start = time.monotonic()
    status = 500
    try:
        response = await handler(request)
        status = response.status
        return response
    except web.HTTPException as err:
        status = err.status
        raise
    finally:
        log_entry = {
            "timestamp": time.time(),
            "method": request.method,
            "path": request.path,
            "user": request.get("user_id"),
            "status": status,
            "duration_ms": round((time.monotonic() - start) * 1000, 2),
        }
        trace_log_file = request.app["config"].trace_log_file
        try:
            with open(trace_log_file, "a") as f:
                f.write(json.dumps(log_entry) + "\n")
        except OSError as e:
            logger.error("Failed to write to trace log: %s", e)


@web.middleware
async def error_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except FolderServiceException as err:
        return _error_response(str(err), err.error_code, err.status)
    except (MissingField, InvalidFieldValue, json.JSONDecodeError) as err:
        return _error_response(f"Invalid request: {err}", "E400", 400)
    except Exception:
        logger.exception("Unhandled error for %s %s", request.method, request.path)
        return _error_response("Internal server error", "E500", 500)


def _user_from_token(token: str, secret: str) -> int | None:
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError as err:
        logger.debug("Rejected token: %s", err)
        return None
    user_id = payload.get("userId", payload.get("sub"))
    try:
        return int(user_id)
    except (TypeError, ValueError):
        return None


@web.middleware
async def auth_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    config: ServerConfig = request.app["config"]
    user_id: int | None = None

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        user_id = _user_from_token(token, config.auth.secret_key)
        if user_id is None:
            return _error_response("Invalid token", "E401", 401)
    elif config.auth.trust_user_header and (
        header := request.headers.get(USER_ID_HEADER)
    ):
        try:
            user_id = int(header)
        except ValueError:
            return _error_response("Invalid user header", "E401", 401)

    if user_id is None:
        return _error_response("Unauthorized", "E401", 401)
    request["user_id"] = user_id
    return await handler(request)


async def create_app(
    config: ServerConfig | None = None,
    file_client: FileCollaborator | None = None,
    user_client: UserCollaborator | None = None,
) -> web.Application:
    """Create the folderhub application.

    HTTP clients for the file and user services are created against the
    configured URLs unless collaborators are passed in.
    """
    config = config or ServerConfig.load()

    middlewares = [error_middleware, auth_middleware]
    if config.trace_log_file:
        middlewares.insert(0, trace_middleware)
    app = web.Application(middlewares=middlewares)
    app["config"] = config

    session_manager = DatabaseSessionManager(config.database_url)
    coordination_service = LocalCoordinationService()
    app["session_manager"] = session_manager
    app["coordination_service"] = coordination_service

    websession: aiohttp.ClientSession | None = None
    if file_client is None or user_client is None:
        websession = aiohttp.ClientSession()
    if file_client is None:
        file_client = FileServiceClient(
            Client(
                websession,
                config.file_service_url,
                timeout=config.collaborator_timeout,
            )
        )
    if user_client is None:
        user_client = UserServiceClient(
            Client(
                websession,
                config.user_service_url,
                timeout=config.collaborator_timeout,
            )
        )

    aggregator = FileAggregator(file_client)
    user_directory = UserDirectory(
        user_client,
        coordination_service,
        cache_ttl=config.user_cache_ttl,
    )
    app["user_directory"] = user_directory
    app["folder_service"] = FolderService(
        session_manager, aggregator, user_directory, coordination_service
    )
    app["share_service"] = FolderShareService(
        session_manager, user_directory, coordination_service
    )
    app["user_event_handler"] = UserEventHandler(
        session_manager, user_directory, coordination_service
    )

    app.add_routes(folders.routes)
    app.add_routes(shares.routes)
    app.add_routes(events.routes)

    async def on_startup(app: web.Application) -> None:
        await session_manager.create_all()
        logger.info("folderhub started with database %s", config.database_url)

    async def on_cleanup(app: web.Application) -> None:
        if websession is not None:
            await websession.close()
        await session_manager.close()

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    return app


def run(args: Any) -> None:
    logging.basicConfig(level=logging.INFO)
    config = ServerConfig.load(getattr(args, "config", None))
    web.run_app(create_app(config), host=config.host, port=config.port)
