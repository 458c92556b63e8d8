from aiohttp import web

from folderhub.models.base import BaseResponse
from folderhub.models.user import (
    UserCreatedEventDTO,
    UserDeletedEventDTO,
    UserDeletedVO,
)

from ..services.events import UserEventHandler

routes = web.RouteTableDef()


@routes.post("/internal/events/user-created")
async def handle_user_created(request: web.Request) -> web.Response:
    event = UserCreatedEventDTO.from_dict(await request.json())
    handler: UserEventHandler = request.app["user_event_handler"]
    await handler.handle_user_created(event.id, event.email or "")
    return web.json_response(BaseResponse().to_dict())


@routes.post("/internal/events/user-deleted")
async def handle_user_deleted(request: web.Request) -> web.Response:
    # Endpoint: POST /internal/events/user-deleted
    # Purpose: Remove the deleted user's folders and every share involving them.
    event = UserDeletedEventDTO.from_dict(await request.json())
    handler: UserEventHandler = request.app["user_event_handler"]
    result = await handler.handle_user_deleted(event.user_id)
    return web.json_response(
        UserDeletedVO(
            shares_deleted=result.shares_deleted,
            folders_deleted=result.folders_deleted,
        ).to_dict()
    )
