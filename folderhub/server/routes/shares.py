import logging

from aiohttp import web

from folderhub.models.base import NO_PERMISSION, BaseResponse
from folderhub.models.folder import FolderAccessVO
from folderhub.models.share import (
    FolderShareDTO,
    FolderShareListVO,
    FolderShareResponseVO,
    ShareNotificationListVO,
    ShareNotificationVO,
    ShareRespondDTO,
)

from ..exceptions import InvalidRequestException
from ..services.share import FolderShareService

logger = logging.getLogger(__name__)
routes = web.RouteTableDef()


@routes.post(r"/api/folders/{folder_id:\d+}/share")
async def handle_share_folder(request: web.Request) -> web.Response:
    # Endpoint: POST /api/folders/{id}/share
    # Purpose: Share an owned folder with another user by e-mail.
    req_data = FolderShareDTO.from_dict(await request.json())
    share_service: FolderShareService = request.app["share_service"]
    share = await share_service.share_folder(
        int(request.match_info["folder_id"]),
        request["user_id"],
        req_data.target_user_email,
        permissions=req_data.permissions,
        message=req_data.message,
        expires_at=req_data.expires_at,
        password=req_data.password,
        requires_approval=req_data.requires_approval,
    )
    return web.json_response(FolderShareResponseVO(share=share).to_dict(), status=201)


@routes.get(r"/api/folders/{folder_id:\d+}/shares")
async def handle_folder_shares(request: web.Request) -> web.Response:
    share_service: FolderShareService = request.app["share_service"]
    shares = await share_service.get_folder_shares(
        int(request.match_info["folder_id"]), request["user_id"]
    )
    return web.json_response(FolderShareListVO(shares=shares).to_dict())


@routes.delete(r"/api/folders/{folder_id:\d+}/shares/user")
async def handle_remove_user(request: web.Request) -> web.Response:
    # Endpoint: DELETE /api/folders/{id}/shares/user?email=<email>
    # Purpose: Remove every share of the folder with one user.
    email = request.query.get("email", "").strip()
    if not email:
        raise InvalidRequestException("Query parameter 'email' is required")
    share_service: FolderShareService = request.app["share_service"]
    await share_service.remove_user_from_folder(
        int(request.match_info["folder_id"]), request["user_id"], email
    )
    return web.json_response(BaseResponse().to_dict())


@routes.get(r"/api/folders/{folder_id:\d+}/access")
async def handle_folder_access(request: web.Request) -> web.Response:
    folder_id = int(request.match_info["folder_id"])
    share_service: FolderShareService = request.app["share_service"]
    permission = await share_service.get_permission(folder_id, request["user_id"])
    return web.json_response(
        FolderAccessVO(
            folder_id=folder_id,
            has_access=permission != NO_PERMISSION,
            permission=permission,
        ).to_dict()
    )


@routes.post(r"/api/folders/shares/{share_id:\d+}/respond")
async def handle_respond_to_share(request: web.Request) -> web.Response:
    # Endpoint: POST /api/folders/shares/{shareId}/respond
    # Purpose: Target user accepts or rejects a pending share.
    req_data = ShareRespondDTO.from_dict(await request.json())
    share_service: FolderShareService = request.app["share_service"]
    share = await share_service.respond_to_share(
        int(request.match_info["share_id"]),
        request["user_id"],
        req_data.accept,
        password=req_data.password,
    )
    return web.json_response(FolderShareResponseVO(share=share).to_dict())


@routes.delete(r"/api/folders/shares/{share_id:\d+}")
async def handle_revoke_share(request: web.Request) -> web.Response:
    share_service: FolderShareService = request.app["share_service"]
    await share_service.revoke_share(
        int(request.match_info["share_id"]), request["user_id"]
    )
    return web.json_response(BaseResponse().to_dict())


@routes.get("/api/folders/shared/with-me")
async def handle_shared_with_me(request: web.Request) -> web.Response:
    share_service: FolderShareService = request.app["share_service"]
    shares = await share_service.get_shared_with(request["user_id"])
    return web.json_response(FolderShareListVO(shares=shares).to_dict())


@routes.get("/api/folders/shared/by-me")
async def handle_shared_by_me(request: web.Request) -> web.Response:
    share_service: FolderShareService = request.app["share_service"]
    shares = await share_service.get_shares_created_by(request["user_id"])
    return web.json_response(FolderShareListVO(shares=shares).to_dict())


@routes.get("/api/folders/share-requests")
async def handle_share_requests(request: web.Request) -> web.Response:
    share_service: FolderShareService = request.app["share_service"]
    shares = await share_service.get_pending_shares(request["user_id"])
    return web.json_response(FolderShareListVO(shares=shares).to_dict())


@routes.get("/api/folders/share-notifications")
async def handle_share_notifications(request: web.Request) -> web.Response:
    share_service: FolderShareService = request.app["share_service"]
    user_id = request["user_id"]
    notifications = [
        ShareNotificationVO(
            id=share.id,
            owner=share.owner_email,
            folder_name=share.folder_name,
            permissions=share.permissions,
            user_id=user_id,
            message=share.message,
        )
        for share in await share_service.get_pending_shares(user_id)
    ]
    return web.json_response(
        ShareNotificationListVO(notifications=notifications).to_dict()
    )
