import logging

from aiohttp import web

from folderhub.models.base import BaseResponse
from folderhub.models.folder import (
    BulkOperationDTO,
    FolderCopyDTO,
    FolderCreateDTO,
    FolderListVO,
    FolderMoveDTO,
    FolderResponseVO,
    FolderUpdateDTO,
)

from ..services.folder import FolderService

logger = logging.getLogger(__name__)
routes = web.RouteTableDef()


@routes.post("/api/folders")
async def handle_create_folder(request: web.Request) -> web.Response:
    # Endpoint: POST /api/folders
    # Purpose: Create a folder at the root or under parentId.
    req_data = FolderCreateDTO.from_dict(await request.json())
    folder_service: FolderService = request.app["folder_service"]
    folder = await folder_service.create_folder(
        request["user_id"],
        req_data.name,
        parent_id=req_data.parent_id,
        description=req_data.description,
        color=req_data.color,
    )
    return web.json_response(FolderResponseVO(folder=folder).to_dict(), status=201)


@routes.get("/api/folders")
async def handle_root_folders(request: web.Request) -> web.Response:
    folder_service: FolderService = request.app["folder_service"]
    folders = await folder_service.get_root_folders(request["user_id"])
    return web.json_response(FolderListVO(folders=folders).to_dict())


@routes.get("/api/folders/favorites")
async def handle_favorite_folders(request: web.Request) -> web.Response:
    folder_service: FolderService = request.app["folder_service"]
    folders = await folder_service.get_favorite_folders(request["user_id"])
    return web.json_response(FolderListVO(folders=folders).to_dict())


@routes.get("/api/folders/search")
async def handle_search_folders(request: web.Request) -> web.Response:
    # Endpoint: GET /api/folders/search?q=<query>
    # Purpose: Case-insensitive search on folder names.
    folder_service: FolderService = request.app["folder_service"]
    folders = await folder_service.search_folders(
        request.query.get("q", ""), request["user_id"]
    )
    return web.json_response(FolderListVO(folders=folders).to_dict())


@routes.get(r"/api/folders/{folder_id:\d+}")
async def handle_folder_details(request: web.Request) -> web.Response:
    # Endpoint: GET /api/folders/{id}
    # Purpose: Folder with subfolders, files and breadcrumb.
    folder_service: FolderService = request.app["folder_service"]
    folder = await folder_service.get_folder_details(
        int(request.match_info["folder_id"]), request["user_id"]
    )
    return web.json_response(FolderResponseVO(folder=folder).to_dict())


@routes.get(r"/api/folders/{folder_id:\d+}/subfolders")
async def handle_subfolders(request: web.Request) -> web.Response:
    folder_service: FolderService = request.app["folder_service"]
    folders = await folder_service.get_subfolders(
        int(request.match_info["folder_id"]), request["user_id"]
    )
    return web.json_response(FolderListVO(folders=folders).to_dict())


@routes.put(r"/api/folders/{folder_id:\d+}")
async def handle_update_folder(request: web.Request) -> web.Response:
    # Endpoint: PUT /api/folders/{id}
    # Purpose: Rename a folder and/or change its color or description.
    req_data = FolderUpdateDTO.from_dict(await request.json())
    folder_service: FolderService = request.app["folder_service"]
    folder = await folder_service.update_folder(
        int(request.match_info["folder_id"]),
        request["user_id"],
        name=req_data.name,
        color=req_data.color,
        description=req_data.description,
    )
    return web.json_response(FolderResponseVO(folder=folder).to_dict())


@routes.post(r"/api/folders/{folder_id:\d+}/favorite")
async def handle_toggle_favorite(request: web.Request) -> web.Response:
    folder_service: FolderService = request.app["folder_service"]
    folder = await folder_service.toggle_favorite(
        int(request.match_info["folder_id"]), request["user_id"]
    )
    return web.json_response(FolderResponseVO(folder=folder).to_dict())


@routes.delete(r"/api/folders/{folder_id:\d+}")
async def handle_delete_folder(request: web.Request) -> web.Response:
    # Endpoint: DELETE /api/folders/{id}
    # Purpose: Delete a folder with its descendants, shares and files.
    folder_service: FolderService = request.app["folder_service"]
    await folder_service.delete_folder(
        int(request.match_info["folder_id"]), request["user_id"]
    )
    return web.json_response(BaseResponse().to_dict())


@routes.put(r"/api/folders/{folder_id:\d+}/move")
async def handle_move_folder(request: web.Request) -> web.Response:
    # Endpoint: PUT /api/folders/{id}/move
    # Purpose: Reparent a folder; a null newParentId moves it to the root.
    req_data = FolderMoveDTO.from_dict(await request.json())
    folder_service: FolderService = request.app["folder_service"]
    folder = await folder_service.move_folder(
        int(request.match_info["folder_id"]),
        req_data.new_parent_id,
        request["user_id"],
    )
    return web.json_response(FolderResponseVO(folder=folder).to_dict())


@routes.post(r"/api/folders/{folder_id:\d+}/copy")
async def handle_copy_folder(request: web.Request) -> web.Response:
    # Endpoint: POST /api/folders/{id}/copy
    # Purpose: Copy a folder subtree and its files.
    req_data = FolderCopyDTO.from_dict(await request.json())
    folder_service: FolderService = request.app["folder_service"]
    folder = await folder_service.copy_folder(
        int(request.match_info["folder_id"]),
        req_data.new_parent_id,
        request["user_id"],
        new_name=req_data.new_name,
    )
    return web.json_response(FolderResponseVO(folder=folder).to_dict(), status=201)


@routes.post("/api/folders/bulk/move")
async def handle_bulk_move(request: web.Request) -> web.Response:
    req_data = BulkOperationDTO.from_dict(await request.json())
    folder_service: FolderService = request.app["folder_service"]
    folders = await folder_service.bulk_move(
        req_data.folder_ids, req_data.new_parent_id, request["user_id"]
    )
    return web.json_response(FolderListVO(folders=folders).to_dict())


@routes.post("/api/folders/bulk/copy")
async def handle_bulk_copy(request: web.Request) -> web.Response:
    req_data = BulkOperationDTO.from_dict(await request.json())
    folder_service: FolderService = request.app["folder_service"]
    folders = await folder_service.bulk_copy(
        req_data.folder_ids, req_data.new_parent_id, request["user_id"]
    )
    return web.json_response(FolderListVO(folders=folders).to_dict(), status=201)


@routes.post("/api/folders/bulk/delete")
async def handle_bulk_delete(request: web.Request) -> web.Response:
    # Endpoint: POST /api/folders/bulk/delete
    # Purpose: Validate every folder first, then delete each best effort.
    req_data = BulkOperationDTO.from_dict(await request.json())
    folder_service: FolderService = request.app["folder_service"]
    result = await folder_service.bulk_delete(req_data.folder_ids, request["user_id"])
    return web.json_response(result.to_dict())
