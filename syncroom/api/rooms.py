"""
syncroom.api.rooms
~~~~~~~~~~~~~~~~~~

房间查询 REST 接口（只读）。

端点:
  - ``GET /rooms``         → 存活房间列表
  - ``GET /rooms/{code}``  → 房间详情
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from syncroom.api.deps import get_room_hub
from syncroom.schemas.api_response import ApiResponse
from syncroom.schemas.rooms import RoomInfoData
from syncroom.services.hub import RoomHub

router: APIRouter = APIRouter()


@router.get("/rooms", summary="获取存活房间列表")
async def list_rooms(hub: RoomHub = Depends(get_room_hub)) -> ApiResponse[list[RoomInfoData]]:
    return ApiResponse.ok(data=hub.rooms.list_rooms())


@router.get(
    "/rooms/{code}",
    summary="获取房间详情",
    response_model=ApiResponse[RoomInfoData],
)
async def room_info(code: str, hub: RoomHub = Depends(get_room_hub)):
    """返回指定房间的成员与活跃信息，房间不存在时返回 404。

    Args:
        code: 8 位房间码。
    """
    room = hub.rooms.get(code)
    if room is None:
        return JSONResponse(
            status_code=404,
            content=ApiResponse.fail(msg="Room not found", code=404).model_dump(),
        )
    return ApiResponse.ok(data=room.info())
