"""
syncroom.schemas
~~~~~~~~~~~~~~~~
上行请求、下行消息、中枢事件与 REST 应答的 Pydantic 模型。
"""
from syncroom.schemas.api_response import ApiResponse
from syncroom.schemas.rooms import RoomInfoData

ApiResponse.model_rebuild()
