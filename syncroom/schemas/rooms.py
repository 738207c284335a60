"""
syncroom.schemas.rooms
~~~~~~~~~~~~~~~~~~~~~~

房间查询接口的响应模型。
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class RoomInfoData(BaseModel):
    """房间摘要信息。"""

    code: str = Field(..., description="8 位房间码")
    owner: str = Field(..., description="房主的连接 ID")
    members: list[str] = Field(..., description="成员名称（按加入顺序）")
    member_count: int = Field(..., description="当前成员数")
    last_active_at: float = Field(..., description="最近活跃时间（Unix 秒）")
