"""
syncroom.schemas.requests
~~~~~~~~~~~~~~~~~~~~~~~~~

客户端上行消息的 Pydantic 模型。

每个 ``action`` 对应一个请求模型，通过 ``action`` 字段做判别联合（discriminated
union）。无法解析的 JSON、未知的 ``action`` 或字段类型不符的消息都在边界处被拒绝，
``parse_request()`` 统一返回 ``None``，由调度器回复 ``Invalid action``。
"""
from __future__ import annotations

import math
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CreateRoomRequest(_Request):
    """建立新房间，发起者成为房主。"""

    action: Literal["createRoom"]
    username: str | None = Field(default=None, description="显示名称，缺省时沿用会话名称")


class JoinRoomRequest(_Request):
    """加入指定房间。"""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    action: Literal["joinRoom"]
    room: str | None = Field(default=None, description="8 位房间码")
    username: str | None = Field(default=None, description="显示名称，缺省时沿用会话名称")


class LeaveRoomRequest(_Request):
    action: Literal["leaveRoom"]


class BroadcastRequest(_Request):
    """向房间内其他成员转发任意数据。"""

    action: Literal["broadcast"]
    data: dict[str, Any] | None = Field(default=None, description="原样转发的负载")


class SyncStartRequest(_Request):
    action: Literal["syncStart"]


class SyncStopRequest(_Request):
    action: Literal["syncStop"]


class SyncBPMRequest(_Request):
    """同步节拍速度。非数值的 ``bpm`` 被归一为 ``None``，调度器据此忽略该消息。"""

    action: Literal["syncBPM"]
    bpm: int | None = None

    @field_validator("bpm", mode="before")
    @classmethod
    def _coerce_numeric(cls, value: Any) -> int | None:
        # bool 是 int 的子类，但 true/false 不算数值
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                return None
        else:
            return None
        if not math.isfinite(number):
            return None
        return int(number)


class DeleteRoomRequest(_Request):
    action: Literal["deleteRoom"]


InboundRequest = Annotated[
    Union[
        CreateRoomRequest,
        JoinRoomRequest,
        LeaveRoomRequest,
        BroadcastRequest,
        SyncStartRequest,
        SyncStopRequest,
        SyncBPMRequest,
        DeleteRoomRequest,
    ],
    Field(discriminator="action"),
]

_request_adapter: TypeAdapter[InboundRequest] = TypeAdapter(InboundRequest)


def parse_request(raw: str | bytes) -> InboundRequest | None:
    """将原始文本解析为请求模型。

    Args:
        raw: WebSocket 收到的原始文本帧。

    Returns:
        对应 ``action`` 的请求模型；JSON 非法、``action`` 未知或字段不合法时返回 ``None``。
    """
    try:
        return _request_adapter.validate_json(raw)
    except ValidationError:
        return None
