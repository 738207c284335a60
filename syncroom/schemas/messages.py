"""
syncroom.schemas.messages
~~~~~~~~~~~~~~~~~~~~~~~~~

服务端下行消息的 Pydantic 模型。每条消息都带有 ``type`` 字段用于区分。

字段名沿用现有前端的线上格式（``room_code``、``conn_id``、``sync_start_time``、
``isOwner``），序列化时统一使用 ``to_json()``。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class OutboundMessage(BaseModel):
    """所有下行消息的基类。"""

    type: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class RoomCreated(OutboundMessage):
    type: Literal["roomCreated"] = "roomCreated"
    room_code: str
    is_owner: bool = Field(default=True, serialization_alias="isOwner")
    username: str


class JoinSuccess(OutboundMessage):
    type: Literal["joinSuccess"] = "joinSuccess"
    room: str
    username: str
    is_owner: bool = Field(default=False, serialization_alias="isOwner")


class CurrentUsers(OutboundMessage):
    """新成员加入后收到的完整成员名单（按加入顺序）。"""

    type: Literal["currentUsers"] = "currentUsers"
    users: list[str]


class UserJoined(OutboundMessage):
    type: Literal["userJoined"] = "userJoined"
    room: str
    username: str


class LeaveSuccess(OutboundMessage):
    type: Literal["leaveSuccess"] = "leaveSuccess"
    room: str


class UserLeft(OutboundMessage):
    type: Literal["userLeft"] = "userLeft"
    room: str
    conn_id: str
    username: str


class BroadcastMessage(OutboundMessage):
    """成员自定义负载，原样合并到消息体中，``type`` 固定为 ``broadcast``。"""

    model_config = ConfigDict(extra="allow")

    type: Literal["broadcast"] = "broadcast"

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> BroadcastMessage:
        data = {key: value for key, value in (payload or {}).items() if key != "type"}
        return cls.model_validate(data)


class SyncStart(OutboundMessage):
    type: Literal["syncStart"] = "syncStart"
    conn_id: str
    sync_start_time: int = Field(..., description="统一开始播放的毫秒时间戳")


class SyncStop(OutboundMessage):
    type: Literal["syncStop"] = "syncStop"
    conn_id: str


class SyncBPM(OutboundMessage):
    type: Literal["syncBPM"] = "syncBPM"
    conn_id: str
    bpm: int


class RoomDeleted(OutboundMessage):
    type: Literal["roomDeleted"] = "roomDeleted"
    room: str


class ErrorMessage(OutboundMessage):
    type: Literal["error"] = "error"
    message: str


@dataclass(frozen=True)
class Outbound:
    """一条投递给指定连接的下行消息。"""

    connection_id: str
    message: OutboundMessage
