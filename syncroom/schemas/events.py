"""
syncroom.schemas.events
~~~~~~~~~~~~~~~~~~~~~~~

房间中枢的入站事件。传输层的连接、消息、断开回调以及清理定时器
统一转换为以下事件，依次进入同一个信箱按到达顺序处理。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Connect:
    connection_id: str


@dataclass(frozen=True)
class Message:
    connection_id: str
    raw: str | bytes


@dataclass(frozen=True)
class Disconnect:
    connection_id: str


@dataclass(frozen=True)
class ReaperTick:
    pass


Event = Union[Connect, Message, Disconnect, ReaperTick]
