"""
syncroom.services.connection
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

连接管理器 —— 为每个在线连接维护一个有界的待发送队列（outbox）。

中枢投递消息时只做 ``put_nowait``，不等待网络 I/O；每个连接的写协程负责把
outbox 中的消息写到 WebSocket。某个连接的队列满了或已断开，只丢弃发给它的
那一条消息，不影响同一次广播中的其他接收者。
"""
from __future__ import annotations

import asyncio

from syncroom.core.logging import get_logger
from syncroom.schemas.messages import Outbound, OutboundMessage

logger = get_logger(__name__)


class ConnectionManager:
    """连接 ID → outbox 的映射。

    Attributes:
        max_size: 每个 outbox 的容量上限。
    """

    def __init__(self, max_size: int = 100) -> None:
        self.max_size = max_size
        self._outboxes: dict[str, asyncio.Queue[str]] = {}

    def register(self, connection_id: str) -> asyncio.Queue[str]:
        """为新连接创建 outbox，返回给该连接的写协程消费。"""
        outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=self.max_size)
        self._outboxes[connection_id] = outbox
        return outbox

    def unregister(self, connection_id: str) -> None:
        self._outboxes.pop(connection_id, None)

    def send(self, connection_id: str, payload: str) -> bool:
        """尽力投递一条已序列化的消息，失败只记录日志。"""
        outbox = self._outboxes.get(connection_id)
        if outbox is None:
            logger.debug("连接已不在线，丢弃消息 | conn=%s", connection_id)
            return False
        try:
            outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning("发送队列已满，丢弃消息 | conn=%s", connection_id)
            return False
        return True

    def deliver(self, outbound: list[Outbound]) -> None:
        """投递调度器产出的全部消息。同一消息对象只序列化一次。"""
        encoded: dict[int, str] = {}
        for item in outbound:
            payload = encoded.get(id(item.message))
            if payload is None:
                payload = self._encode(item.message)
                encoded[id(item.message)] = payload
            self.send(item.connection_id, payload)

    @staticmethod
    def _encode(message: OutboundMessage) -> str:
        return message.to_json()

    @property
    def online_count(self) -> int:
        return len(self._outboxes)
