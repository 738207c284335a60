"""
syncroom.services.connection_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

连接注册表 —— 维护连接 ID 到会话的映射。
"""
from __future__ import annotations

from syncroom.core.logging import get_logger
from syncroom.services.session import Session

logger = get_logger(__name__)


class ConnectionRegistry:
    """跟踪所有在线连接的会话。

    断开时的隐式离开房间由调度器完成，本类只负责会话的创建与丢弃。
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def connect(self, connection_id: str) -> Session:
        """为新连接创建空会话；重复连接返回已有会话。"""
        session = self._sessions.get(connection_id)
        if session is None:
            session = Session(connection_id)
            self._sessions[connection_id] = session
            logger.info("连接已建立 | conn=%s | 在线: %d", connection_id, len(self._sessions))
        return session

    def get(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def disconnect(self, connection_id: str) -> Session | None:
        """丢弃会话。重复断开是无害的，返回 ``None``。"""
        session = self._sessions.pop(connection_id, None)
        if session is not None:
            logger.info("连接已断开 | conn=%s | 在线: %d", connection_id, len(self._sessions))
        return session

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
