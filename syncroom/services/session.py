"""
syncroom.services.session
~~~~~~~~~~~~~~~~~~~~~~~~~

单个连接的会话状态。
"""
from __future__ import annotations

ANONYMOUS_PREFIX: str = "匿名_"


def default_username(connection_id: str) -> str:
    """未提供名称时的匿名显示名：``匿名_`` + 连接 ID 末 4 位。"""
    return f"{ANONYMOUS_PREFIX}{connection_id[-4:]}"


class Session:
    """连接建立时创建、断开时销毁的会话。

    Attributes:
        connection_id: 传输层分配的连接标识，连接存续期间不变。
        username: 显示名称。
        current_room: 所在房间码；仅当会话确实在该房间成员表中时非 ``None``。
    """

    def __init__(self, connection_id: str, username: str | None = None) -> None:
        self.connection_id = connection_id
        self.username = username or default_username(connection_id)
        self.current_room: str | None = None

    def __repr__(self) -> str:
        return (
            f"Session(connection_id={self.connection_id!r}, "
            f"username={self.username!r}, current_room={self.current_room!r})"
        )
