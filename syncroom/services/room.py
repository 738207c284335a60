"""
syncroom.services.room
~~~~~~~~~~~~~~~~~~~~~~

房间领域模型 —— 房间码、成员、房主与最近活跃时间。

房主与最近活跃时间作为 ``Room`` 的属性存放，房间从注册表移除时一并消失，
不会留下悬空记录。
"""
from __future__ import annotations

from syncroom.schemas.rooms import RoomInfoData
from syncroom.services.session import Session


class Room:
    """一个同步房间。

    Attributes:
        code: 8 位房间码。
        owner: 房主的连接 ID。
        members: 连接 ID → 会话，保持加入顺序。
        last_active_at: 最近一次状态变更或广播的时间（秒）。
    """

    def __init__(self, code: str, owner: str, created_at: float) -> None:
        self.code = code
        self.owner = owner
        self.members: dict[str, Session] = {}
        self.last_active_at = created_at

    def add_member(self, session: Session) -> None:
        self.members[session.connection_id] = session
        session.current_room = self.code

    def remove_member(self, connection_id: str) -> Session | None:
        session = self.members.pop(connection_id, None)
        if session is not None and session.current_room == self.code:
            session.current_room = None
        return session

    def has_member(self, connection_id: str) -> bool:
        return connection_id in self.members

    def is_owner(self, connection_id: str) -> bool:
        return self.owner == connection_id

    def usernames(self) -> list[str]:
        """成员名称列表（按加入顺序）。"""
        return [session.username for session in self.members.values()]

    def others(self, connection_id: str) -> list[Session]:
        """除指定连接以外的成员。"""
        return [s for cid, s in self.members.items() if cid != connection_id]

    @property
    def is_empty(self) -> bool:
        return not self.members

    @property
    def member_count(self) -> int:
        return len(self.members)

    def info(self) -> RoomInfoData:
        return RoomInfoData(
            code=self.code,
            owner=self.owner,
            members=self.usernames(),
            member_count=self.member_count,
            last_active_at=self.last_active_at,
        )
