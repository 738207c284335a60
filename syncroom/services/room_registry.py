"""
syncroom.services.room_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间注册表 —— 管理所有存活房间的生命周期。

- ``create_room(session)``      → 生成唯一房间码并建房，发起者为房主兼首位成员
- ``join_room(code, session)``  → 按配置的加入策略（strict / auto_create）加入房间
- ``leave_room(session)``       → 离开房间，房间空了或房主离开则销毁
- ``touch(code)``               → 刷新最近活跃时间
- ``destroy_room(code)``        → 移除房间并清空所有前成员的 ``current_room``
- ``reap(idle_timeout)``        → 销毁空房间与闲置超时的房间

注册表本身不做并发控制，调用方（``RoomHub``）保证只有一个协程写入。
"""
from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field

from syncroom.core.clock import Clock, SystemClock
from syncroom.core.config import JoinPolicy
from syncroom.core.logging import get_logger
from syncroom.schemas.rooms import RoomInfoData
from syncroom.services.room import Room
from syncroom.services.session import Session

logger = get_logger(__name__)

ROOM_CODE_LENGTH: int = 8


def generate_room_code() -> str:
    """随机生成 8 位十进制房间码（不足补零）。"""
    return f"{random.randrange(10 ** ROOM_CODE_LENGTH):0{ROOM_CODE_LENGTH}d}"


class RoomNotFoundError(LookupError):
    """strict 策略下加入不存在的房间。"""

    def __init__(self, code: str) -> None:
        super().__init__(f"Room {code} not found")
        self.code = code


@dataclass
class JoinResult:
    """一次成功加入的结果。

    Attributes:
        room: 加入的房间。
        users: 加入后的成员名称（按加入顺序），用于新成员的初始同步。
        is_owner: 加入者是否为房主。
        created: 房间是否由本次加入自动创建。
        notify: 需要收到 ``userJoined`` 的其他成员；重复加入时为空。
    """

    room: Room
    users: list[str]
    is_owner: bool
    created: bool = False
    notify: list[Session] = field(default_factory=list)


@dataclass
class LeaveResult:
    """一次离开的结果。``notify`` 取自成员移除之后、房间销毁之前的状态。"""

    code: str
    session: Session
    notify: list[Session]
    destroyed: bool


class RoomRegistry:
    """存活房间的唯一持有者。

    Attributes:
        policy: 加入不存在房间时的策略。
        clock: 时间来源。
    """

    def __init__(
        self,
        policy: JoinPolicy = "strict",
        clock: Clock | None = None,
        code_factory: Callable[[], str] = generate_room_code,
    ) -> None:
        self.policy: JoinPolicy = policy
        self.clock: Clock = clock or SystemClock()
        self._code_factory = code_factory
        self._rooms: dict[str, Room] = {}

    # ── 查询 ──────────────────────────────────────────────────────────

    def get(self, code: str) -> Room | None:
        return self._rooms.get(code)

    def list_rooms(self) -> list[RoomInfoData]:
        """列出所有存活房间的摘要信息。"""
        return [room.info() for room in self._rooms.values()]

    def can_join(self, code: str) -> bool:
        """当前策略下能否加入 ``code``：房间存在，或策略允许自动建房。"""
        return code in self._rooms or self.policy == "auto_create"

    def __contains__(self, code: object) -> bool:
        return code in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    # ── 生命周期 ──────────────────────────────────────────────────────

    def create_room(self, session: Session) -> Room:
        """以拒绝采样生成唯一房间码并建房。

        调用方需保证 ``session`` 此时不在任何房间中。
        """
        code = self._code_factory()
        while code in self._rooms:
            code = self._code_factory()

        room = self._register(code, session)
        logger.info("房间已创建 | room=%s | owner=%s", code, session.connection_id)
        return room

    def join_room(self, code: str, session: Session) -> JoinResult:
        """加入房间。

        Args:
            code: 目标房间码。
            session: 加入者会话；若已在其他房间，调用方需先让其离开。

        Raises:
            RoomNotFoundError: strict 策略下房间不存在。
        """
        room = self._rooms.get(code)
        created = False
        if room is None:
            if self.policy == "strict":
                raise RoomNotFoundError(code)
            room = self._register(code, session)
            created = True
            logger.info("房间已自动创建 | room=%s | owner=%s", code, session.connection_id)

        already_member = room.has_member(session.connection_id)
        room.add_member(session)
        self.touch(code)

        return JoinResult(
            room=room,
            users=room.usernames(),
            is_owner=room.is_owner(session.connection_id),
            created=created,
            notify=[] if already_member or created else room.others(session.connection_id),
        )

    def leave_room(self, session: Session) -> LeaveResult | None:
        """让会话离开其所在房间。会话不在任何房间时返回 ``None``。"""
        code = session.current_room
        room = self._rooms.get(code) if code is not None else None
        if room is None or not room.has_member(session.connection_id):
            session.current_room = None
            return None

        room.remove_member(session.connection_id)
        self.touch(code)

        # 先按移除后的状态确定通知对象，再判断是否销毁
        notify = list(room.members.values())
        destroyed = False
        if room.is_empty or room.is_owner(session.connection_id):
            self.destroy_room(code)
            destroyed = True

        return LeaveResult(code=code, session=session, notify=notify, destroyed=destroyed)

    def touch(self, code: str) -> None:
        room = self._rooms.get(code)
        if room is not None:
            room.last_active_at = self.clock.now()

    def destroy_room(self, code: str) -> list[Session]:
        """移除房间，返回销毁前的成员列表。

        所有前成员的 ``current_room`` 被清空，不会指向已不存在的房间码。
        """
        room = self._rooms.pop(code, None)
        if room is None:
            return []

        former = list(room.members.values())
        for session in former:
            if session.current_room == code:
                session.current_room = None
        room.members.clear()
        logger.info("房间已销毁 | room=%s | 前成员: %d", code, len(former))
        return former

    def reap(self, idle_timeout: float) -> list[str]:
        """销毁空房间以及闲置超过 ``idle_timeout`` 秒的房间，返回被销毁的房间码。"""
        now = self.clock.now()
        stale = [
            code
            for code, room in self._rooms.items()
            if room.is_empty or now - room.last_active_at > idle_timeout
        ]
        for code in stale:
            self.destroy_room(code)
        return stale

    # ── 内部 ──────────────────────────────────────────────────────────

    def _register(self, code: str, owner: Session) -> Room:
        room = Room(code=code, owner=owner.connection_id, created_at=self.clock.now())
        room.add_member(owner)
        self._rooms[code] = room
        return room
