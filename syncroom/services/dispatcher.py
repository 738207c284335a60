"""
syncroom.services.dispatcher
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

协议状态机 —— 每个入站事件调用一次 ``handle()``。

调度器只读写两个注册表并返回待发送的 ``Outbound`` 列表，本身不做任何 I/O；
消息的实际投递由 ``RoomHub`` 交给 ``ConnectionManager`` 完成。

支持的 ``action``:
  - ``createRoom``  —— 建房，回复 ``roomCreated``
  - ``joinRoom``    —— 加入，回复 ``joinSuccess`` + ``currentUsers``，通知他人 ``userJoined``
  - ``leaveRoom``   —— 离开，回复 ``leaveSuccess``，通知剩余成员 ``userLeft``
  - ``broadcast``   —— 转发自定义负载给其他成员
  - ``syncStart``   —— 向全体成员广播统一的开始播放时间
  - ``syncStop``    —— 向全体成员广播停止
  - ``syncBPM``     —— 向其他成员同步节拍速度
  - ``deleteRoom``  —— 解散房间，通知全部前成员 ``roomDeleted``

无法识别的消息一律回复 ``error{message: "Invalid action"}``；
需要房间上下文但会话不在房间中的操作静默忽略。
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from syncroom.core.clock import Clock
from syncroom.core.logging import get_logger
from syncroom.schemas.events import Connect, Disconnect, Event, Message, ReaperTick
from syncroom.schemas.messages import (
    BroadcastMessage,
    CurrentUsers,
    ErrorMessage,
    JoinSuccess,
    LeaveSuccess,
    Outbound,
    OutboundMessage,
    RoomCreated,
    RoomDeleted,
    SyncBPM,
    SyncStart,
    SyncStop,
    UserJoined,
    UserLeft,
)
from syncroom.schemas.requests import (
    BroadcastRequest,
    CreateRoomRequest,
    DeleteRoomRequest,
    JoinRoomRequest,
    LeaveRoomRequest,
    SyncBPMRequest,
    SyncStartRequest,
    SyncStopRequest,
    parse_request,
)
from syncroom.services.connection_registry import ConnectionRegistry
from syncroom.services.reaper import IdleReaper
from syncroom.services.room import Room
from syncroom.services.room_registry import LeaveResult, RoomNotFoundError, RoomRegistry
from syncroom.services.session import Session

logger = get_logger(__name__)

INVALID_ACTION: str = "Invalid action"
ROOM_CODE_REQUIRED: str = "Room code required"
ROOM_NOT_FOUND: str = "Room not found"


def _fanout(sessions: list[Session], message: OutboundMessage) -> list[Outbound]:
    return [Outbound(session.connection_id, message) for session in sessions]


class Dispatcher:
    """房间协议状态机。

    Attributes:
        connections: 连接注册表。
        rooms: 房间注册表。
        reaper: 处理 ``ReaperTick`` 时调用的闲置清理器。
        clock: 计算 ``syncStart`` 开始时间的时钟，默认与房间注册表共用。
        sync_start_delay_ms: ``syncStart`` 开始时间相对当前的延迟。
    """

    def __init__(
        self,
        connections: ConnectionRegistry,
        rooms: RoomRegistry,
        reaper: IdleReaper | None = None,
        clock: Clock | None = None,
        sync_start_delay_ms: int = 5000,
    ) -> None:
        self.connections = connections
        self.rooms = rooms
        self.reaper = reaper or IdleReaper(rooms)
        self.clock: Clock = clock or rooms.clock
        self.sync_start_delay_ms = sync_start_delay_ms

        self._handlers: dict[type, Callable[[Session, Any], list[Outbound]]] = {
            CreateRoomRequest: self._create_room,
            JoinRoomRequest: self._join_room,
            LeaveRoomRequest: self._leave_room,
            BroadcastRequest: self._broadcast,
            SyncStartRequest: self._sync_start,
            SyncStopRequest: self._sync_stop,
            SyncBPMRequest: self._sync_bpm,
            DeleteRoomRequest: self._delete_room,
        }

    def handle(self, event: Event) -> list[Outbound]:
        """处理一个入站事件，返回由此产生的下行消息。"""
        if isinstance(event, Message):
            return self._on_message(event)
        if isinstance(event, Connect):
            self.connections.connect(event.connection_id)
            return []
        if isinstance(event, Disconnect):
            return self._on_disconnect(event.connection_id)
        if isinstance(event, ReaperTick):
            self.reaper.sweep()
            return []
        raise TypeError(f"unsupported event: {event!r}")

    # ── 连接事件 ──────────────────────────────────────────────────────

    def _on_message(self, event: Message) -> list[Outbound]:
        session = self.connections.get(event.connection_id)
        if session is None:
            session = self.connections.connect(event.connection_id)

        request = parse_request(event.raw)
        handler = self._handlers.get(type(request))
        if handler is None:
            logger.debug("无效消息 | conn=%s", event.connection_id)
            return [self._error(session, INVALID_ACTION)]
        return handler(session, request)

    def _on_disconnect(self, connection_id: str) -> list[Outbound]:
        """断开等同于一次隐式离开，随后丢弃会话。重复断开不产生任何消息。"""
        session = self.connections.get(connection_id)
        if session is None:
            return []

        outbound: list[Outbound] = []
        result = self.rooms.leave_room(session)
        if result is not None:
            outbound.extend(self._departure_notices(result))
        self.connections.disconnect(connection_id)
        return outbound

    # ── 房间生命周期 ──────────────────────────────────────────────────

    def _create_room(self, session: Session, request: CreateRoomRequest) -> list[Outbound]:
        outbound = self._leave_current(session)
        if request.username is not None:
            session.username = request.username

        room = self.rooms.create_room(session)
        outbound.append(
            Outbound(
                session.connection_id,
                RoomCreated(room_code=room.code, is_owner=True, username=session.username),
            ),
        )
        return outbound

    def _join_room(self, session: Session, request: JoinRoomRequest) -> list[Outbound]:
        code = request.room
        if not code:
            return [self._error(session, ROOM_CODE_REQUIRED)]
        # 先确认能加入，再离开原房间，避免加入失败后两头落空
        if not self.rooms.can_join(code):
            logger.debug("房间不存在 | room=%s | conn=%s", code, session.connection_id)
            return [self._error(session, ROOM_NOT_FOUND)]

        outbound: list[Outbound] = []
        if session.current_room not in (None, code):
            outbound.extend(self._leave_current(session))
        if request.username is not None:
            session.username = request.username

        try:
            result = self.rooms.join_room(code, session)
        except RoomNotFoundError:
            outbound.append(self._error(session, ROOM_NOT_FOUND))
            return outbound

        cid = session.connection_id
        outbound.append(
            Outbound(cid, JoinSuccess(room=code, username=session.username, is_owner=result.is_owner)),
        )
        outbound.append(Outbound(cid, CurrentUsers(users=result.users)))
        outbound.extend(_fanout(result.notify, UserJoined(room=code, username=session.username)))
        return outbound

    def _leave_room(self, session: Session, request: LeaveRoomRequest) -> list[Outbound]:
        outbound = self._leave_current(session)
        if not outbound:
            logger.debug("leaveRoom 忽略：不在房间中 | conn=%s", session.connection_id)
        return outbound

    def _delete_room(self, session: Session, request: DeleteRoomRequest) -> list[Outbound]:
        room = self._current_room(session)
        if room is None:
            return []

        self.rooms.touch(room.code)
        # destroy_room 返回移除前的成员快照，通知不会落空
        former = self.rooms.destroy_room(room.code)
        logger.info("房间被成员解散 | room=%s | by=%s", room.code, session.connection_id)
        return _fanout(former, RoomDeleted(room=room.code))

    # ── 房间内广播 ────────────────────────────────────────────────────

    def _broadcast(self, session: Session, request: BroadcastRequest) -> list[Outbound]:
        room = self._current_room(session)
        if room is None:
            return []

        self.rooms.touch(room.code)
        message = BroadcastMessage.from_payload(request.data)
        return _fanout(room.others(session.connection_id), message)

    def _sync_start(self, session: Session, request: SyncStartRequest) -> list[Outbound]:
        room = self._current_room(session)
        if room is None:
            return []

        self.rooms.touch(room.code)
        start_time = self.clock.now_ms() + self.sync_start_delay_ms
        message = SyncStart(conn_id=session.connection_id, sync_start_time=start_time)
        return _fanout(list(room.members.values()), message)

    def _sync_stop(self, session: Session, request: SyncStopRequest) -> list[Outbound]:
        room = self._current_room(session)
        if room is None:
            return []

        self.rooms.touch(room.code)
        message = SyncStop(conn_id=session.connection_id)
        return _fanout(list(room.members.values()), message)

    def _sync_bpm(self, session: Session, request: SyncBPMRequest) -> list[Outbound]:
        room = self._current_room(session)
        if room is None or request.bpm is None:
            return []

        self.rooms.touch(room.code)
        message = SyncBPM(conn_id=session.connection_id, bpm=request.bpm)
        return _fanout(room.others(session.connection_id), message)

    # ── 内部 ──────────────────────────────────────────────────────────

    def _current_room(self, session: Session) -> Room | None:
        """会话当前所在且确为成员的房间。"""
        if session.current_room is None:
            return None
        room = self.rooms.get(session.current_room)
        if room is None or not room.has_member(session.connection_id):
            return None
        return room

    def _leave_current(self, session: Session) -> list[Outbound]:
        """主动离开当前房间：回复 ``leaveSuccess`` 并通知剩余成员。"""
        result = self.rooms.leave_room(session)
        if result is None:
            return []
        outbound = [Outbound(session.connection_id, LeaveSuccess(room=result.code))]
        outbound.extend(self._departure_notices(result))
        return outbound

    def _departure_notices(self, result: LeaveResult) -> list[Outbound]:
        """剩余成员收到 ``userLeft``；若房间随之销毁，再收到 ``roomDeleted``。"""
        left = UserLeft(
            room=result.code,
            conn_id=result.session.connection_id,
            username=result.session.username,
        )
        outbound = _fanout(result.notify, left)
        if result.destroyed:
            outbound.extend(_fanout(result.notify, RoomDeleted(room=result.code)))
        return outbound

    @staticmethod
    def _error(session: Session, message: str) -> Outbound:
        return Outbound(session.connection_id, ErrorMessage(message=message))
