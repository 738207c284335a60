"""
syncroom.services.hub
~~~~~~~~~~~~~~~~~~~~~

房间中枢 —— 注册表的唯一写入者。

所有连接的连接、消息、断开事件以及闲置清理的 ``ReaperTick`` 都进入同一个
``asyncio.Queue`` 信箱，由 ``run()`` 协程按到达顺序逐个交给调度器处理，
处理完成后再把产出的消息交给 ``ConnectionManager``。因此任何一次广播看到的
成员快照都是该事件到达时的状态。

在 FastAPI lifespan 中创建并挂载于 ``app.state.hub``。
"""
from __future__ import annotations

import asyncio

from syncroom.core.clock import Clock, SystemClock
from syncroom.core.config import Settings
from syncroom.core.logging import get_logger
from syncroom.schemas.events import Event
from syncroom.services.connection import ConnectionManager
from syncroom.services.connection_registry import ConnectionRegistry
from syncroom.services.dispatcher import Dispatcher
from syncroom.services.reaper import IdleReaper
from syncroom.services.room_registry import RoomRegistry

logger = get_logger(__name__)


class RoomHub:
    """单协程事件循环。

    Attributes:
        dispatcher: 协议状态机。
        manager: 连接 outbox 管理器。
        reaper: 闲置清理器，``run_reaper()`` 使用。
    """

    def __init__(self, dispatcher: Dispatcher, manager: ConnectionManager) -> None:
        self.dispatcher = dispatcher
        self.manager = manager
        self.reaper: IdleReaper = dispatcher.reaper
        self._mailbox: asyncio.Queue[Event] = asyncio.Queue()

    @property
    def rooms(self) -> RoomRegistry:
        return self.dispatcher.rooms

    @property
    def connections(self) -> ConnectionRegistry:
        return self.dispatcher.connections

    def submit(self, event: Event) -> None:
        """投递事件到信箱，立即返回。"""
        self._mailbox.put_nowait(event)

    def process(self, event: Event) -> None:
        """处理单个事件。异常只影响当前事件，不会中断事件循环。"""
        try:
            outbound = self.dispatcher.handle(event)
        except Exception as e:
            logger.error("事件处理异常: %s | event=%r", e, event, exc_info=True)
            return
        self.manager.deliver(outbound)

    async def run(self) -> None:
        """持续消费信箱，直到任务被取消。"""
        logger.info("房间中枢已启动 | policy=%s", self.rooms.policy)
        while True:
            event = await self._mailbox.get()
            try:
                self.process(event)
            finally:
                self._mailbox.task_done()

    async def run_reaper(self) -> None:
        await self.reaper.run(self.submit)

    async def join(self) -> None:
        """等待信箱中已投递的事件全部处理完毕。"""
        await self._mailbox.join()


def create_room_hub(settings: Settings, clock: Clock | None = None) -> RoomHub:
    """按配置组装注册表、调度器、清理器与连接管理器。"""
    clock = clock or SystemClock()
    rooms = RoomRegistry(policy=settings.JOIN_POLICY, clock=clock)
    reaper = IdleReaper(
        rooms,
        idle_timeout=settings.ROOM_IDLE_TIMEOUT,
        interval=settings.REAP_INTERVAL,
    )
    dispatcher = Dispatcher(
        connections=ConnectionRegistry(),
        rooms=rooms,
        reaper=reaper,
        clock=clock,
        sync_start_delay_ms=settings.SYNC_START_DELAY_MS,
    )
    return RoomHub(dispatcher, ConnectionManager(max_size=settings.OUTBOX_MAX_SIZE))
