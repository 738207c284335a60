"""
syncroom.services.reaper
~~~~~~~~~~~~~~~~~~~~~~~~

闲置房间清理。

``sweep()`` 直接在注册表上执行一次清理；``run()`` 按固定间隔向中枢信箱投递
``ReaperTick``，由中枢在处理其他事件的同一协程中调用 ``sweep()``，
清理因此与加入、离开等事件严格串行。清理不向任何成员发送通知。
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable

from syncroom.core.logging import get_logger
from syncroom.schemas.events import Event, ReaperTick
from syncroom.services.room_registry import RoomRegistry

logger = get_logger(__name__)


class IdleReaper:
    """定时销毁空房间与闲置超时的房间。

    Attributes:
        rooms: 房间注册表。
        idle_timeout: 闲置超时（秒）。
        interval: 清理间隔（秒）。
    """

    def __init__(self, rooms: RoomRegistry, idle_timeout: float = 3600, interval: float = 60) -> None:
        self.rooms = rooms
        self.idle_timeout = idle_timeout
        self.interval = interval

    def sweep(self) -> list[str]:
        """执行一次清理，返回被销毁的房间码。"""
        removed = self.rooms.reap(self.idle_timeout)
        for code in removed:
            logger.info("闲置或空房间已清理 | room=%s", code)
        return removed

    async def run(self, submit: Callable[[Event], None]) -> None:
        """每隔 ``interval`` 秒投递一次 ``ReaperTick``，直到任务被取消。"""
        logger.debug("闲置清理任务已启动 | interval=%ss | timeout=%ss", self.interval, self.idle_timeout)
        while True:
            await asyncio.sleep(self.interval)
            submit(ReaperTick())
