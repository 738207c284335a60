"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 假时钟与预先组装好的注册表、调度器，
使房间状态机的测试无需真实等待即可推进时间。
"""
from __future__ import annotations

import json
import os
from typing import Any

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")

from syncroom.schemas.events import Connect, Message  # noqa: E402
from syncroom.schemas.messages import Outbound  # noqa: E402
from syncroom.services.connection_registry import ConnectionRegistry  # noqa: E402
from syncroom.services.dispatcher import Dispatcher  # noqa: E402
from syncroom.services.reaper import IdleReaper  # noqa: E402
from syncroom.services.room_registry import RoomRegistry  # noqa: E402

IDLE_TIMEOUT: float = 3600


class FakeClock:
    """可手动推进的时钟。"""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start

    def now(self) -> float:
        return self.current

    def now_ms(self) -> int:
        return int(self.current * 1000)

    def advance(self, seconds: float) -> None:
        self.current += seconds


def decode(outbound: list[Outbound], connection_id: str) -> list[dict[str, Any]]:
    """取出发给某个连接的全部消息（按产出顺序，已解码为 dict）。"""
    return [
        json.loads(item.message.to_json())
        for item in outbound
        if item.connection_id == connection_id
    ]


def send(dispatcher: Dispatcher, connection_id: str, **payload: Any) -> list[Outbound]:
    """以 JSON 文本帧的形式向调度器发送一条消息。"""
    return dispatcher.handle(Message(connection_id, json.dumps(payload)))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def rooms(clock: FakeClock) -> RoomRegistry:
    return RoomRegistry(policy="strict", clock=clock)


@pytest.fixture()
def connections() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture()
def dispatcher(connections: ConnectionRegistry, rooms: RoomRegistry, clock: FakeClock) -> Dispatcher:
    """strict 策略的调度器，已连接 x / y / z 三个客户端。"""
    reaper = IdleReaper(rooms, idle_timeout=IDLE_TIMEOUT, interval=60)
    instance = Dispatcher(connections, rooms, reaper=reaper, clock=clock, sync_start_delay_ms=5000)
    for cid in ("conn-x", "conn-y", "conn-z"):
        instance.handle(Connect(cid))
    return instance
