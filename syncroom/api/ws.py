"""
syncroom.api.ws
~~~~~~~~~~~~~~~

WebSocket 同步接口。

每个连接分配一个 ``uuid4`` 连接 ID，并发运行两个协程：
  - 接收协程：把收到的每一帧原样投递给 ``RoomHub``（``Message`` 事件）
  - 发送协程：把该连接 outbox 中的消息依次写回 WebSocket

连接关闭时投递 ``Disconnect`` 事件，由调度器完成隐式离开房间。

根路径 ``/`` 与 ``/ws`` 等价，根路径供直接连接 ``ws://host:port`` 的旧客户端使用。
"""
from __future__ import annotations

import asyncio
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from syncroom.core.logging import get_logger
from syncroom.schemas.events import Connect, Disconnect, Message
from syncroom.services.hub import RoomHub

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/ws")
@router.websocket("/")
async def websocket_sync_endpoint(websocket: WebSocket) -> None:
    """WebSocket 房间同步端点。

    消息协议见 ``syncroom.services.dispatcher``。

    Args:
        websocket: FastAPI WebSocket 连接对象。
    """
    hub: RoomHub = websocket.app.state.hub
    connection_id = uuid.uuid4().hex

    await websocket.accept()
    outbox = hub.manager.register(connection_id)
    hub.submit(Connect(connection_id))

    async def send_loop() -> None:
        try:
            while True:
                payload = await outbox.get()
                await websocket.send_text(payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("WebSocket 发送失败: %s | conn=%s", e, connection_id)

    sender = asyncio.create_task(send_loop())
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""
            hub.submit(Message(connection_id, raw))
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket 接收异常: %s | conn=%s", e, connection_id, exc_info=True)
    finally:
        sender.cancel()
        hub.manager.unregister(connection_id)
        hub.submit(Disconnect(connection_id))
