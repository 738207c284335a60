"""
syncroom.main
~~~~~~~~~~~~~

FastAPI 应用入口 —— 注册路由、挂载中间件、定义生命周期。
"""
from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from syncroom.api import rooms, ws
from syncroom.core.config import settings
from syncroom.core.logging import get_logger, setup_logging
from syncroom.schemas.api_response import ApiResponse
from syncroom.services.hub import create_room_hub

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """启动房间中枢与闲置清理任务，关闭时取消二者。"""
    hub = create_room_hub(settings)
    app.state.hub = hub
    tasks = [
        asyncio.create_task(hub.run(), name="room-hub"),
        asyncio.create_task(hub.run_reaper(), name="idle-reaper"),
    ]
    logger.info(
        "🚀 应用已启动 | env=%s | policy=%s | idle_timeout=%ss | reap_interval=%ss",
        settings.ENVIRONMENT,
        settings.JOIN_POLICY,
        settings.ROOM_IDLE_TIMEOUT,
        settings.REAP_INTERVAL,
    )
    yield
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("👋 应用已关闭")


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="协同音频同步房间协调服务",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

if settings.allow_cors_all_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

# ── 路由挂载 ──────────────────────────────────────────────────────────
app.include_router(rooms.router, prefix="/api", tags=["Rooms"])
app.include_router(ws.router, tags=["WebSocket Sync"])


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    detail = str(exc) if not settings.is_prod else "服务器内部错误"
    response = ApiResponse.fail(msg=detail, code=500, data=None)
    return JSONResponse(
        status_code=500,
        content=response.model_dump(),
    )


@app.get("/health", tags=["System"])
async def health_check(request: Request) -> JSONResponse:
    """服务存活检查，附带当前房间数与在线连接数。"""
    hub = request.app.state.hub
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "join_policy": settings.JOIN_POLICY,
            "rooms": len(hub.rooms),
            "connections": hub.manager.online_count,
        },
    )


def main() -> None:
    import uvicorn

    uvicorn.run(
        "syncroom.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,
        log_level=settings.effective_log_level.lower(),
    )


if __name__ == "__main__":
    main()
