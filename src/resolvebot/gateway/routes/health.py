"""健康检查路由

GET /health: Liveness 检查，永远返回 200，附带进程运行时长。
GET /ready: Readiness 检查，包含 SQLite 连通性与调度器状态。
GET /: 纯文本标识。
"""

import time

import structlog
from fastapi import APIRouter, Depends, Request
from resolvebot.core.store import StoreGroup
from starlette.responses import JSONResponse, PlainTextResponse

from ..deps import get_store_group

log = structlog.get_logger()

router = APIRouter()

_STARTED_AT = time.monotonic()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok", "uptime": round(time.monotonic() - _STARTED_AT, 3)}


@router.get("/", response_class=PlainTextResponse)
async def root():
    return "resolve-bot"


@router.get("/ready")
async def ready(
    request: Request,
    store_group: StoreGroup = Depends(get_store_group),
):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性（schema 初始化失败视为未就绪）
    2. scheduler: 提醒调度器是否在运行
    """
    checks = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        if store_group.ready:
            checks["sqlite"] = "ok"
        else:
            checks["sqlite"] = "error: schema not initialized"
            all_ok = False
    except Exception as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. 调度器状态
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None and scheduler.running:
        checks["scheduler"] = "ok"
    else:
        checks["scheduler"] = "stopped"
        all_ok = False

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={"status": status_text, "checks": checks},
    )
