"""FastAPI 应用主文件

app 创建 + lifespan 管理：
启动时加载配置、打开数据库、选择消息平台、组装生命周期引擎 / 分发器 / 调度器；
关闭时先停止调度器（等待进行中的 tick），再关闭消息平台客户端和数据库连接。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from resolvebot.core.config import BotConfig, load_bot_config
from resolvebot.core.lifecycle import TaskLifecycle
from resolvebot.core.scheduler import PingScheduler
from resolvebot.core.store import create_store_group

from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import health, interactions
from .services.discord_messenger import DiscordMessenger
from .services.dispatcher import InteractionDispatcher
from .services.echo_messenger import EchoMessenger

log = structlog.get_logger()


def create_messenger(config: BotConfig) -> DiscordMessenger | EchoMessenger:
    """根据 messenger_mode 选择消息平台适配器"""
    token = config.discord_token.get_secret_value()
    if config.messenger_mode == "discord":
        if token:
            log.info(
                "messenger_initialized",
                mode="discord",
                api_base=config.discord_api_base,
                timeout_s=config.http_timeout_s,
            )
            return DiscordMessenger(
                token=token,
                api_base=config.discord_api_base,
                timeout_s=config.http_timeout_s,
            )
        log.warning("discord_token_missing", fallback="echo")

    log.info("messenger_initialized", mode="echo")
    return EchoMessenger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    config = load_bot_config()
    app.state.config = config
    if not config.interactions_secret.get_secret_value():
        log.warning("interactions_secret_missing", effect="/api/interactions rejects all requests")

    # 启动：初始化 Store（失败时降级运行）
    store_group = await create_store_group(config.db_path)
    app.state.store_group = store_group

    messenger = create_messenger(config)
    app.state.messenger = messenger

    lifecycle = TaskLifecycle(
        store_group.task_store,
        default_interval_minutes=config.default_interval_min,
        default_max_pings=config.default_max_pings,
    )
    app.state.lifecycle = lifecycle
    app.state.dispatcher = InteractionDispatcher(
        lifecycle,
        messenger,
        timezone=config.zone(),
        default_interval_minutes=config.default_interval_min,
    )

    scheduler = PingScheduler(
        lifecycle,
        store_group.task_store,
        messenger,
        interval_seconds=config.ping_check_interval_s,
    )
    app.state.scheduler = scheduler
    scheduler.start()

    yield

    # 关闭：停止调度 -> 关闭消息平台 -> 关闭数据库连接
    await scheduler.stop()
    await messenger.aclose()
    await store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="resolve-bot",
        version="0.1.0",
        description="Resolve 任务追踪与提醒 bot",
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()

    # 注册路由
    app.include_router(interactions.router, tags=["interactions"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()


def run() -> None:
    """命令行入口：按 PORT 启动 uvicorn"""
    config = load_bot_config()
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_config=None)
