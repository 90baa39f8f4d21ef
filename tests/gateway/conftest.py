"""gateway 测试配置 -- FastAPI app + httpx AsyncClient fixture"""

from collections.abc import AsyncGenerator
from datetime import timedelta
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from resolvebot.core.config import BotConfig
from resolvebot.core.lifecycle import TaskLifecycle
from resolvebot.core.scheduler import PingScheduler
from resolvebot.core.store import create_store_group
from resolvebot.gateway.services.dispatcher import InteractionDispatcher
from resolvebot.gateway.services.echo_messenger import EchoMessenger

INTERACTIONS_SECRET = "test-interactions-secret"


@pytest_asyncio.fixture
async def test_app(tmp_path: Path, clock):
    """测试 app -- 手动初始化组件（绕过 lifespan）"""
    from resolvebot.gateway.main import create_app

    app = create_app()
    app.state.config = BotConfig(interactions_secret=SecretStr(INTERACTIONS_SECRET))

    store_group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    messenger = EchoMessenger()
    lifecycle = TaskLifecycle(store_group.task_store, clock=clock)
    # 调度器时钟落后一天：路由测试中创建的任务不会被后台 tick 提醒
    scheduler = PingScheduler(
        lifecycle,
        store_group.task_store,
        messenger,
        interval_seconds=3600,
        clock=lambda: clock() - timedelta(days=1),
    )
    app.state.store_group = store_group
    app.state.messenger = messenger
    app.state.lifecycle = lifecycle
    app.state.dispatcher = InteractionDispatcher(lifecycle, messenger, clock=clock)
    app.state.scheduler = scheduler
    scheduler.start()

    yield app

    await scheduler.stop()
    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
        headers={"X-Resolvebot-Secret": INTERACTIONS_SECRET},
    ) as ac:
        yield ac
