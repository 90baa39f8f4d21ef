"""FastAPI lifespan 测试

测试内容：
1. 启动时组装 Store / Messenger / Dispatcher / Scheduler
2. 关闭时停止调度器并关闭连接
3. 按 messenger_mode 选择适配器
"""

from pathlib import Path

import pytest
from resolvebot.core.config import BotConfig
from resolvebot.gateway.main import create_app, create_messenger
from resolvebot.gateway.services.discord_messenger import DiscordMessenger
from resolvebot.gateway.services.echo_messenger import EchoMessenger


@pytest.fixture
def lifespan_env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("RESOLVEBOT_DB_PATH", str(tmp_path / "sqlite" / "bot.db"))
    monkeypatch.setenv("PING_CHECK_INTERVAL_MS", "100")
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    monkeypatch.delenv("RESOLVEBOT_MESSENGER_MODE", raising=False)
    return tmp_path


class TestLifespan:
    async def test_startup_and_shutdown(self, lifespan_env):
        app = create_app()

        async with app.router.lifespan_context(app):
            assert app.state.store_group.ready is True
            assert isinstance(app.state.messenger, EchoMessenger)
            assert app.state.dispatcher is not None
            scheduler = app.state.scheduler
            assert scheduler.running
            assert app.state.config.ping_check_interval_s == 0.1

        assert not scheduler.running
        assert (lifespan_env / "sqlite" / "bot.db").exists()


class TestCreateMessenger:
    async def test_discord_mode(self):
        config = BotConfig(messenger_mode="discord", discord_token="tok")
        messenger = create_messenger(config)
        try:
            assert isinstance(messenger, DiscordMessenger)
        finally:
            await messenger.aclose()

    def test_discord_mode_without_token_falls_back(self):
        config = BotConfig(messenger_mode="discord")
        assert isinstance(create_messenger(config), EchoMessenger)

    def test_echo_mode(self):
        assert isinstance(create_messenger(BotConfig()), EchoMessenger)
