"""全局 pytest 配置 -- 临时 SQLite 数据库 + 固定时钟 fixture"""

import os
import time
from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from resolvebot.core.lifecycle import TaskLifecycle
from resolvebot.core.models import ResolveTask, TaskStatus
from resolvebot.core.store import SqliteTaskStore
from resolvebot.gateway.services.echo_messenger import EchoMessenger

FIXED_NOW = datetime(2025, 1, 1, 10, 0, 0, tzinfo=UTC)

# 中欧时间：3 月最后一个周日 02:00 切换到 +02:00
CENTRAL_EUROPE_TZ = "CET-1CEST,M3.5.0,M10.5.0/3"


class FixedClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FixedClock:
    """固定在 2025-01-01T10:00:00Z 的时钟"""
    return FixedClock(FIXED_NOW)


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from resolvebot.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def task_store(db_conn: aiosqlite.Connection) -> SqliteTaskStore:
    return SqliteTaskStore(db_conn)


@pytest.fixture
def lifecycle(task_store: SqliteTaskStore, clock: FixedClock) -> TaskLifecycle:
    return TaskLifecycle(
        task_store,
        clock=clock,
        default_interval_minutes=30,
        default_max_pings=5,
    )


@pytest.fixture
def messenger() -> EchoMessenger:
    return EchoMessenger()


@pytest.fixture
def make_task(clock: FixedClock) -> Callable[..., ResolveTask]:
    """构造 ResolveTask，未指定字段使用默认值"""
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> ResolveTask:
        n = next(counter)
        data = {
            "task_id": f"01TESTTASK{n:016d}",
            "workspace_id": "guild-1",
            "channel_id": "chan-1",
            "assignee_id": "user-a",
            "creator_id": "user-c",
            "description": f"task {n}",
            "status": TaskStatus.ACTIVE,
            "interval_minutes": 30,
            "next_ping_at": clock(),
            "max_pings_before_escalate": 5,
            "created_at": clock(),
        }
        data.update(overrides)
        return ResolveTask(**data)

    return _make


@pytest.fixture
def central_europe_local_time() -> Iterator[None]:
    """把进程本地时区切换为有夏令时的中欧时间"""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset 不可用")
    original = os.environ.get("TZ")
    os.environ["TZ"] = CENTRAL_EUROPE_TZ
    time.tzset()
    yield
    if original is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = original
    time.tzset()
