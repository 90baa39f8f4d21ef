"""resolvebot Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite
import structlog

from .protocols import TaskStore
from .sqlite_init import init_db, verify_wal_mode
from .task_store import SqliteTaskStore

log = structlog.get_logger()


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection, ready: bool = True) -> None:
        self.conn = conn
        self.ready = ready
        self.task_store = SqliteTaskStore(conn)


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    schema 初始化失败时只记录 warning 并返回 ready=False 的实例组，
    进程以降级模式继续运行，后续查询失败由调用方记录。

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)

    try:
        await init_db(conn)
    except Exception as e:
        log.warning(
            "db_init_failed",
            db_path=db_path,
            error_type=type(e).__name__,
            error=str(e),
        )
        return StoreGroup(conn=conn, ready=False)

    log.info("db_ready", db_path=db_path)
    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "TaskStore",
    "init_db",
    "verify_wal_mode",
]
