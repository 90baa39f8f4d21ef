"""SQLite 数据库初始化

PRAGMA 配置 + resolve_tasks 表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# resolve_tasks 表 DDL（时间列为定宽 UTC ISO-8601 文本）
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS resolve_tasks (
    task_id                   TEXT PRIMARY KEY,
    workspace_id              TEXT NOT NULL,
    channel_id                TEXT NOT NULL,
    tracking_message_id       TEXT,
    assignee_id               TEXT NOT NULL,
    creator_id                TEXT NOT NULL,
    description               TEXT NOT NULL,
    status                    TEXT NOT NULL DEFAULT 'active'
                              CHECK (status IN ('active','snoozed','resolved','cancelled')),
    interval_minutes          INTEGER NOT NULL CHECK (interval_minutes >= 1),
    next_ping_at              TEXT NOT NULL,
    ping_count                INTEGER NOT NULL DEFAULT 0 CHECK (ping_count >= 0),
    max_pings_before_escalate INTEGER NOT NULL CHECK (max_pings_before_escalate >= 0),
    escalate_to_group_id      TEXT,
    due_date                  TEXT,
    created_at                TEXT NOT NULL,
    resolved_at               TEXT,
    resolved_by               TEXT
);
"""

_TASKS_INDEXES = [
    # 调度器 due-set 查询只扫描未终结的任务
    (
        "CREATE INDEX IF NOT EXISTS idx_resolve_tasks_ping "
        "ON resolve_tasks(next_ping_at) WHERE status IN ('active','snoozed');"
    ),
    (
        "CREATE INDEX IF NOT EXISTS idx_resolve_tasks_workspace "
        "ON resolve_tasks(workspace_id, created_at DESC);"
    ),
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_TASKS_DDL)
    for idx_sql in _TASKS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
