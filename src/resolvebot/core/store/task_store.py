"""TaskStore SQLite 实现

每个状态流转都是一条带状态守卫的 UPDATE ... RETURNING 语句，
不使用多语句事务；并发的 resolve / snooze / ping 只有一个能命中守卫。
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

import aiosqlite

from ..clock import from_storage, to_storage
from ..models.enums import TaskStatus
from ..models.task import ResolveTask, TaskMutation

_COLUMNS: tuple[str, ...] = (
    "task_id",
    "workspace_id",
    "channel_id",
    "tracking_message_id",
    "assignee_id",
    "creator_id",
    "description",
    "status",
    "interval_minutes",
    "next_ping_at",
    "ping_count",
    "max_pings_before_escalate",
    "escalate_to_group_id",
    "due_date",
    "created_at",
    "resolved_at",
    "resolved_by",
)

_SELECT_COLUMNS = ", ".join(_COLUMNS)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: ResolveTask) -> None:
        """创建任务记录"""
        placeholders = ", ".join("?" for _ in _COLUMNS)
        await self._conn.execute(
            f"INSERT INTO resolve_tasks ({_SELECT_COLUMNS}) VALUES ({placeholders})",
            (
                task.task_id,
                task.workspace_id,
                task.channel_id,
                task.tracking_message_id,
                task.assignee_id,
                task.creator_id,
                task.description,
                task.status.value,
                task.interval_minutes,
                to_storage(task.next_ping_at),
                task.ping_count,
                task.max_pings_before_escalate,
                task.escalate_to_group_id,
                to_storage(task.due_date) if task.due_date else None,
                to_storage(task.created_at),
                to_storage(task.resolved_at) if task.resolved_at else None,
                task.resolved_by,
            ),
        )
        await self._conn.commit()

    async def get_task(self, task_id: str) -> ResolveTask | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_SELECT_COLUMNS} FROM resolve_tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_open_tasks(
        self, workspace_id: str, limit: int = 20
    ) -> list[ResolveTask]:
        """查询工作区内 active/snoozed 任务，按 created_at 倒序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM resolve_tasks
            WHERE workspace_id = ? AND status IN ('active','snoozed')
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (workspace_id, int(limit)),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_due_tasks(
        self, now: datetime, limit: int | None = None
    ) -> list[ResolveTask]:
        """查询 due set：active 且 next_ping_at <= now，按 next_ping_at 升序"""
        sql = f"""
            SELECT {_SELECT_COLUMNS} FROM resolve_tasks
            WHERE status = 'active' AND next_ping_at <= ?
            ORDER BY next_ping_at ASC
        """
        params: list = [to_storage(now)]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def promote_expired_snoozes(self, now: datetime) -> int:
        """snooze 到期的任务批量转回 active，返回影响行数"""
        cursor = await self._conn.execute(
            """
            UPDATE resolve_tasks SET status = 'active'
            WHERE status = 'snoozed' AND next_ping_at <= ?
            """,
            (to_storage(now),),
        )
        await self._conn.commit()
        return cursor.rowcount

    async def set_tracking_message(self, task_id: str, message_id: str) -> None:
        """记录最新状态卡片的消息 ID（不受状态守卫约束）"""
        await self._conn.execute(
            "UPDATE resolve_tasks SET tracking_message_id = ? WHERE task_id = ?",
            (message_id, task_id),
        )
        await self._conn.commit()

    async def attempt_transition(
        self,
        task_id: str,
        allowed_statuses: Iterable[TaskStatus],
        mutation: TaskMutation,
        *,
        workspace_id: str | None = None,
        expected_next_ping_at: datetime | None = None,
    ) -> ResolveTask | None:
        """条件更新：仅当当前状态在 allowed_statuses 中时写入 mutation

        Args:
            task_id: 任务 ID
            allowed_statuses: 允许的当前状态
            mutation: 要写入的字段
            workspace_id: 额外要求任务属于该工作区
            expected_next_ping_at: 额外要求 next_ping_at 未被改动（调度器快照守卫）

        Returns:
            更新后的任务；守卫未命中（状态冲突或任务不存在）时返回 None
        """
        allowed = [s.value for s in allowed_statuses]
        if not allowed:
            return None
        if mutation.is_empty():
            raise ValueError("mutation must assign at least one field")

        assignments, params = self._build_assignments(mutation)

        where = ["task_id = ?", f"status IN ({', '.join('?' for _ in allowed)})"]
        params.append(task_id)
        params.extend(allowed)
        if workspace_id is not None:
            where.append("workspace_id = ?")
            params.append(workspace_id)
        if expected_next_ping_at is not None:
            where.append("next_ping_at = ?")
            params.append(to_storage(expected_next_ping_at))

        cursor = await self._conn.execute(
            f"""
            UPDATE resolve_tasks SET {', '.join(assignments)}
            WHERE {' AND '.join(where)}
            RETURNING {_SELECT_COLUMNS}
            """,
            params,
        )
        rows = await cursor.fetchall()
        await self._conn.commit()
        if not rows:
            return None
        return self._row_to_task(rows[0])

    async def count_tasks(self, status: TaskStatus | None = None) -> int:
        """统计任务数"""
        if status is None:
            cursor = await self._conn.execute("SELECT COUNT(*) FROM resolve_tasks")
        else:
            cursor = await self._conn.execute(
                "SELECT COUNT(*) FROM resolve_tasks WHERE status = ?",
                (status.value,),
            )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _build_assignments(mutation: TaskMutation) -> tuple[list[str], list]:
        assignments: list[str] = []
        params: list = []

        if mutation.status is not None:
            assignments.append("status = ?")
            params.append(mutation.status.value)
        if mutation.assignee_id is not None:
            assignments.append("assignee_id = ?")
            params.append(mutation.assignee_id)
        if mutation.next_ping_at is not None:
            assignments.append("next_ping_at = ?")
            params.append(to_storage(mutation.next_ping_at))
        if mutation.increment_ping_count:
            assignments.append("ping_count = ping_count + 1")
        elif mutation.ping_count is not None:
            assignments.append("ping_count = ?")
            params.append(mutation.ping_count)
        if mutation.resolved_at is not None:
            assignments.append("resolved_at = ?")
            params.append(to_storage(mutation.resolved_at))
        if mutation.resolved_by is not None:
            assignments.append("resolved_by = ?")
            params.append(mutation.resolved_by)

        return assignments, params

    @staticmethod
    def _row_to_task(row: Sequence) -> ResolveTask:
        """将数据库行转换为 ResolveTask 模型"""
        data = dict(zip(_COLUMNS, tuple(row), strict=True))
        for column in ("next_ping_at", "due_date", "created_at", "resolved_at"):
            data[column] = from_storage(data[column])
        return ResolveTask(**data)
