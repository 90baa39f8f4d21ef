"""Store Protocol 接口定义

使用 Python Protocol 实现结构化子类型（duck typing），
生命周期引擎和调度器只依赖此接口。
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from ..models.enums import TaskStatus
from ..models.task import ResolveTask, TaskMutation


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: ResolveTask) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> ResolveTask | None:
        """根据 task_id 查询任务"""
        ...

    async def list_open_tasks(
        self, workspace_id: str, limit: int = 20
    ) -> list[ResolveTask]:
        """查询工作区内未终结的任务"""
        ...

    async def list_due_tasks(
        self, now: datetime, limit: int | None = None
    ) -> list[ResolveTask]:
        """查询 due set"""
        ...

    async def promote_expired_snoozes(self, now: datetime) -> int:
        """snooze 到期批量转回 active"""
        ...

    async def set_tracking_message(self, task_id: str, message_id: str) -> None:
        """记录状态卡片消息 ID"""
        ...

    async def attempt_transition(
        self,
        task_id: str,
        allowed_statuses: Iterable[TaskStatus],
        mutation: TaskMutation,
        *,
        workspace_id: str | None = None,
        expected_next_ping_at: datetime | None = None,
    ) -> ResolveTask | None:
        """单语句条件更新，守卫未命中返回 None"""
        ...
