"""TaskLifecycle -- 任务状态机

所有状态变更（create 除外）都经过 attempt_transition：
一条带状态守卫的条件 UPDATE。守卫未命中即为 conflict，
调用方据此回复「已完成或不存在」，任务行保持不变。
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

import structlog
from ulid import ULID

from .clock import Clock, utc_now
from .models import (
    TRANSITION_GUARDS,
    TRANSITION_TARGETS,
    ResolveTask,
    TaskAction,
    TaskMutation,
    TaskStatus,
    TransitionResult,
)
from .store.protocols import TaskStore

log = structlog.get_logger()


class TaskLifecycle:
    """任务生命周期引擎"""

    def __init__(
        self,
        store: TaskStore,
        clock: Clock = utc_now,
        default_interval_minutes: int = 30,
        default_max_pings: int = 5,
    ) -> None:
        self._store = store
        self._clock = clock
        self.default_interval_minutes = default_interval_minutes
        self.default_max_pings = default_max_pings

    def now(self) -> datetime:
        return self._clock()

    async def create(
        self,
        *,
        workspace_id: str,
        channel_id: str,
        assignee_id: str,
        creator_id: str,
        description: str,
        interval_minutes: int | None = None,
        max_pings_before_escalate: int | None = None,
        escalate_to_group_id: str | None = None,
        due_date: datetime | None = None,
        delay_ms: int | None = None,
    ) -> ResolveTask:
        """创建任务：status=active，首次提醒为 now 或 now+delay"""
        now = self._clock()
        first_ping_at = now
        if delay_ms is not None:
            first_ping_at = now + timedelta(milliseconds=delay_ms)

        task = ResolveTask(
            task_id=str(ULID()),
            workspace_id=workspace_id,
            channel_id=channel_id,
            assignee_id=assignee_id,
            creator_id=creator_id,
            description=description,
            status=TRANSITION_TARGETS[TaskAction.CREATE],
            interval_minutes=interval_minutes or self.default_interval_minutes,
            next_ping_at=first_ping_at,
            max_pings_before_escalate=(
                self.default_max_pings
                if max_pings_before_escalate is None
                else max_pings_before_escalate
            ),
            escalate_to_group_id=escalate_to_group_id,
            due_date=due_date,
            created_at=now,
        )
        await self._store.create_task(task)
        log.info(
            "task_created",
            task_id=task.task_id,
            workspace_id=workspace_id,
            assignee_id=assignee_id,
            next_ping_at=first_ping_at.isoformat(),
        )
        return task

    async def get(self, task_id: str) -> ResolveTask | None:
        return await self._store.get_task(task_id)

    async def list_open(self, workspace_id: str, limit: int = 20) -> list[ResolveTask]:
        return await self._store.list_open_tasks(workspace_id, limit)

    async def annotate_tracking_message(self, task_id: str, message_id: str) -> None:
        """记录状态卡片消息 ID；失败不影响生命周期，仅记录日志"""
        try:
            await self._store.set_tracking_message(task_id, message_id)
        except Exception as e:
            log.warning(
                "tracking_message_update_failed",
                task_id=task_id,
                error_type=type(e).__name__,
            )

    async def attempt_transition(
        self,
        task_id: str,
        allowed_statuses: Iterable[TaskStatus],
        mutation: TaskMutation,
        *,
        action: TaskAction | None = None,
        workspace_id: str | None = None,
        expected_next_ping_at: datetime | None = None,
    ) -> TransitionResult:
        """通用条件更新：applied 或 conflict"""
        task = await self._store.attempt_transition(
            task_id,
            allowed_statuses,
            mutation,
            workspace_id=workspace_id,
            expected_next_ping_at=expected_next_ping_at,
        )
        result = TransitionResult.of(task)
        action_name = action.value if action else "custom"
        if result.applied:
            log.info(
                "task_transition_applied",
                task_id=task_id,
                action=action_name,
                status=task.status.value,
            )
        else:
            log.info("task_transition_conflict", task_id=task_id, action=action_name)
        return result

    async def _apply(
        self,
        action: TaskAction,
        task_id: str,
        mutation: TaskMutation,
        **guards,
    ) -> TransitionResult:
        return await self.attempt_transition(
            task_id,
            TRANSITION_GUARDS[action],
            mutation,
            action=action,
            **guards,
        )

    async def resolve(self, task_id: str, actor_id: str) -> TransitionResult:
        """active/snoozed -> resolved，记录 resolved_at / resolved_by"""
        return await self._apply(
            TaskAction.RESOLVE,
            task_id,
            TaskMutation(
                status=TaskStatus.RESOLVED,
                resolved_at=self._clock(),
                resolved_by=actor_id,
            ),
        )

    async def cancel(
        self, task_id: str, workspace_id: str | None = None
    ) -> TransitionResult:
        """active/snoozed -> cancelled；指定 workspace_id 时只取消该工作区的任务"""
        return await self._apply(
            TaskAction.CANCEL,
            task_id,
            TaskMutation(status=TaskStatus.CANCELLED),
            workspace_id=workspace_id,
        )

    async def snooze(self, task_id: str, minutes: int) -> TransitionResult:
        """active/snoozed -> snoozed，next_ping_at 推迟 minutes 分钟"""
        if minutes < 1:
            raise ValueError("snooze minutes must be positive")
        return await self._apply(
            TaskAction.SNOOZE,
            task_id,
            TaskMutation(
                status=TaskStatus.SNOOZED,
                next_ping_at=self._clock() + timedelta(minutes=minutes),
            ),
        )

    async def reassign(self, task_id: str, new_assignee_id: str) -> TransitionResult:
        """更换负责人：强制 active，ping_count 归零，立即进入 due set

        终态任务不会被 reassign 复活。
        """
        return await self._apply(
            TaskAction.REASSIGN,
            task_id,
            TaskMutation(
                assignee_id=new_assignee_id,
                status=TaskStatus.ACTIVE,
                ping_count=0,
                next_ping_at=self._clock(),
            ),
        )

    async def promote_expired_snoozes(self) -> int:
        """snooze 到期的任务批量转回 active（调度器第一步）"""
        promoted = await self._store.promote_expired_snoozes(self._clock())
        if promoted:
            log.info("snoozes_promoted", count=promoted)
        return promoted

    async def record_ping(self, task: ResolveTask) -> TransitionResult:
        """提醒发送成功后推进：ping_count+1，next_ping_at=now+interval

        守卫要求任务仍为 active 且 next_ping_at 与 due-set 快照一致，
        期间被 resolve / snooze / reassign 过的任务不会被推进。
        """
        return await self._apply(
            TaskAction.PING,
            task.task_id,
            TaskMutation(
                increment_ping_count=True,
                next_ping_at=self._clock() + timedelta(minutes=task.interval_minutes),
            ),
            expected_next_ping_at=task.next_ping_at,
        )
