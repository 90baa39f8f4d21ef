"""PingScheduler -- 周期性提醒调度

每个 tick：
1. snooze 到期的任务批量转回 active
2. 查询 due set（active 且 next_ping_at <= now）
3. 逐个任务：发送提醒或升级通知，成功后条件推进 ping_count / next_ping_at
4. tick 级失败（查询失败等）记录日志后放弃本轮，下一轮从头开始

tick 之间不保留内存状态，正确性完全由持久化的 status / next_ping_at 决定。
"""

import asyncio
import contextlib

import structlog
from pydantic import BaseModel

from .cards import (
    ActionControl,
    StatusCard,
    build_status_card,
    mention_group,
    mention_user,
    task_controls,
)
from .clock import Clock, utc_now
from .lifecycle import TaskLifecycle
from .messaging import Messenger
from .models import ResolveTask
from .store.protocols import TaskStore

log = structlog.get_logger()

ESCALATION_NOTE = "⚠️ 已升級通知"


class Notification(BaseModel):
    """一次提醒要发送的内容"""

    escalation: bool
    content: str
    card: StatusCard
    controls: list[ActionControl]


class TickReport(BaseModel):
    """单次 tick 统计"""

    promoted: int = 0
    due: int = 0
    sent: int = 0
    escalated: int = 0
    skipped: int = 0
    conflicts: int = 0
    failed: int = 0
    aborted: bool = False


def build_notification(task: ResolveTask) -> Notification:
    """根据 ping_count（递增前）决定提醒或升级通知"""
    if task.escalation_due:
        return Notification(
            escalation=True,
            content=(
                f"🚨 **ESCALATION** — 任務已提醒 {task.ping_count} 次仍未處理！\n"
                f"{mention_group(task.escalate_to_group_id)} "
                f"{mention_user(task.assignee_id)} 請立即處理："
            ),
            card=build_status_card(task, note=ESCALATION_NOTE),
            controls=task_controls(task.task_id, include_snooze=False),
        )
    return Notification(
        escalation=False,
        content=(
            f"🔔 提醒 #{task.ping_count + 1} — {mention_user(task.assignee_id)}，"
            "你有待處理任務！"
        ),
        card=build_status_card(task),
        controls=task_controls(task.task_id),
    )


class PingScheduler:
    """提醒调度器

    由进程顶层组合创建，在存储和消息平台就绪后 start()，关闭时 stop()。
    """

    def __init__(
        self,
        lifecycle: TaskLifecycle,
        store: TaskStore,
        messenger: Messenger,
        *,
        interval_seconds: float = 60.0,
        clock: Clock = utc_now,
    ) -> None:
        self._lifecycle = lifecycle
        self._store = store
        self._messenger = messenger
        self._interval_s = max(0.01, float(interval_seconds))
        self._clock = clock
        self._stop_event = asyncio.Event()
        self._runner: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def start(self) -> None:
        """启动周期任务（重复调用无副作用）"""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._runner = asyncio.create_task(self._run(), name="ping-scheduler")
        log.info("ping_scheduler_started", interval_s=self._interval_s)

    async def stop(self) -> None:
        """停止调度：等待进行中的 tick 完成后退出"""
        if self._runner is None:
            return
        self._stop_event.set()
        runner, self._runner = self._runner, None
        try:
            await runner
        except asyncio.CancelledError:
            pass
        log.info("ping_scheduler_stopped")

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            await self.tick()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_s)

    async def tick(self) -> TickReport:
        """执行一轮调度，永不抛出异常"""
        report = TickReport()
        try:
            report.promoted = await self._lifecycle.promote_expired_snoozes()
            due_tasks = await self._store.list_due_tasks(self._clock())
        except Exception as e:
            log.error(
                "ping_tick_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            report.aborted = True
            return report

        report.due = len(due_tasks)
        for task in due_tasks:
            try:
                await self._process(task, report)
            except Exception as e:
                report.failed += 1
                log.error(
                    "ping_task_failed",
                    task_id=task.task_id,
                    channel_id=task.channel_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )

        if report.due:
            log.info("ping_tick_completed", **report.model_dump())
        return report

    async def _process(self, task: ResolveTask, report: TickReport) -> None:
        if not await self._messenger.can_send(task.channel_id):
            report.skipped += 1
            log.warning(
                "ping_channel_unavailable",
                task_id=task.task_id,
                channel_id=task.channel_id,
            )
            return

        notification = build_notification(task)
        await self._messenger.send_message(
            task.channel_id,
            notification.content,
            notification.card,
            notification.controls,
        )

        result = await self._lifecycle.record_ping(task)
        if not result.applied:
            # 发送期间任务已被 resolve / snooze / reassign，行保持不变
            report.conflicts += 1
            log.info("ping_advance_skipped", task_id=task.task_id)
            return

        report.sent += 1
        if notification.escalation:
            report.escalated += 1
        log.info(
            "ping_sent",
            task_id=task.task_id,
            escalation=notification.escalation,
            ping_count=result.task.ping_count,
        )
