"""InteractionDispatcher -- 入站操作路由

把标准化的 Interaction（slash command、context menu、按钮、用户选择器）
路由到 TaskLifecycle，并生成给操作者的 InteractionReply。

- 输入无法解析：UserInputError -> 带示例的拒绝回复，任务不创建
- 状态守卫未命中：「已完成或不存在」回复
- 其他异常：记录日志，回复通用错误
- 无法识别的命令或控件：返回 None（忽略）
"""

from datetime import datetime, tzinfo

import structlog
from pydantic import BaseModel, Field

from resolvebot.core.cards import (
    SNOOZE_MINUTES,
    ActionControl,
    ControlAction,
    StatusCard,
    build_status_card,
    format_task_line,
    mention_user,
    parse_custom_id,
    reassign_picker,
    relative_time,
    resolved_controls,
    task_controls,
)
from resolvebot.core.clock import Clock, utc_now
from resolvebot.core.config import (
    LIST_LIMIT,
    LIST_PREVIEW_LENGTH,
    MAX_INTERVAL_MINUTES,
    MIN_INTERVAL_MINUTES,
    QUOTED_DESCRIPTION_MAX_LENGTH,
)
from resolvebot.core.exceptions import MessengerError, UserInputError
from resolvebot.core.lifecycle import TaskLifecycle
from resolvebot.core.messaging import Messenger
from resolvebot.core.models import Interaction, InteractionKind, ResolveTask
from resolvebot.core.parsing import parse_delay, parse_due_date

log = structlog.get_logger()

TASK_COMMAND = "task"
CONTEXT_MENU_NAME = "📌 Create Resolve Task"

CONFLICT_MESSAGE = "該任務已完成或不存在"
CANCEL_CONFLICT_MESSAGE = "找不到該任務或已完成"
GENERIC_ERROR_MESSAGE = "❌ 發生錯誤，請稍後再試"
EMPTY_LIST_MESSAGE = "目前沒有 active 任務 🎉"
NO_CONTENT_PLACEHOLDER = "(no content)"

DUE_DATE_HINT = "明天、後天、下禮拜、3/15、2026-03-15"
DELAY_HINT = "30m、4h、1d"


class InteractionReply(BaseModel):
    """给操作者的回复"""

    content: str
    card: StatusCard | None = None
    controls: list[ActionControl] | None = Field(
        default=None, description="None 表示不改动原有控件，[] 表示清空"
    )
    ephemeral: bool = False
    update: bool = Field(default=False, description="编辑触发消息而非发送新消息")


def _ephemeral(content: str) -> InteractionReply:
    return InteractionReply(content=content, ephemeral=True)


class InteractionDispatcher:
    """入站操作分发器"""

    def __init__(
        self,
        lifecycle: TaskLifecycle,
        messenger: Messenger,
        *,
        clock: Clock = utc_now,
        timezone: tzinfo | None = None,
        default_interval_minutes: int = 30,
    ) -> None:
        self._lifecycle = lifecycle
        self._messenger = messenger
        self._clock = clock
        self._timezone = timezone
        self._default_interval = default_interval_minutes

    def _local_now(self) -> datetime:
        """截止日期的参考时间

        配置了时区时返回该时区的 aware 时间；否则返回进程本地墙钟的 naive 时间，
        由 parse_due_date 按目标日期附加本地偏移。
        """
        if self._timezone is None:
            return self._clock().astimezone().replace(tzinfo=None)
        return self._clock().astimezone(self._timezone)

    async def dispatch(self, interaction: Interaction) -> InteractionReply | None:
        """处理一次入站操作；不向调用方抛出异常"""
        structlog.contextvars.bind_contextvars(
            interaction_kind=interaction.kind.value,
            interaction_name=interaction.name,
            user_id=interaction.user_id,
        )
        try:
            return await self._route(interaction)
        except UserInputError as e:
            log.info("interaction_rejected", reason=str(e))
            return _ephemeral(e.user_message())
        except Exception as e:
            log.error(
                "interaction_failed",
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )
            return _ephemeral(GENERIC_ERROR_MESSAGE)
        finally:
            structlog.contextvars.unbind_contextvars(
                "interaction_kind", "interaction_name", "user_id", "task_id"
            )

    async def _route(self, interaction: Interaction) -> InteractionReply | None:
        if interaction.kind == InteractionKind.COMMAND:
            if interaction.name != TASK_COMMAND:
                return None
            handler = {
                "create": self._handle_create,
                "list": self._handle_list,
                "cancel": self._handle_cancel,
            }.get(interaction.subcommand or "")
            return await handler(interaction) if handler else None

        if interaction.kind == InteractionKind.CONTEXT_MENU:
            if interaction.name != CONTEXT_MENU_NAME or interaction.target_message is None:
                return None
            return await self._handle_context_menu(interaction)

        parsed = parse_custom_id(interaction.name)
        if parsed is None:
            return None
        action, task_id = parsed
        structlog.contextvars.bind_contextvars(task_id=task_id)

        if interaction.kind == InteractionKind.USER_SELECT:
            if action != ControlAction.REASSIGN_SELECT or not interaction.values:
                return None
            return await self._handle_reassign_confirm(interaction, task_id)

        if action == ControlAction.RESOLVE:
            return await self._handle_resolve(interaction, task_id)
        if action in SNOOZE_MINUTES:
            return await self._handle_snooze(interaction, task_id, SNOOZE_MINUTES[action])
        if action == ControlAction.REASSIGN:
            return InteractionReply(
                content="選擇要重新指派給誰：",
                controls=reassign_picker(task_id),
                ephemeral=True,
            )
        return None

    # ---- commands ----

    async def _handle_create(self, interaction: Interaction) -> InteractionReply | None:
        options = interaction.options
        assignee_id = options.get("assignee")
        description = options.get("description")
        if not assignee_id or not description:
            return None

        due_date = None
        if due_input := options.get("due_date"):
            due_date = parse_due_date(str(due_input), self._local_now())
            if due_date is None:
                raise UserInputError(f"無法解析截止日期「{due_input}」", DUE_DATE_HINT)

        delay_ms = None
        if delay_input := options.get("delay"):
            delay_ms = parse_delay(str(delay_input))
            if delay_ms is None:
                raise UserInputError(f"無法解析延遲「{delay_input}」", DELAY_HINT)

        interval = self._parse_interval(options.get("interval"))
        escalate_to = options.get("escalate_to")

        task = await self._lifecycle.create(
            workspace_id=interaction.workspace_id,
            channel_id=interaction.channel_id,
            assignee_id=str(assignee_id),
            creator_id=interaction.user_id,
            description=str(description),
            interval_minutes=interval,
            escalate_to_group_id=str(escalate_to) if escalate_to else None,
            due_date=due_date,
            delay_ms=delay_ms,
        )
        structlog.contextvars.bind_contextvars(task_id=task.task_id)

        notice = ""
        if delay_ms is not None:
            notice = f"（將於 {relative_time(task.next_ping_at)} 開始提醒）"
        content = f"🔔 {mention_user(task.assignee_id)} 你有一個新的待處理任務！{notice}"
        return await self._announce(task, content)

    def _parse_interval(self, raw) -> int:
        if raw is None or raw == "":
            return self._default_interval
        try:
            interval = int(raw)
        except (TypeError, ValueError):
            raise UserInputError(f"無法解析間隔「{raw}」", "30、60、1440") from None
        if not MIN_INTERVAL_MINUTES <= interval <= MAX_INTERVAL_MINUTES:
            raise UserInputError(
                f"間隔必須介於 {MIN_INTERVAL_MINUTES} 到 {MAX_INTERVAL_MINUTES} 分鐘",
                "30、60、1440",
            )
        return interval

    async def _handle_list(self, interaction: Interaction) -> InteractionReply:
        tasks = await self._lifecycle.list_open(interaction.workspace_id, LIST_LIMIT)
        if not tasks:
            return _ephemeral(EMPTY_LIST_MESSAGE)
        lines = [
            format_task_line(index, task, LIST_PREVIEW_LENGTH)
            for index, task in enumerate(tasks, start=1)
        ]
        return _ephemeral("\n\n".join(lines))

    async def _handle_cancel(self, interaction: Interaction) -> InteractionReply | None:
        task_id = str(interaction.options.get("task_id") or "").strip()
        if not task_id:
            return None
        structlog.contextvars.bind_contextvars(task_id=task_id)
        result = await self._lifecycle.cancel(task_id, workspace_id=interaction.workspace_id)
        if not result.applied:
            return _ephemeral(CANCEL_CONFLICT_MESSAGE)
        return InteractionReply(content=f"🗑️ 任務 `{task_id[:8]}` 已取消")

    async def _handle_context_menu(self, interaction: Interaction) -> InteractionReply:
        target = interaction.target_message
        description = target.content[:QUOTED_DESCRIPTION_MAX_LENGTH] or NO_CONTENT_PLACEHOLDER
        task = await self._lifecycle.create(
            workspace_id=interaction.workspace_id,
            channel_id=interaction.channel_id,
            assignee_id=target.author_id,
            creator_id=interaction.user_id,
            description=description,
            interval_minutes=self._default_interval,
        )
        structlog.contextvars.bind_contextvars(task_id=task.task_id)

        source = f"（來自[這則訊息]({target.url})）" if target.url else ""
        content = f"🔔 {mention_user(task.assignee_id)} 你有一個新的待處理任務！{source}"
        return await self._announce(task, content)

    async def _announce(self, task: ResolveTask, content: str) -> InteractionReply:
        """把新任务卡片发到频道并记录 tracking message

        发送失败时任务仍然有效，改为直接在回复中附带卡片。
        """
        card = build_status_card(task)
        controls = task_controls(task.task_id)
        try:
            message_id = await self._messenger.send_message(
                task.channel_id, content, card=card, controls=controls
            )
        except MessengerError as e:
            log.warning("task_card_post_failed", task_id=task.task_id, error=str(e))
            return InteractionReply(content=content, card=card, controls=controls)

        await self._lifecycle.annotate_tracking_message(task.task_id, message_id)
        return _ephemeral(f"✅ 已建立任務 `{task.task_id[:8]}`")

    # ---- controls ----

    async def _handle_resolve(
        self, interaction: Interaction, task_id: str
    ) -> InteractionReply:
        result = await self._lifecycle.resolve(task_id, interaction.user_id)
        if not result.applied:
            return _ephemeral(CONFLICT_MESSAGE)

        task = result.task
        actor = mention_user(interaction.user_id)
        note = f"由 {actor} 於 {relative_time(task.resolved_at)} resolve"
        return InteractionReply(
            content=f"✅ 任務已由 {actor} 完成！",
            card=build_status_card(task, note=note),
            controls=resolved_controls(task_id),
            update=True,
        )

    async def _handle_snooze(
        self, interaction: Interaction, task_id: str, minutes: int
    ) -> InteractionReply:
        result = await self._lifecycle.snooze(task_id, minutes)
        if not result.applied:
            return _ephemeral(CONFLICT_MESSAGE)
        return _ephemeral(
            f"⏸️ {mention_user(interaction.user_id)} 已 snooze 此任務 {minutes} 分鐘，"
            f"將於 {relative_time(result.task.next_ping_at)} 繼續提醒"
        )

    async def _handle_reassign_confirm(
        self, interaction: Interaction, task_id: str
    ) -> InteractionReply:
        new_assignee = interaction.values[0]
        result = await self._lifecycle.reassign(task_id, new_assignee)
        if not result.applied:
            return _ephemeral(CONFLICT_MESSAGE)

        task = result.task
        try:
            if await self._messenger.can_send(task.channel_id):
                message_id = await self._messenger.send_message(
                    task.channel_id,
                    f"🔔 {mention_user(new_assignee)} 你有一個待處理任務"
                    f"（由 {mention_user(interaction.user_id)} 轉派）！",
                    card=build_status_card(task),
                    controls=task_controls(task.task_id),
                )
                await self._lifecycle.annotate_tracking_message(task.task_id, message_id)
        except MessengerError as e:
            log.warning("reassign_card_post_failed", task_id=task_id, error=str(e))

        return InteractionReply(
            content=f"🔄 已重新指派給 {mention_user(new_assignee)}",
            controls=[],
            update=True,
        )
