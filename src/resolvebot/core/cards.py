"""状态卡片与操作控件 -- 与平台无关的展示模型

消息平台适配层负责把 StatusCard / ActionControl 渲染为具体格式（如 Discord embed、
component）。控件 custom_id 格式为 "<action>:<task_id>"。
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from .models import ResolveTask, TaskStatus

CARD_TITLE = "📋 待處理任務"


class ControlAction(StrEnum):
    """控件动作前缀"""

    RESOLVE = "resolve"
    SNOOZE_30 = "snooze30"
    SNOOZE_60 = "snooze60"
    REASSIGN = "reassign"
    REASSIGN_SELECT = "reassign_select"
    NOOP = "noop"


# snooze 按钮对应的分钟数
SNOOZE_MINUTES: dict[ControlAction, int] = {
    ControlAction.SNOOZE_30: 30,
    ControlAction.SNOOZE_60: 60,
}

_STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.ACTIVE: "🔴 Active",
    TaskStatus.SNOOZED: "⏸️ Snoozed",
    TaskStatus.RESOLVED: "✅ Resolved",
    TaskStatus.CANCELLED: "🗑️ Cancelled",
}


class CardField(BaseModel):
    name: str
    value: str
    inline: bool = True


class StatusCard(BaseModel):
    """任务状态卡片"""

    title: str = CARD_TITLE
    description: str
    fields: list[CardField] = Field(default_factory=list)
    footer: str = ""
    timestamp: datetime | None = None
    note: str | None = Field(default=None, description="附加说明（升级、完成者等）")


class ActionControl(BaseModel):
    """按钮或用户选择器"""

    custom_id: str
    label: str = ""
    style: str = "secondary"
    emoji: str | None = None
    disabled: bool = False
    kind: str = Field(default="button", description="button / user_select")


def status_label(status: TaskStatus | str) -> str:
    try:
        return _STATUS_LABELS[TaskStatus(status)]
    except ValueError:
        return str(status)


def mention_user(user_id: str) -> str:
    return f"<@{user_id}>"


def mention_group(group_id: str) -> str:
    return f"<@&{group_id}>"


def relative_time(moment: datetime) -> str:
    return f"<t:{int(moment.timestamp())}:R>"


def build_status_card(task: ResolveTask, note: str | None = None) -> StatusCard:
    fields = [
        CardField(name="指派給", value=mention_user(task.assignee_id)),
        CardField(name="建立者", value=mention_user(task.creator_id)),
        CardField(name="狀態", value=status_label(task.status)),
        CardField(name="已提醒", value=f"{task.ping_count} 次"),
        CardField(name="間隔", value=f"{task.interval_minutes} 分鐘"),
    ]
    if task.due_date is not None:
        fields.append(
            CardField(name="截止日期", value=f"<t:{int(task.due_date.timestamp())}:D>")
        )
    return StatusCard(
        description=task.description,
        fields=fields,
        footer=f"Task ID: {task.task_id}",
        timestamp=task.created_at,
        note=note,
    )


def control_id(action: ControlAction, task_id: str) -> str:
    return f"{action.value}:{task_id}"


def parse_custom_id(custom_id: str) -> tuple[ControlAction, str] | None:
    """解析 "<action>:<task_id>"；格式不符或缺 task_id 时返回 None"""
    action, sep, task_id = custom_id.partition(":")
    if not sep or not task_id.strip():
        return None
    try:
        return ControlAction(action), task_id.strip()
    except ValueError:
        return None


def task_controls(task_id: str, include_snooze: bool = True) -> list[ActionControl]:
    controls = [
        ActionControl(
            custom_id=control_id(ControlAction.RESOLVE, task_id),
            label="Resolve",
            style="success",
            emoji="✅",
        )
    ]
    if include_snooze:
        controls.extend(
            [
                ActionControl(
                    custom_id=control_id(ControlAction.SNOOZE_30, task_id),
                    label="Snooze 30m",
                    emoji="⏸️",
                ),
                ActionControl(
                    custom_id=control_id(ControlAction.SNOOZE_60, task_id),
                    label="Snooze 1h",
                    emoji="⏸️",
                ),
            ]
        )
    controls.append(
        ActionControl(
            custom_id=control_id(ControlAction.REASSIGN, task_id),
            label="Reassign",
            style="primary",
            emoji="🔄",
        )
    )
    return controls


def resolved_controls(task_id: str) -> list[ActionControl]:
    return [
        ActionControl(
            custom_id=control_id(ControlAction.NOOP, task_id),
            label="✅ Resolved",
            disabled=True,
        )
    ]


def reassign_picker(task_id: str) -> list[ActionControl]:
    return [
        ActionControl(
            custom_id=control_id(ControlAction.REASSIGN_SELECT, task_id),
            label="選擇新的 assignee",
            kind="user_select",
        )
    ]


def format_task_line(index: int, task: ResolveTask, preview_length: int = 60) -> str:
    """/task list 的单行摘要"""
    description = task.description[:preview_length]
    if len(task.description) > preview_length:
        description += "..."
    return (
        f"**{index}.** {status_label(task.status)} {mention_user(task.assignee_id)}"
        f" — {description}\n"
        f"　　已提醒 {task.ping_count} 次 · 間隔 {task.interval_minutes}m"
        f" · `{task.task_id[:8]}`"
    )
