"""ResolveTask Domain Model

resolve_tasks 表的唯一实体。状态只能通过 TaskLifecycle 的条件更新改变，
行永不删除，resolved/cancelled 作为历史保留。
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from .enums import TaskStatus, TransitionOutcome


class ResolveTask(BaseModel):
    """Resolve 任务"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    workspace_id: str = Field(description="所属工作区（guild）")
    channel_id: str = Field(description="提醒发送的频道")
    tracking_message_id: str | None = Field(
        default=None, description="最近一张状态卡片的消息 ID（弱引用，仅用于展示）"
    )
    assignee_id: str = Field(description="负责人")
    creator_id: str = Field(description="创建者")
    description: str = Field(description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.ACTIVE, description="当前状态")
    interval_minutes: int = Field(ge=1, description="提醒间隔（分钟）")
    next_ping_at: datetime = Field(description="下一次调度时间")
    ping_count: int = Field(default=0, ge=0, description="自上次重置以来的提醒次数")
    max_pings_before_escalate: int = Field(ge=0, description="升级阈值")
    escalate_to_group_id: str | None = Field(
        default=None, description="升级通知的群组（role），为空时不升级"
    )
    due_date: datetime | None = Field(default=None, description="截止日期，仅展示")
    created_at: datetime = Field(description="创建时间")
    resolved_at: datetime | None = Field(default=None, description="完成时间")
    resolved_by: str | None = Field(default=None, description="完成者")

    @property
    def escalation_due(self) -> bool:
        """下一次提醒是否应发送升级通知"""
        return (
            self.escalate_to_group_id is not None
            and self.ping_count >= self.max_pings_before_escalate
        )


class TaskMutation(BaseModel):
    """一次状态流转要写入的字段

    只有非 None 的字段会出现在 UPDATE 的 SET 子句中。
    increment_ping_count 与 ping_count 互斥。
    """

    status: TaskStatus | None = None
    assignee_id: str | None = None
    next_ping_at: datetime | None = None
    ping_count: int | None = Field(default=None, ge=0)
    increment_ping_count: bool = False
    resolved_at: datetime | None = None
    resolved_by: str | None = None

    @model_validator(mode="after")
    def _check_ping_count(self) -> "TaskMutation":
        if self.increment_ping_count and self.ping_count is not None:
            raise ValueError("ping_count and increment_ping_count are mutually exclusive")
        return self

    def is_empty(self) -> bool:
        return not self.increment_ping_count and not self.model_dump(
            exclude_none=True, exclude={"increment_ping_count"}
        )


class TransitionResult(BaseModel):
    """条件更新的结果：applied 时附带更新后的任务"""

    outcome: TransitionOutcome
    task: ResolveTask | None = None

    @property
    def applied(self) -> bool:
        return self.outcome == TransitionOutcome.APPLIED

    @classmethod
    def conflict(cls) -> "TransitionResult":
        return cls(outcome=TransitionOutcome.CONFLICT)

    @classmethod
    def of(cls, task: ResolveTask | None) -> "TransitionResult":
        if task is None:
            return cls.conflict()
        return cls(outcome=TransitionOutcome.APPLIED, task=task)
