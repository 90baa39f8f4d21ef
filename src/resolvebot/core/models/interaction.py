"""Interaction Domain Model -- 入站操作的统一格式

平台适配层把 slash command、context menu、按钮和用户选择器事件
转换为 Interaction 后交给 InteractionDispatcher。
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class InteractionKind(StrEnum):
    """入站操作类型"""

    COMMAND = "command"
    CONTEXT_MENU = "context_menu"
    BUTTON = "button"
    USER_SELECT = "user_select"


class TargetMessage(BaseModel):
    """context menu 指向的消息"""

    content: str = Field(default="", description="消息文本")
    author_id: str = Field(description="消息作者")
    url: str = Field(default="", description="消息链接")


class Interaction(BaseModel):
    """标准化入站操作"""

    kind: InteractionKind = Field(description="操作类型")
    name: str = Field(description="命令名或控件 custom_id")
    subcommand: str | None = Field(default=None, description="子命令")
    workspace_id: str = Field(description="工作区")
    channel_id: str = Field(description="频道")
    user_id: str = Field(description="操作者")
    options: dict[str, Any] = Field(default_factory=dict, description="命令参数")
    values: list[str] = Field(default_factory=list, description="选择器选中值")
    target_message: TargetMessage | None = Field(
        default=None, description="context menu 目标消息"
    )
