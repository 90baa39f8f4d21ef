"""resolvebot Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    OPEN_STATES,
    TERMINAL_STATES,
    TRANSITION_GUARDS,
    TRANSITION_TARGETS,
    VALID_TRANSITIONS,
    TaskAction,
    TaskStatus,
    TransitionOutcome,
    validate_transition,
)
from .interaction import Interaction, InteractionKind, TargetMessage
from .task import ResolveTask, TaskMutation, TransitionResult

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskAction",
    "TransitionOutcome",
    # 状态机
    "VALID_TRANSITIONS",
    "TRANSITION_GUARDS",
    "TRANSITION_TARGETS",
    "TERMINAL_STATES",
    "OPEN_STATES",
    "validate_transition",
    # Task
    "ResolveTask",
    "TaskMutation",
    "TransitionResult",
    # Interaction
    "Interaction",
    "InteractionKind",
    "TargetMessage",
]
