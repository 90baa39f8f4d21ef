"""枚举定义 -- 任务状态机

包含 TaskStatus、TaskAction、TransitionOutcome 枚举，
以及 VALID_TRANSITIONS 状态流转图、TRANSITION_GUARDS 前置状态集合和终态集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Resolve 任务状态"""

    ACTIVE = "active"
    SNOOZED = "snoozed"

    # 终态
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class TaskAction(StrEnum):
    """生命周期操作"""

    CREATE = "create"
    RESOLVE = "resolve"
    CANCEL = "cancel"
    SNOOZE = "snooze"
    REASSIGN = "reassign"
    PROMOTE = "promote"
    PING = "ping"


class TransitionOutcome(StrEnum):
    """条件更新结果"""

    APPLIED = "applied"
    CONFLICT = "conflict"


TERMINAL_STATES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.RESOLVED, TaskStatus.CANCELLED}
)

OPEN_STATES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.ACTIVE, TaskStatus.SNOOZED}
)

# 合法状态流转（含自环：snooze 再 snooze、ping 后仍为 active）
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.ACTIVE: {
        TaskStatus.ACTIVE,
        TaskStatus.SNOOZED,
        TaskStatus.RESOLVED,
        TaskStatus.CANCELLED,
    },
    TaskStatus.SNOOZED: {
        TaskStatus.ACTIVE,
        TaskStatus.SNOOZED,
        TaskStatus.RESOLVED,
        TaskStatus.CANCELLED,
    },
    # 终态不可再流转（reassign 也不能复活）
    TaskStatus.RESOLVED: set(),
    TaskStatus.CANCELLED: set(),
}

# 每个操作要求的当前状态，作为 UPDATE ... WHERE status IN (...) 的守卫条件
TRANSITION_GUARDS: dict[TaskAction, frozenset[TaskStatus]] = {
    TaskAction.RESOLVE: OPEN_STATES,
    TaskAction.CANCEL: OPEN_STATES,
    TaskAction.SNOOZE: OPEN_STATES,
    TaskAction.REASSIGN: OPEN_STATES,
    TaskAction.PROMOTE: frozenset({TaskStatus.SNOOZED}),
    TaskAction.PING: frozenset({TaskStatus.ACTIVE}),
}

# 每个操作成功后的目标状态
TRANSITION_TARGETS: dict[TaskAction, TaskStatus] = {
    TaskAction.CREATE: TaskStatus.ACTIVE,
    TaskAction.RESOLVE: TaskStatus.RESOLVED,
    TaskAction.CANCEL: TaskStatus.CANCELLED,
    TaskAction.SNOOZE: TaskStatus.SNOOZED,
    TaskAction.REASSIGN: TaskStatus.ACTIVE,
    TaskAction.PROMOTE: TaskStatus.ACTIVE,
    TaskAction.PING: TaskStatus.ACTIVE,
}


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
