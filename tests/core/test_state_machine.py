"""状态机流转单元测试

测试内容：
1. 开放状态之间可以流转，也可以进入终态
2. 终态不可再流转
3. 每个操作的守卫状态与目标状态
"""

import pytest
from resolvebot.core.models.enums import (
    OPEN_STATES,
    TERMINAL_STATES,
    TRANSITION_GUARDS,
    TRANSITION_TARGETS,
    TaskAction,
    TaskStatus,
    validate_transition,
)


class TestStateMachineTransitions:
    """状态机流转验证"""

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TaskStatus.ACTIVE, TaskStatus.SNOOZED),
            (TaskStatus.ACTIVE, TaskStatus.RESOLVED),
            (TaskStatus.ACTIVE, TaskStatus.CANCELLED),
            (TaskStatus.ACTIVE, TaskStatus.ACTIVE),
            (TaskStatus.SNOOZED, TaskStatus.ACTIVE),
            (TaskStatus.SNOOZED, TaskStatus.SNOOZED),
            (TaskStatus.SNOOZED, TaskStatus.RESOLVED),
            (TaskStatus.SNOOZED, TaskStatus.CANCELLED),
        ],
    )
    def test_valid_transition(self, from_status: TaskStatus, to_status: TaskStatus):
        """合法流转应通过验证"""
        assert validate_transition(from_status, to_status) is True

    def test_all_terminal_states_cannot_transition(self):
        """所有终态都不能再流转（包括 reassign 复活）"""
        for terminal in TERMINAL_STATES:
            for target in TaskStatus:
                assert validate_transition(terminal, target) is False, (
                    f"终态 {terminal} 不应能流转到 {target}"
                )


class TestTransitionGuards:
    """操作守卫"""

    @pytest.mark.parametrize(
        "action",
        [TaskAction.RESOLVE, TaskAction.CANCEL, TaskAction.SNOOZE, TaskAction.REASSIGN],
    )
    def test_user_actions_require_open_state(self, action: TaskAction):
        assert TRANSITION_GUARDS[action] == OPEN_STATES

    def test_ping_requires_active(self):
        assert TRANSITION_GUARDS[TaskAction.PING] == {TaskStatus.ACTIVE}

    def test_promote_requires_snoozed(self):
        assert TRANSITION_GUARDS[TaskAction.PROMOTE] == {TaskStatus.SNOOZED}

    def test_guards_never_admit_terminal_states(self):
        for action, guard in TRANSITION_GUARDS.items():
            assert not guard & TERMINAL_STATES, action

    def test_every_guarded_target_is_reachable(self):
        """守卫内每个状态到目标状态的流转都合法"""
        for action, guard in TRANSITION_GUARDS.items():
            target = TRANSITION_TARGETS[action]
            for from_status in guard:
                assert validate_transition(from_status, target), (action, from_status)

    def test_create_targets_active(self):
        assert TRANSITION_TARGETS[TaskAction.CREATE] == TaskStatus.ACTIVE
