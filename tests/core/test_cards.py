"""状态卡片与控件测试"""

from datetime import UTC, datetime

import pytest
from resolvebot.core.cards import (
    ControlAction,
    build_status_card,
    control_id,
    format_task_line,
    mention_group,
    parse_custom_id,
    reassign_picker,
    resolved_controls,
    status_label,
    task_controls,
)
from resolvebot.core.models import TaskStatus


class TestCustomId:
    def test_round_trip(self):
        assert parse_custom_id(control_id(ControlAction.SNOOZE_60, "01ABC")) == (
            ControlAction.SNOOZE_60,
            "01ABC",
        )

    @pytest.mark.parametrize(
        "custom_id",
        ["resolve", "resolve:", "resolve:   ", "unknown:01ABC", ":01ABC", ""],
    )
    def test_malformed(self, custom_id: str):
        assert parse_custom_id(custom_id) is None


class TestControls:
    def test_task_controls(self):
        controls = task_controls("t1")
        assert [c.custom_id for c in controls] == [
            "resolve:t1",
            "snooze30:t1",
            "snooze60:t1",
            "reassign:t1",
        ]
        assert controls[0].style == "success"

    def test_task_controls_without_snooze(self):
        ids = [c.custom_id for c in task_controls("t1", include_snooze=False)]
        assert ids == ["resolve:t1", "reassign:t1"]

    def test_resolved_controls_disabled(self):
        (control,) = resolved_controls("t1")
        assert control.disabled is True
        assert control.custom_id == "noop:t1"

    def test_reassign_picker(self):
        (picker,) = reassign_picker("t1")
        assert picker.kind == "user_select"
        assert picker.custom_id == "reassign_select:t1"


class TestStatusCard:
    def test_fields(self, make_task):
        task = make_task(ping_count=2, interval_minutes=45)
        card = build_status_card(task)

        values = {f.name: f.value for f in card.fields}
        assert card.title == "📋 待處理任務"
        assert card.description == task.description
        assert values["指派給"] == "<@user-a>"
        assert values["建立者"] == "<@user-c>"
        assert values["狀態"] == "🔴 Active"
        assert values["已提醒"] == "2 次"
        assert values["間隔"] == "45 分鐘"
        assert "截止日期" not in values
        assert card.footer == f"Task ID: {task.task_id}"
        assert card.timestamp == task.created_at
        assert card.note is None

    def test_due_date_field(self, make_task):
        due = datetime(2025, 1, 2, 23, 59, 59, tzinfo=UTC)
        card = build_status_card(make_task(due_date=due), note="extra")

        values = {f.name: f.value for f in card.fields}
        assert values["截止日期"] == f"<t:{int(due.timestamp())}:D>"
        assert card.note == "extra"

    def test_status_labels(self):
        assert status_label(TaskStatus.SNOOZED) == "⏸️ Snoozed"
        assert status_label("resolved") == "✅ Resolved"
        assert status_label("weird") == "weird"

    def test_mention_group(self):
        assert mention_group("42") == "<@&42>"


class TestTaskLine:
    def test_long_description_truncated(self, make_task):
        task = make_task(description="x" * 80, ping_count=3)
        line = format_task_line(1, task)

        assert line.startswith("**1.** 🔴 Active <@user-a> — " + "x" * 60 + "...")
        assert f"已提醒 3 次 · 間隔 30m · `{task.task_id[:8]}`" in line

    def test_short_description_kept(self, make_task):
        line = format_task_line(2, make_task(description="short"))
        assert "— short\n" in line
