"""DiscordMessenger 测试 -- httpx.MockTransport 模拟 Discord REST

测试内容：
1. send_message 请求路径、鉴权头与 payload 结构
2. embed / component 渲染
3. 非 2xx 与连接错误映射为 MessengerError
4. can_send 的频道类型判断
"""

import json
from datetime import UTC, datetime

import httpx
import pytest
from resolvebot.core.cards import (
    ActionControl,
    CardField,
    StatusCard,
    reassign_picker,
    task_controls,
)
from resolvebot.core.exceptions import MessengerError
from resolvebot.gateway.services.discord_messenger import (
    DiscordMessenger,
    render_components,
    render_embed,
)

API_BASE = "https://discord.test/api/v10"


class Recorder:
    """记录请求并返回预设响应"""

    def __init__(self, response: httpx.Response | Exception) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _messenger(recorder: Recorder) -> DiscordMessenger:
    return DiscordMessenger(
        token="bot-token",
        api_base=API_BASE,
        timeout_s=1.0,
        transport=httpx.MockTransport(recorder),
    )


class TestSendMessage:
    async def test_payload_shape(self):
        recorder = Recorder(httpx.Response(200, json={"id": "9001", "channel_id": "c1"}))
        messenger = _messenger(recorder)
        card = StatusCard(
            description="fix the build",
            fields=[CardField(name="指派給", value="<@u1>")],
            footer="Task ID: t1",
            timestamp=datetime(2025, 1, 1, 10, 0, tzinfo=UTC),
            note="⚠️ 已升級通知",
        )

        message_id = await messenger.send_message(
            "c1", "hello <@u1>", card=card, controls=task_controls("t1")
        )
        await messenger.aclose()

        assert message_id == "9001"
        (request,) = recorder.requests
        assert request.method == "POST"
        assert request.url.path == "/api/v10/channels/c1/messages"
        assert request.headers["Authorization"] == "Bot bot-token"

        payload = json.loads(request.content)
        assert payload["content"] == "hello <@u1>"
        assert payload["allowed_mentions"] == {"parse": ["users", "roles"]}
        embed = payload["embeds"][0]
        assert embed["title"] == "📋 待處理任務"
        assert embed["footer"] == {"text": "Task ID: t1"}
        assert embed["timestamp"] == "2025-01-01T10:00:00+00:00"
        assert embed["fields"][-1] == {"name": "📌", "value": "⚠️ 已升級通知", "inline": False}

        (row,) = payload["components"]
        assert row["type"] == 1
        assert [b["custom_id"] for b in row["components"]] == [
            "resolve:t1",
            "snooze30:t1",
            "snooze60:t1",
            "reassign:t1",
        ]
        assert [b["style"] for b in row["components"]] == [3, 2, 2, 1]

    async def test_plain_message_has_no_embeds(self):
        recorder = Recorder(httpx.Response(200, json={"id": "1"}))
        messenger = _messenger(recorder)

        await messenger.send_message("c1", "plain")
        await messenger.aclose()

        payload = json.loads(recorder.requests[0].content)
        assert "embeds" not in payload
        assert "components" not in payload

    @pytest.mark.parametrize("status", [400, 403, 429, 500, 503])
    async def test_http_error_raises(self, status: int):
        messenger = _messenger(Recorder(httpx.Response(status, json={"message": "no"})))
        with pytest.raises(MessengerError) as exc_info:
            await messenger.send_message("c1", "hello")
        await messenger.aclose()
        assert exc_info.value.channel_id == "c1"
        assert exc_info.value.recoverable is True

    async def test_connection_error_raises(self):
        error = httpx.ConnectError("connection refused")
        messenger = _messenger(Recorder(error))
        with pytest.raises(MessengerError) as exc_info:
            await messenger.send_message("c1", "hello")
        await messenger.aclose()
        assert exc_info.value.original_error is error


class TestCanSend:
    @pytest.mark.parametrize(
        "channel_type,expected",
        [(0, True), (5, True), (11, True), (4, False), (15, False)],
    )
    async def test_channel_types(self, channel_type: int, expected: bool):
        recorder = Recorder(httpx.Response(200, json={"id": "c1", "type": channel_type}))
        messenger = _messenger(recorder)

        assert await messenger.can_send("c1") is expected
        await messenger.aclose()
        assert recorder.requests[0].url.path == "/api/v10/channels/c1"

    @pytest.mark.parametrize("status", [403, 404])
    async def test_missing_channel(self, status: int):
        messenger = _messenger(Recorder(httpx.Response(status, json={})))
        assert await messenger.can_send("c1") is False
        await messenger.aclose()

    async def test_server_error_raises(self):
        messenger = _messenger(Recorder(httpx.Response(502, text="bad gateway")))
        with pytest.raises(MessengerError):
            await messenger.can_send("c1")
        await messenger.aclose()


class TestRendering:
    def test_buttons_wrap_at_five(self):
        controls = [ActionControl(custom_id=f"noop:{n}", label=str(n)) for n in range(7)]
        rows = render_components(controls)
        assert [len(r["components"]) for r in rows] == [5, 2]

    def test_user_select_gets_own_row(self):
        rows = render_components(reassign_picker("t1"))
        assert rows == [
            {
                "type": 1,
                "components": [
                    {
                        "type": 5,
                        "custom_id": "reassign_select:t1",
                        "placeholder": "選擇新的 assignee",
                        "min_values": 1,
                        "max_values": 1,
                    }
                ],
            }
        ]

    def test_embed_without_footer_or_note(self):
        embed = render_embed(StatusCard(description="d"))
        assert embed == {"title": "📋 待處理任務", "description": "d", "fields": []}
