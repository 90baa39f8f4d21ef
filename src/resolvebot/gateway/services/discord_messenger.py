"""DiscordMessenger -- Discord REST API 出站适配

通过 httpx.AsyncClient 调用 Discord REST v10：
- GET  /channels/{id}           判断频道是否可发送
- POST /channels/{id}/messages  发送内容 + embed + component rows

StatusCard 渲染为 embed，ActionControl 渲染为按钮 / 用户选择器。
"""

import httpx
import structlog

from resolvebot.core.cards import ActionControl, StatusCard
from resolvebot.core.exceptions import MessengerError

log = structlog.get_logger()

DEFAULT_API_BASE = "https://discord.com/api/v10"
USER_AGENT = "DiscordBot (https://github.com/resolvebot/resolvebot, 0.1.0)"

# 可发送消息的频道类型：文字、私信、语音内文字、群组私信、公告、讨论串、舞台
SENDABLE_CHANNEL_TYPES = frozenset({0, 1, 2, 3, 5, 10, 11, 12, 13})

# component 类型
_ACTION_ROW = 1
_BUTTON = 2
_USER_SELECT = 5

_BUTTON_STYLES = {
    "primary": 1,
    "secondary": 2,
    "success": 3,
    "danger": 4,
}

# 每个 action row 最多 5 个按钮
_ROW_WIDTH = 5

# 连接类异常（网络层超时由 httpx timeout 控制）
_CONNECTION_ERROR_TYPES = (
    httpx.ConnectError,
    httpx.TimeoutException,
    httpx.NetworkError,
)


def render_embed(card: StatusCard) -> dict:
    """StatusCard -> Discord embed"""
    fields = [
        {"name": f.name, "value": f.value, "inline": f.inline} for f in card.fields
    ]
    if card.note:
        fields.append({"name": "📌", "value": card.note, "inline": False})
    embed: dict = {
        "title": card.title,
        "description": card.description,
        "fields": fields,
    }
    if card.footer:
        embed["footer"] = {"text": card.footer}
    if card.timestamp is not None:
        embed["timestamp"] = card.timestamp.isoformat()
    return embed


def render_control(control: ActionControl) -> dict:
    """ActionControl -> Discord component"""
    if control.kind == "user_select":
        return {
            "type": _USER_SELECT,
            "custom_id": control.custom_id,
            "placeholder": control.label,
            "min_values": 1,
            "max_values": 1,
        }
    component: dict = {
        "type": _BUTTON,
        "style": _BUTTON_STYLES.get(control.style, _BUTTON_STYLES["secondary"]),
        "label": control.label,
        "custom_id": control.custom_id,
        "disabled": control.disabled,
    }
    if control.emoji:
        component["emoji"] = {"name": control.emoji}
    return component


def render_components(controls: list[ActionControl]) -> list[dict]:
    """按钮按 5 个一行分组；用户选择器独占一行"""
    rows: list[dict] = []
    buttons: list[dict] = []
    for control in controls:
        rendered = render_control(control)
        if rendered["type"] == _USER_SELECT:
            rows.append({"type": _ACTION_ROW, "components": [rendered]})
            continue
        buttons.append(rendered)
        if len(buttons) == _ROW_WIDTH:
            rows.append({"type": _ACTION_ROW, "components": buttons})
            buttons = []
    if buttons:
        rows.append({"type": _ACTION_ROW, "components": buttons})
    return rows


class DiscordMessenger:
    """Messenger 的 Discord REST 实现"""

    def __init__(
        self,
        token: str,
        api_base: str = DEFAULT_API_BASE,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            token: Bot token
            api_base: REST 基础 URL
            timeout_s: 请求超时（秒）
            transport: 自定义传输层（测试注入 httpx.MockTransport）
        """
        self._client = httpx.AsyncClient(
            base_url=api_base.rstrip("/"),
            headers={
                "Authorization": f"Bot {token}",
                "User-Agent": USER_AGENT,
            },
            timeout=timeout_s,
            transport=transport,
        )

    async def can_send(self, channel_id: str) -> bool:
        """频道存在、bot 可见且类型可发送

        Raises:
            MessengerError: 连接失败或平台 5xx
        """
        try:
            resp = await self._client.get(f"/channels/{channel_id}")
        except _CONNECTION_ERROR_TYPES as e:
            raise MessengerError(channel_id, e) from e

        if resp.status_code in (403, 404):
            log.debug("discord_channel_unavailable", channel_id=channel_id, status=resp.status_code)
            return False
        if resp.status_code >= 400:
            raise MessengerError(channel_id, f"HTTP {resp.status_code}: {resp.text[:200]}")

        return resp.json().get("type") in SENDABLE_CHANNEL_TYPES

    async def send_message(
        self,
        channel_id: str,
        content: str,
        card: StatusCard | None = None,
        controls: list[ActionControl] | None = None,
    ) -> str:
        payload: dict = {
            "content": content,
            "allowed_mentions": {"parse": ["users", "roles"]},
        }
        if card is not None:
            payload["embeds"] = [render_embed(card)]
        if controls:
            payload["components"] = render_components(controls)

        try:
            resp = await self._client.post(f"/channels/{channel_id}/messages", json=payload)
        except _CONNECTION_ERROR_TYPES as e:
            log.error(
                "discord_send_failed",
                channel_id=channel_id,
                error_type=type(e).__name__,
            )
            raise MessengerError(channel_id, e) from e

        if resp.status_code >= 400:
            log.error(
                "discord_send_failed",
                channel_id=channel_id,
                status=resp.status_code,
                body=resp.text[:500],
            )
            raise MessengerError(channel_id, f"HTTP {resp.status_code}")

        return str(resp.json()["id"])

    async def aclose(self) -> None:
        await self._client.aclose()
