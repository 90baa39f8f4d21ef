"""EchoMessenger -- 本地回显消息适配器

不连接任何平台：记录最近的发送并写日志，返回 ULID 作为消息 ID。
开发模式（无 DISCORD_TOKEN）与测试使用。
"""

from collections import deque

import structlog
from pydantic import BaseModel, Field
from ulid import ULID

from resolvebot.core.cards import ActionControl, StatusCard
from resolvebot.core.exceptions import MessengerError

log = structlog.get_logger()

DEFAULT_HISTORY_LIMIT = 200


class SentMessage(BaseModel):
    """一条已发送消息"""

    message_id: str
    channel_id: str
    content: str
    card: StatusCard | None = None
    controls: list[ActionControl] = Field(default_factory=list)


class EchoMessenger:
    """Messenger 的回显实现

    unavailable_channels 中的频道 can_send 返回 False，
    failing_channels 中的频道 send_message 抛出 MessengerError。
    sent 只保留最近 history_limit 条。
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.sent: deque[SentMessage] = deque(maxlen=history_limit)
        self.unavailable_channels: set[str] = set()
        self.failing_channels: set[str] = set()

    async def can_send(self, channel_id: str) -> bool:
        return channel_id not in self.unavailable_channels

    async def send_message(
        self,
        channel_id: str,
        content: str,
        card: StatusCard | None = None,
        controls: list[ActionControl] | None = None,
    ) -> str:
        if channel_id in self.failing_channels:
            raise MessengerError(channel_id, "echo channel configured to fail")

        message = SentMessage(
            message_id=str(ULID()),
            channel_id=channel_id,
            content=content,
            card=card,
            controls=controls or [],
        )
        self.sent.append(message)
        log.info(
            "echo_message_sent",
            channel_id=channel_id,
            message_id=message.message_id,
            content=content,
        )
        return message.message_id

    def sent_to(self, channel_id: str) -> list[SentMessage]:
        return [m for m in self.sent if m.channel_id == channel_id]

    async def aclose(self) -> None:
        return None
