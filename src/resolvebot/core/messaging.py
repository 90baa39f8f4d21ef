"""Messenger Protocol -- 消息平台出站接口

核心只需要两件事：频道当前能否发送、发送后拿回消息 ID。
具体平台（Discord REST、Echo）的实现位于 gateway.services。
"""

from typing import Protocol

from .cards import ActionControl, StatusCard


class Messenger(Protocol):
    """出站消息接口"""

    async def can_send(self, channel_id: str) -> bool:
        """频道是否存在且可发送"""
        ...

    async def send_message(
        self,
        channel_id: str,
        content: str,
        card: StatusCard | None = None,
        controls: list[ActionControl] | None = None,
    ) -> str:
        """发送消息，返回平台消息 ID

        Raises:
            MessengerError: 发送失败
        """
        ...
