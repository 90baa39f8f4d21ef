"""resolvebot 异常体系

状态冲突（任务已完成或不存在）不是异常，而是 TransitionResult.conflict。
"""


class ResolveBotError(Exception):
    """resolvebot 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class UserInputError(ResolveBotError):
    """用户输入无法解析（截止日期、延迟、间隔）

    直接回复给操作者，任务不会被创建。
    """

    def __init__(self, message: str, hint: str = "") -> None:
        """
        Args:
            message: 面向用户的错误描述
            hint: 合法输入示例
        """
        super().__init__(message, recoverable=False)
        self.hint = hint

    def user_message(self) -> str:
        if self.hint:
            return f"❌ {self}，請輸入如：{self.hint}"
        return f"❌ {self}"


class MessengerError(ResolveBotError):
    """消息平台调用失败（连接失败、超时、非 2xx 响应）"""

    def __init__(self, channel_id: str, original_error: Exception | str) -> None:
        """
        Args:
            channel_id: 目标频道
            original_error: 原始异常或错误描述
        """
        super().__init__(
            f"消息发送失败: channel={channel_id} -- {original_error}",
            recoverable=True,
        )
        self.channel_id = channel_id
        self.original_error = original_error
