"""BotConfig -- 运行配置加载

从环境变量加载配置；核心组件只通过构造参数接收这些值。
"""

import os
from datetime import tzinfo
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from pydantic import BaseModel, Field, SecretStr, ValidationError

log = structlog.get_logger()

# 命令参数约束
MIN_INTERVAL_MINUTES = 1
MAX_INTERVAL_MINUTES = 1440

# context menu 建立任务时描述截断长度
QUOTED_DESCRIPTION_MAX_LENGTH = 500

# /task list 最多列出的任务数与描述预览长度
LIST_LIMIT = 20
LIST_PREVIEW_LENGTH = 60


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("RESOLVEBOT_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "RESOLVEBOT_DB_PATH",
        str(_get_base_dir() / "sqlite" / "resolvebot.db"),
    )


class BotConfig(BaseModel):
    """进程配置

    环境变量:
        RESOLVEBOT_DB_PATH: SQLite 路径
        DISCORD_TOKEN: Bot token
        DISCORD_API_BASE: Discord REST 基础 URL
        RESOLVEBOT_MESSENGER_MODE: discord / echo（无 token 时默认 echo）
        PING_CHECK_INTERVAL_MS: 调度器 tick 间隔（毫秒，默认 60000）
        DEFAULT_INTERVAL_MIN: 新任务默认提醒间隔（分钟，默认 30）
        DEFAULT_MAX_PINGS: 升级前的提醒次数（默认 5）
        PORT: HTTP 端口（默认 8080）
        RESOLVEBOT_TIMEZONE: 解析截止日期用的 IANA 时区（默认进程本地时区）
        RESOLVEBOT_HTTP_TIMEOUT_S: 消息平台请求超时（秒，默认 10）
        RESOLVEBOT_INTERACTIONS_SECRET: /api/interactions 共享密钥（未配置时拒绝所有请求）
    """

    db_path: str = Field(default_factory=get_db_path, description="SQLite 路径")
    discord_token: SecretStr = Field(default=SecretStr(""), description="Bot token")
    discord_api_base: str = Field(
        default="https://discord.com/api/v10",
        description="Discord REST 基础 URL",
    )
    messenger_mode: Literal["discord", "echo"] = Field(
        default="echo", description="消息平台模式"
    )
    ping_check_interval_ms: int = Field(default=60_000, ge=100, description="tick 间隔")
    default_interval_min: int = Field(
        default=30,
        ge=MIN_INTERVAL_MINUTES,
        le=MAX_INTERVAL_MINUTES,
        description="默认提醒间隔（分钟）",
    )
    default_max_pings: int = Field(default=5, ge=0, description="升级阈值")
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP 端口")
    timezone: str | None = Field(default=None, description="IANA 时区名")
    http_timeout_s: float = Field(default=10.0, gt=0, description="HTTP 超时（秒）")
    interactions_secret: SecretStr = Field(
        default=SecretStr(""), description="/api/interactions 共享密钥"
    )

    @property
    def ping_check_interval_s(self) -> float:
        return self.ping_check_interval_ms / 1000

    def zone(self) -> tzinfo | None:
        """解析时区；未配置或无效时返回 None（使用进程本地时区）"""
        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            log.warning("invalid_timezone_config", timezone=self.timezone)
            return None


_INT_ENV_FIELDS: dict[str, str] = {
    "PING_CHECK_INTERVAL_MS": "ping_check_interval_ms",
    "DEFAULT_INTERVAL_MIN": "default_interval_min",
    "DEFAULT_MAX_PINGS": "default_max_pings",
    "PORT": "port",
}


def load_bot_config() -> BotConfig:
    """从环境变量加载 BotConfig

    数值型环境变量无效时记录 warning 并使用默认值，不阻塞启动。

    Returns:
        BotConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("DISCORD_TOKEN"):
        kwargs["discord_token"] = SecretStr(val)
        kwargs["messenger_mode"] = "discord"

    if val := os.environ.get("DISCORD_API_BASE"):
        kwargs["discord_api_base"] = val.rstrip("/")

    if val := os.environ.get("RESOLVEBOT_MESSENGER_MODE"):
        kwargs["messenger_mode"] = val

    if val := os.environ.get("RESOLVEBOT_TIMEZONE"):
        kwargs["timezone"] = val

    if val := os.environ.get("RESOLVEBOT_INTERACTIONS_SECRET"):
        kwargs["interactions_secret"] = SecretStr(val)

    for env_var, field_name in _INT_ENV_FIELDS.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[field_name] = int(val)
            except ValueError:
                log.warning(
                    "invalid_int_config",
                    env_var=env_var,
                    value=val,
                    fallback=BotConfig.model_fields[field_name].default,
                )

    if val := os.environ.get("RESOLVEBOT_HTTP_TIMEOUT_S"):
        try:
            kwargs["http_timeout_s"] = float(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="RESOLVEBOT_HTTP_TIMEOUT_S",
                value=val,
                fallback=10.0,
            )

    try:
        return BotConfig(**kwargs)
    except ValidationError as e:
        # 超出范围的值同样回退默认值
        invalid = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        for field_name in sorted(invalid):
            value = kwargs.pop(field_name, None)
            fallback = BotConfig.model_fields[field_name].default
            # 已配置 token 时无效的模式回退到 discord
            if field_name == "messenger_mode" and "discord_token" in kwargs:
                fallback = kwargs[field_name] = "discord"
            log.warning(
                "invalid_config_value",
                field=field_name,
                value=value,
                fallback=fallback,
            )
        return BotConfig(**kwargs)
