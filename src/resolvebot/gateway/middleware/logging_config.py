"""structlog 配置模块

dev 模式：ConsoleRenderer 彩色输出
json 模式：每行一个 JSON 事件（生产环境）

标准库 logging（uvicorn、httpx、aiosqlite）经 ProcessorFormatter 使用同一渲染器。
"""

import logging
import os

import structlog

# 这些 key 的值一律打码（Discord bot token、Authorization 头）
REDACTED_KEYS = frozenset({"token", "discord_token", "authorization"})

# 第三方 logger 的默认级别：httpx INFO 会打印每个请求 URL（含频道 ID）
_QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "aiosqlite": logging.WARNING,
}


def redact_secrets(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor：隐藏敏感字段"""
    for key in REDACTED_KEYS & event_dict.keys():
        event_dict[key] = "***"
    return event_dict


def build_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 配置

    Args:
        log_format: "dev" / "json"，默认读取 RESOLVEBOT_LOG_FORMAT（缺省 dev）
        log_level: 日志级别，默认读取 RESOLVEBOT_LOG_LEVEL（缺省 INFO）
    """
    log_format = log_format or os.environ.get("RESOLVEBOT_LOG_FORMAT", "dev")
    log_level = (log_level or os.environ.get("RESOLVEBOT_LOG_LEVEL", "INFO")).upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            build_renderer(log_format),
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for name, level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
