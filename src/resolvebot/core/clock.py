"""时间源

生命周期引擎、调度器与 dispatcher 通过构造参数注入 Clock，测试时替换为固定时间。
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """当前 UTC 时间（aware）"""
    return datetime.now(UTC)


def to_storage(moment: datetime) -> str:
    """转换为定宽 UTC ISO-8601 文本，字典序即时间序"""
    if moment.tzinfo is None:
        raise ValueError("naive datetime cannot be stored")
    return moment.astimezone(UTC).isoformat(timespec="microseconds")


def from_storage(raw: str | None) -> datetime | None:
    """从存储文本还原 aware datetime"""
    if raw is None:
        return None
    return datetime.fromisoformat(raw)
