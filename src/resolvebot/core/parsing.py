"""截止日期 / 延迟解析

纯函数，把用户输入的日期和时长字符串转换为绝对时间。
无法解析或超出范围时返回 None，由调用方作为输入错误处理。

截止日期支持格式：
    明天 / 後天 / 下禮拜 / 下週（及 tomorrow / day after tomorrow / next week）
    M月D日
    M/D 或 MM/DD（当年；若已过则顺延至明年）
    YYYY/MM/DD 或 YYYY-MM-DD

延迟支持格式：30m、4h、1d（不区分大小写）
"""

import re
from datetime import datetime, timedelta

RELATIVE_DAYS: dict[str, int] = {
    "明天": 1,
    "後天": 2,
    "下禮拜": 7,
    "下週": 7,
    "tomorrow": 1,
    "day after tomorrow": 2,
    "next week": 7,
}

DELAY_MULTIPLIERS_MS: dict[str, int] = {
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}

_CHINESE_MONTH_DAY = re.compile(r"^(\d{1,2})月(\d{1,2})日?$")
_SHORT_SLASH = re.compile(r"^(\d{1,2})/(\d{1,2})$")
_FULL_DATE = re.compile(r"^(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})$")
_DELAY = re.compile(r"^(\d+)(m|h|d)$")


def end_of_day(moment: datetime) -> datetime:
    """同一天的 23:59:59"""
    return moment.replace(hour=23, minute=59, second=59, microsecond=0)


def parse_due_date(text: str, now: datetime | None = None) -> datetime | None:
    """解析截止日期

    Args:
        text: 用户输入
        now: 参考时间（默认当前本地墙钟时间）。带 tzinfo 时结果沿用其 tzinfo；
            naive 时视为进程本地时间，结果按当天的 UTC 偏移重新附加时区

    Returns:
        当天 23:59:59 的 datetime，无法解析时返回 None
    """
    if now is None:
        now = datetime.now()
    resolved = _parse_day(text.strip(), end_of_day(now))
    if resolved is not None and resolved.tzinfo is None:
        # 本地时区偏移随夏令时变化，按目标日期重新计算
        resolved = resolved.astimezone()
    return resolved


def _parse_day(trimmed: str, today: datetime) -> datetime | None:
    offset = RELATIVE_DAYS.get(trimmed, RELATIVE_DAYS.get(trimmed.lower()))
    if offset is not None:
        return today + timedelta(days=offset)

    match = _CHINESE_MONTH_DAY.match(trimmed) or _SHORT_SLASH.match(trimmed)
    if match:
        return _resolve_month_day(int(match.group(1)), int(match.group(2)), today)

    match = _FULL_DATE.match(trimmed)
    if match:
        try:
            return today.replace(
                year=int(match.group(1)),
                month=int(match.group(2)),
                day=int(match.group(3)),
            )
        except ValueError:
            return None

    return None


def _resolve_month_day(month: int, day: int, today: datetime) -> datetime | None:
    try:
        resolved = today.replace(month=month, day=day)
    except ValueError:
        return None
    if resolved < today:
        try:
            resolved = resolved.replace(year=resolved.year + 1)
        except ValueError:
            # 2/29 顺延到非闰年
            return None
    return resolved


def parse_delay(text: str) -> int | None:
    """解析延迟字符串，返回毫秒数

    Returns:
        毫秒数，格式不符时返回 None
    """
    match = _DELAY.match(text.strip().lower())
    if not match:
        return None
    return int(match.group(1)) * DELAY_MULTIPLIERS_MS[match.group(2)]
