"""Wall-clock context in Chinese: absolute time, weekday, day period and
relative labels (``3 分钟前``) for history and memory timestamps."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from storycast.config import get_settings

WEEKDAYS = ("星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日")

# dayjs zh-cn thresholds: (label, largest rounded value it covers, unit seconds).
# A unit of None reuses the value measured by the step before.
_MONTH = 365.25 / 12 * 86400
_YEAR = 365.25 * 86400
_RELATIVE_STEPS = (
    ("几秒", 44, 1),
    ("1 分钟", 89, None),
    ("{} 分钟", 44, 60),
    ("1 小时", 89, None),
    ("{} 小时", 21, 3600),
    ("1 天", 35, None),
    ("{} 天", 25, 86400),
    ("1 个月", 45, None),
    ("{} 个月", 10, _MONTH),
    ("1 年", 17, None),
)


def local_now(now: Optional[datetime] = None) -> datetime:
    zone = ZoneInfo(get_settings().display_timezone)
    if now is None:
        return datetime.now(zone)
    return _aware(now).astimezone(zone)


def day_period(hour: int) -> str:
    if 5 <= hour < 8:
        return "清晨"
    if 8 <= hour < 12:
        return "上午"
    if 12 <= hour < 14:
        return "中午"
    if 14 <= hour < 18:
        return "下午"
    if 18 <= hour < 22:
        return "晚上"
    return "深夜"


def build_time_context(now: Optional[datetime] = None) -> str:
    current = local_now(now)
    return (
        "## 当前时间信息\n"
        "\n"
        f"- 当前时间：{current.strftime('%Y年%m月%d日 %H:%M:%S')}\n"
        f"- 星期：{WEEKDAYS[current.weekday()]}\n"
        f"- 时段：{day_period(current.hour)}\n"
    )


def relative_time(then: datetime, now: Optional[datetime] = None) -> str:
    """Humanised distance from *now* to *then*, e.g. ``5 分钟前`` or ``2 天内``."""
    current = _aware(now) if now is not None else datetime.now(timezone.utc)
    seconds = (current - _aware(then)).total_seconds()
    suffix = "前" if seconds >= 0 else "内"
    seconds = abs(seconds)

    value = 0
    previous = None
    for label, limit, unit in _RELATIVE_STEPS:
        if unit is not None:
            value = math.floor(seconds / unit + 0.5)
        if value <= limit:
            if value <= 1 and previous is not None:
                label = previous
            return label.format(value) + suffix
        previous = label
    return f"{math.floor(seconds / _YEAR + 0.5)} 年{suffix}"


def _aware(value: datetime) -> datetime:
    # Naive database timestamps are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
