from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

JST = timezone(timedelta(hours=9), name="JST")

DAY_GLYPHS = ("日", "月", "火", "水", "木", "金", "土")


class LocalClock:
    """
    Single source of "now" for the bot. Everything runs on a fixed UTC+9
    offset, so there is no DST handling.
    """

    def __init__(self, utcnow: Optional[Callable[[], datetime]] = None) -> None:
        self._utcnow = utcnow or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._utcnow().astimezone(JST)


class FixedClock(LocalClock):
    def __init__(self, at: datetime) -> None:
        if at.tzinfo is None:
            at = at.replace(tzinfo=JST)
        super().__init__(utcnow=lambda: at)


def day_of_week(dt: datetime) -> int:
    # 0=Sunday ... 6=Saturday
    return (dt.weekday() + 1) % 7


def day_glyph(index: int) -> str:
    return DAY_GLYPHS[index]
