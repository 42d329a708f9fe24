from __future__ import annotations

import re
from typing import Optional

from pydantic import ValidationError

from .clock import DAY_GLYPHS
from .intents import ScheduleRequest

# 月曜日の8時にRebuildを再生して / 火曜7時 ニュース
# minutes ("8時30分") are left to the classifier
SCHEDULE_RE = re.compile(r"([月火水木金土日])曜日?の?[\s　]*(\d{1,2})時に?[\s　]*(?!\d+分)([^に\s　].*)")

# trailing "を", "を再生", "を予約して", "をかけて" ...
KEYWORD_SUFFIX_RE = re.compile(r"を(?:再生|予約|かけて)?(?:して)?$")


def _clean_keyword(raw: str) -> str:
    return KEYWORD_SUFFIX_RE.sub("", raw.strip()).strip()


def extract(text: str) -> Optional[ScheduleRequest]:
    m = SCHEDULE_RE.search(text or "")
    if not m:
        return None

    day_char, hour_str, tail = m.group(1), m.group(2), m.group(3)
    if day_char not in DAY_GLYPHS:
        return None

    keyword = _clean_keyword(tail)
    if not keyword:
        return None

    try:
        return ScheduleRequest(
            day_of_week=DAY_GLYPHS.index(day_char),
            hour=int(hour_str),
            minute=0,
            keyword=keyword,
            source_text=text,
        )
    except ValidationError:
        return None
