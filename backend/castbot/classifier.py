from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from .clock import day_of_week
from .intents import (
    DEFAULT_CONFIRMATION,
    DEFAULT_KEYWORD,
    Intent,
    ScheduleIntent,
    ScheduleRequest,
    SearchIntent,
    TalkIntent,
)
from .llm_client import TextCompletionService

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "⚠️ Developer: GEMINI_API_KEY is not set."
RETRY_SCHEDULE_MESSAGE = "予約は「8時に再生」のように時刻で指定してください。"

PROMPT_TEMPLATE = """You are a Radio DJ bot. Classify and respond with ONLY the format. No explanations.

User: "{text}"
Now: {month}/{day} (day_of_week={dow}, 0=Sun,1=Mon,2=Tue,3=Wed,4=Thu,5=Fri,6=Sat), {hour}:{minute:02d} JST

RULES:
1. SCHEDULE - Time-based playback request (X時Y分, X:Y, 朝, 夜, 再生, かけて)
   - Calculate correct day_of_week from date if given (e.g., "1/27" -> check what day it is)
   - Support minutes: "12時45分" -> hour=12, minute=45
   - If only hour given, minute=0
   - If time already passed today, use tomorrow
   - Output: SCHEDULE:{{"day_of_week":N,"hour":H,"minute":M,"keyword":"{default_keyword}","message":"確認"}}

2. SEARCH - Find podcast (検索, 探して, find + keyword)
   - Output: SEARCH:keyword

3. TALK - Chat/greeting
   - Output: TALK:response

ONE LINE ONLY. NO MARKDOWN."""

SCHEDULE_MARKER_RE = re.compile(r"SCHEDULE:\s*(?=\{)")
SEARCH_RE = re.compile(r"SEARCH:\s*(.+)")
TALK_RE = re.compile(r"TALK:\s*(.+)")

_decoder = json.JSONDecoder()


def build_prompt(text: str, now: datetime) -> str:
    return PROMPT_TEMPLATE.format(
        text=text,
        month=now.month,
        day=now.day,
        dow=day_of_week(now),
        hour=now.hour,
        minute=now.minute,
        default_keyword=DEFAULT_KEYWORD,
    )


def _schedule_from_payload(obj: Any, source_text: str) -> Optional[ScheduleIntent]:
    if not isinstance(obj, dict):
        return None
    minute = obj.get("minute")
    try:
        request = ScheduleRequest(
            day_of_week=obj.get("day_of_week"),
            hour=obj.get("hour"),
            minute=0 if minute is None else minute,
            keyword=str(obj.get("keyword") or DEFAULT_KEYWORD),
            source_text=source_text,
        )
    except ValidationError:
        return None
    return ScheduleIntent(request=request, message=str(obj.get("message") or DEFAULT_CONFIRMATION))


def parse_response(response: str, source_text: str = "") -> Intent:
    """
    Map one raw model reply onto an intent.

    Markers are tried in order SCHEDULE, SEARCH, TALK. A reply with none of
    them is kept whole as a talk reply. A SCHEDULE payload that does not
    decode, or decodes to missing/out-of-range fields, becomes a talk reply
    asking the user to restate the time.
    """
    m = SCHEDULE_MARKER_RE.search(response)
    if m:
        try:
            obj, _end = _decoder.raw_decode(response, m.end())
        except json.JSONDecodeError:
            logger.error("Failed to parse SCHEDULE JSON: %s", response)
            return TalkIntent(content=RETRY_SCHEDULE_MESSAGE)

        intent = _schedule_from_payload(obj, source_text)
        if intent is None:
            logger.error("Rejected SCHEDULE payload: %s", response)
            return TalkIntent(content=RETRY_SCHEDULE_MESSAGE)
        return intent

    m = SEARCH_RE.search(response)
    if m and m.group(1).strip():
        return SearchIntent(term=m.group(1).strip())

    m = TALK_RE.search(response)
    if m and m.group(1).strip():
        return TalkIntent(content=m.group(1).strip())

    return TalkIntent(content=response)


class IntentClassifier:
    def __init__(self, service: TextCompletionService) -> None:
        self.service = service

    async def classify(self, text: str, now: datetime) -> Intent:
        if not self.service.enabled:
            logger.warning("GEMINI_API_KEY is missing.")
            return TalkIntent(content=MISSING_KEY_MESSAGE)

        try:
            response = (await self.service.complete(build_prompt(text, now))).strip()
        except Exception as exc:
            logger.exception("Gemini error")
            return TalkIntent(content=f"⚠️ System Error: {exc}")

        logger.info("Gemini response: %s", response)
        return parse_response(response, source_text=text)
