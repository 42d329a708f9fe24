from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

from castbot.catalog import CatalogError, PodcastHit
from castbot.clock import JST, FixedClock
from castbot.settings import Settings
from castbot.store import ScheduleStore

CHANNEL_SECRET = "test-channel-secret"

# Monday 2025-01-20 10:30 JST
MONDAY_MORNING = datetime(2025, 1, 20, 10, 30, tzinfo=JST)


class FakeCompletion:
    def __init__(self, reply: str = "TALK:こんにちは", *, enabled: bool = True, error: Optional[Exception] = None):
        self.reply = reply
        self.enabled = enabled
        self.error = error
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeMessenger:
    def __init__(self, fail_push_to: Optional[set] = None):
        self.replies: List[Dict[str, Any]] = []
        self.pushes: List[Dict[str, Any]] = []
        self.fail_push_to = fail_push_to or set()

    async def reply(self, reply_token, messages):
        self.replies.append({"token": reply_token, "messages": list(messages)})

    async def push(self, to, messages):
        if to in self.fail_push_to:
            raise RuntimeError(f"push rejected for {to}")
        self.pushes.append({"to": to, "messages": list(messages)})

    def last_texts(self) -> List[str]:
        return [getattr(m, "text", None) or getattr(m, "alt_text", "") for m in self.replies[-1]["messages"]]


class FakeCatalog:
    def __init__(self, hits: Optional[List[PodcastHit]] = None, error: bool = False):
        self.hits = hits or []
        self.error = error
        self.terms: List[str] = []

    async def search(self, term: str, *, limit: int = 5):
        self.terms.append(term)
        if self.error:
            raise CatalogError("catalog down")
        return self.hits[:limit]


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        line_channel_secret=CHANNEL_SECRET,
        line_channel_access_token="test-token",
        gemini_api_key="test-key",
        gemini_base_url="https://gemini.test/v1beta",
        gemini_model="gemini-2.0-flash",
        cron_secret="cron-secret",
        liff_id=None,
        app_url="https://cast.example",
        db_path=str(tmp_path / "castbot.db"),
    )
    values.update(overrides)
    return Settings(**values)


def sign(body: str, secret: str = CHANNEL_SECRET) -> str:
    digest = hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def _event_base(event_type: str, user_id: Optional[str], reply_token: str) -> Dict[str, Any]:
    source: Dict[str, Any] = {"type": "user"}
    if user_id:
        source["userId"] = user_id
    return {
        "type": event_type,
        "mode": "active",
        "timestamp": 1737336600000,
        "webhookEventId": f"evt-{reply_token}",
        "deliveryContext": {"isRedelivery": False},
        "replyToken": reply_token,
        "source": source,
    }


def text_event(text: str, *, user_id: Optional[str] = "U-line-1", reply_token: str = "rt-1") -> Dict[str, Any]:
    event = _event_base("message", user_id, reply_token)
    event["message"] = {"type": "text", "id": "m-1", "text": text, "quoteToken": "q-1"}
    return event


def follow_event(*, user_id: str = "U-line-1", reply_token: str = "rt-follow") -> Dict[str, Any]:
    event = _event_base("follow", user_id, reply_token)
    event["follow"] = {"isUnblocked": False}
    return event


def postback_event(data: str, *, user_id: str = "U-line-1", reply_token: str = "rt-pb") -> Dict[str, Any]:
    event = _event_base("postback", user_id, reply_token)
    event["postback"] = {"data": data}
    return event


def webhook_body(*events: Dict[str, Any]) -> str:
    return json.dumps({"destination": "U-bot", "events": list(events)}, ensure_ascii=False)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture()
def store(settings) -> ScheduleStore:
    return ScheduleStore(db_path=settings.db_path)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(MONDAY_MORNING)
