from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .clock import day_glyph

DEFAULT_CONFIRMATION = "予約しました！"
DEFAULT_KEYWORD = "ランダム"


class ScheduleRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(..., strict=True, ge=0, le=6)  # 0=Sunday
    hour: int = Field(..., strict=True, ge=0, le=23)
    minute: int = Field(default=0, strict=True, ge=0, le=59)
    keyword: str
    source_text: str = ""

    @field_validator("keyword")
    @classmethod
    def _keyword_not_blank(cls, value: str) -> str:
        v = value.strip()
        if not v:
            raise ValueError("keyword must not be empty")
        return v

    def as_record(self) -> dict:
        return {
            "keyword": self.keyword,
            "day_of_week": self.day_of_week,
            "hour": self.hour,
            "minute": self.minute,
            "is_active": True,
        }


class ScheduleIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["schedule"] = "schedule"
    request: ScheduleRequest
    message: str = DEFAULT_CONFIRMATION


class SearchIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["search"] = "search"
    term: str = Field(..., min_length=1)


class TalkIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["talk"] = "talk"
    content: str


Intent = Union[ScheduleIntent, SearchIntent, TalkIntent]


def format_confirmation(intent: ScheduleIntent) -> str:
    req = intent.request
    return (
        f"{intent.message}\n\n"
        f"📻 番組: {req.keyword}\n"
        f"🗓 時間: {day_glyph(req.day_of_week)}曜日 {req.hour}:{req.minute:02d}"
    )
