from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parent.parent / ".env"

DEFAULT_APP_URL = "https://random-cast-player.vercel.app"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DB_FILENAME = "castbot.db"


@dataclass(frozen=True)
class Settings:
    line_channel_secret: str | None
    line_channel_access_token: str | None
    gemini_api_key: str | None
    gemini_base_url: str
    gemini_model: str
    cron_secret: str | None
    liff_id: str | None
    app_url: str
    db_path: str
    line_bot_id: str | None = None

    def liff_url(self, query: str) -> str:
        if self.liff_id:
            return f"https://liff.line.me/{self.liff_id}?{query}"
        return f"{self.app_url}/?{query}"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def get_settings() -> Settings:
    load_dotenv(ENV_PATH, override=False)
    default_db = Path(__file__).resolve().parent / DB_FILENAME
    return Settings(
        line_channel_secret=_clean(os.getenv("LINE_CHANNEL_SECRET")),
        line_channel_access_token=_clean(os.getenv("LINE_CHANNEL_ACCESS_TOKEN")),
        gemini_api_key=_clean(os.getenv("GEMINI_API_KEY")),
        gemini_base_url=(_clean(os.getenv("GEMINI_BASE_URL")) or DEFAULT_GEMINI_BASE_URL).rstrip("/"),
        gemini_model=_clean(os.getenv("GEMINI_MODEL")) or DEFAULT_GEMINI_MODEL,
        cron_secret=_clean(os.getenv("CRON_SECRET")),
        liff_id=_clean(os.getenv("LIFF_ID")),
        app_url=(_clean(os.getenv("APP_URL")) or DEFAULT_APP_URL).rstrip("/"),
        db_path=_clean(os.getenv("CASTBOT_DB_PATH")) or str(default_db),
        line_bot_id=_clean(os.getenv("LINE_BOT_ID")),
    )
