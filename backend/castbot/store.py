from __future__ import annotations

import sqlite3
import time
from typing import Any, Dict, List, Optional

from .intents import ScheduleRequest


class DuplicateChannelError(RuntimeError):
    pass


def _now() -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())


class ScheduleStore:
    """
    Account links, registered channels and weekly schedules.

    Schedules are owned by the LINE user id; channels by the app user id
    the LINE account is linked to.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._init_schema()

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS line_mappings (
                    line_user_id TEXT PRIMARY KEY,
                    app_user_id TEXT NOT NULL,
                    updated_at TEXT
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS line_users (
                    line_user_id TEXT PRIMARY KEY,
                    language TEXT NOT NULL DEFAULT 'ja',
                    updated_at TEXT
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS channels (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    rss_url TEXT NOT NULL,
                    created_at TEXT,
                    UNIQUE(user_id, rss_url)
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schedules (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    line_user_id TEXT NOT NULL,
                    keyword TEXT NOT NULL,
                    day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
                    hour INTEGER NOT NULL CHECK (hour BETWEEN 0 AND 23),
                    minute INTEGER NOT NULL DEFAULT 0 CHECK (minute BETWEEN 0 AND 59),
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT
                );
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_schedules_due ON schedules(day_of_week, hour, is_active)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_mappings_app_user ON line_mappings(app_user_id)"
            )

    # ---------- Account linking ----------

    def link_user(self, *, line_user_id: str, app_user_id: str) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO line_mappings(line_user_id, app_user_id, updated_at)
                VALUES(?, ?, ?)
                ON CONFLICT(line_user_id) DO UPDATE SET
                    app_user_id=excluded.app_user_id,
                    updated_at=excluded.updated_at
                """,
                (line_user_id, app_user_id, _now()),
            )

    def get_app_user_id(self, *, line_user_id: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT app_user_id FROM line_mappings WHERE line_user_id=?",
                (line_user_id,),
            ).fetchone()
        return str(row["app_user_id"]) if row else None

    def set_language(self, *, line_user_id: str, language: str) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO line_users(line_user_id, language, updated_at)
                VALUES(?, ?, ?)
                ON CONFLICT(line_user_id) DO UPDATE SET
                    language=excluded.language,
                    updated_at=excluded.updated_at
                """,
                (line_user_id, language, _now()),
            )

    def get_language(self, *, line_user_id: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT language FROM line_users WHERE line_user_id=?",
                (line_user_id,),
            ).fetchone()
        return str(row["language"]) if row else None

    # ---------- Channels ----------

    def add_channel(self, *, user_id: str, rss_url: str) -> int:
        try:
            with self._conn() as conn:
                cur = conn.execute(
                    "INSERT INTO channels(user_id, rss_url, created_at) VALUES(?, ?, ?)",
                    (user_id, rss_url, _now()),
                )
                return int(cur.lastrowid)
        except sqlite3.IntegrityError as exc:
            raise DuplicateChannelError(f"channel already registered: {rss_url}") from exc

    def list_channels(self, *, user_id: str) -> List[Dict[str, Any]]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT id, user_id, rss_url, created_at FROM channels WHERE user_id=? ORDER BY id ASC",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def delete_channel(self, *, channel_id: int, user_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                "DELETE FROM channels WHERE id=? AND user_id=?",
                (int(channel_id), user_id),
            )
            return cur.rowcount > 0

    # ---------- Schedules ----------

    def add_schedule(self, *, line_user_id: str, request: ScheduleRequest) -> int:
        rec = request.as_record()
        with self._conn() as conn:
            cur = conn.execute(
                """
                INSERT INTO schedules(line_user_id, keyword, day_of_week, hour, minute, is_active, created_at)
                VALUES(?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    line_user_id,
                    rec["keyword"],
                    rec["day_of_week"],
                    rec["hour"],
                    rec["minute"],
                    1 if rec["is_active"] else 0,
                    _now(),
                ),
            )
            return int(cur.lastrowid)

    def list_schedules(self, *, line_user_id: str) -> List[Dict[str, Any]]:
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT id, line_user_id, keyword, day_of_week, hour, minute, is_active, created_at
                FROM schedules
                WHERE line_user_id=? AND is_active=1
                ORDER BY day_of_week ASC, hour ASC, minute ASC
                """,
                (line_user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def delete_schedule(self, *, schedule_id: int, line_user_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                "DELETE FROM schedules WHERE id=? AND line_user_id=?",
                (int(schedule_id), line_user_id),
            )
            return cur.rowcount > 0

    def list_due(self, *, day_of_week: int, hour: int) -> List[Dict[str, Any]]:
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT id, line_user_id, keyword, day_of_week, hour, minute
                FROM schedules
                WHERE day_of_week=? AND hour=? AND is_active=1
                ORDER BY minute ASC, id ASC
                """,
                (int(day_of_week), int(hour)),
            ).fetchall()
        return [dict(r) for r in rows]
