from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from . import messages
from .clock import LocalClock, day_of_week
from .messenger import Messenger
from .settings import Settings
from .store import ScheduleStore

logger = logging.getLogger(__name__)


class ScheduleNotifier:
    """
    Pushes a playback reminder for every active schedule whose weekday and
    hour match the current local time. Minutes are not compared; the job is
    expected to run once per hour.
    """

    def __init__(
        self,
        *,
        store: ScheduleStore,
        messenger: Messenger,
        settings: Settings,
        clock: Optional[LocalClock] = None,
    ) -> None:
        self.store = store
        self.messenger = messenger
        self.settings = settings
        self.clock = clock or LocalClock()

    async def run_due_once(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or self.clock.now()
        dow = day_of_week(now)
        logger.info("Checking schedules for day=%s hour=%s (JST)", dow, now.hour)

        due = self.store.list_due(day_of_week=dow, hour=now.hour)
        if not due:
            return []

        url = self.settings.liff_url("autoplay=true")
        return list(await asyncio.gather(*(self._push(row, url) for row in due)))

    async def _push(self, row: Dict[str, Any], url: str) -> Dict[str, Any]:
        schedule_id = int(row["id"])
        line_user_id = str(row["line_user_id"])
        try:
            await self.messenger.push(line_user_id, [messages.alarm(str(row["keyword"]), url)])
        except Exception as ex:
            logger.error("Failed to push to %s: %s", line_user_id, ex)
            return {"status": "failed", "error": str(ex), "id": schedule_id}
        return {"status": "sent", "id": schedule_id}
