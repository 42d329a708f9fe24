from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from linebot.v3 import WebhookParser

from .catalog import PodcastCatalog
from .classifier import IntentClassifier
from .clock import LocalClock
from .llm_client import GeminiCompletionService, TextCompletionService
from .messenger import LineMessenger, Messenger
from .notifier import ScheduleNotifier
from .router import IntentRouter
from .settings import Settings
from .store import ScheduleStore
from .webhook import WebhookHandler

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    store: ScheduleStore
    messenger: Messenger
    parser: WebhookParser
    completion: TextCompletionService
    handler: WebhookHandler
    notifier: ScheduleNotifier


def build_services(
    settings: Settings,
    *,
    messenger: Optional[Messenger] = None,
    completion: Optional[TextCompletionService] = None,
    catalog: Optional[PodcastCatalog] = None,
    store: Optional[ScheduleStore] = None,
    clock: Optional[LocalClock] = None,
) -> Services:
    if not settings.line_channel_secret:
        logger.warning("LINE_CHANNEL_SECRET is not set. Webhook signatures will not validate.")
    if not settings.line_channel_access_token and messenger is None:
        logger.warning("LINE_CHANNEL_ACCESS_TOKEN is not set. Replies will fail.")

    clock = clock or LocalClock()
    store = store or ScheduleStore(db_path=settings.db_path)
    messenger = messenger or LineMessenger(settings.line_channel_access_token or "")
    completion = completion or GeminiCompletionService.from_settings(settings)

    router = IntentRouter(classifier=IntentClassifier(completion), clock=clock)
    handler = WebhookHandler(
        store=store,
        messenger=messenger,
        router=router,
        catalog=catalog or PodcastCatalog(),
        settings=settings,
    )
    notifier = ScheduleNotifier(store=store, messenger=messenger, settings=settings, clock=clock)

    return Services(
        settings=settings,
        store=store,
        messenger=messenger,
        parser=WebhookParser(settings.line_channel_secret or ""),
        completion=completion,
        handler=handler,
        notifier=notifier,
    )
