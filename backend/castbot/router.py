from __future__ import annotations

import logging
from typing import Callable, Optional

from .classifier import IntentClassifier
from .clock import LocalClock
from .extractor import extract
from .intents import Intent, ScheduleIntent, ScheduleRequest

logger = logging.getLogger(__name__)

Extractor = Callable[[str], Optional[ScheduleRequest]]


class IntentRouter:
    """
    Deterministic extraction first; the generative classifier only sees
    messages the extractor could not parse.
    """

    def __init__(
        self,
        *,
        classifier: IntentClassifier,
        clock: Optional[LocalClock] = None,
        extractor: Extractor = extract,
    ) -> None:
        self.classifier = classifier
        self.clock = clock or LocalClock()
        self.extractor = extractor

    async def route(self, text: str) -> Intent:
        request = self.extractor(text)
        if request is not None:
            logger.debug("deterministic schedule match: %s", request)
            return ScheduleIntent(request=request)

        return await self.classifier.classify(text, self.clock.now())
