from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from typing import Any, Sequence
from urllib.parse import parse_qs

from linebot.v3.webhooks import FollowEvent, MessageEvent, PostbackEvent, TextMessageContent

from . import messages
from .catalog import CatalogError, PodcastCatalog
from .intents import ScheduleIntent, SearchIntent, format_confirmation
from .messenger import Messenger
from .router import IntentRouter
from .settings import Settings
from .store import DuplicateChannelError, ScheduleStore

logger = logging.getLogger(__name__)

UUID_RE = re.compile(r"^[0-9a-f-]{36}$", re.IGNORECASE)
SEARCH_RE = re.compile(r"^(検索|search)[\s　]+(.+)$", re.IGNORECASE)
LIST_CHANNELS_RE = re.compile(r"^(リスト|一覧|list)$", re.IGNORECASE)
LIST_SCHEDULES_RE = re.compile(r"^(予約確認|予約一覧)$")
ADD_CHANNEL_RE = re.compile(r"^番組追加[\s　]+(.+)$")
DELETE_CHANNEL_RE = re.compile(r"^番組削除[\s　]+(\d+)[\s　]*$")
DELETE_SCHEDULE_RE = re.compile(r"^予約削除[\s　]+(\d+)[\s　]*$")
WS_RE = re.compile(r"[\s　]+")

NOT_LINKED = '先に連携してください。\nSend "CONNECT <ID>"'
SEARCH_HINT = "番組を検索するには\n「検索 <キーワード>」\nと送信してください。\n例: 検索 Rebuild"
SCHEDULE_HINT = "この番組をいつ自動再生しますか？\n\n「月曜8時に再生」\n「毎朝7時に予約」\n\nのように話しかけて教えてください。"


class WebhookHandler:
    """
    Handles one delivery of webhook events. Each event runs as its own task;
    a failure in one event is answered in-chat and never affects the others.
    """

    def __init__(
        self,
        *,
        store: ScheduleStore,
        messenger: Messenger,
        router: IntentRouter,
        catalog: PodcastCatalog,
        settings: Settings,
    ) -> None:
        self.store = store
        self.messenger = messenger
        self.router = router
        self.catalog = catalog
        self.settings = settings

    async def handle_events(self, events: Sequence[Any]) -> None:
        await asyncio.gather(*(self._handle_event_safely(e) for e in events))

    async def _handle_event_safely(self, event: Any) -> None:
        try:
            await self.handle_event(event)
        except Exception as exc:
            logger.exception("Webhook event error")
            reply_token = getattr(event, "reply_token", None)
            if not reply_token:
                return
            try:
                await self.messenger.reply(reply_token, [messages.text(f"エラーが発生しました。\n{exc}")])
            except Exception:
                logger.exception("Failed to reply error message")

    async def handle_event(self, event: Any) -> None:
        user_id = getattr(getattr(event, "source", None), "user_id", None)

        if isinstance(event, FollowEvent):
            await self.messenger.reply(event.reply_token, [messages.language_prompt()])
            return

        if isinstance(event, PostbackEvent):
            if user_id and event.postback and event.postback.data:
                await self.handle_postback(event.reply_token, user_id, event.postback.data)
            return

        if not isinstance(event, MessageEvent) or not isinstance(event.message, TextMessageContent):
            return
        if not user_id:
            return

        await self.handle_text(event.reply_token, user_id, event.message.text.strip())

    async def handle_postback(self, reply_token: str, line_user_id: str, data: str) -> None:
        params = parse_qs(data)
        action = (params.get("action") or [""])[0]
        if action != "set_lang":
            return

        lang = (params.get("lang") or ["ja"])[0] or "ja"
        self.store.set_language(line_user_id=line_user_id, language=lang)
        url = self.settings.liff_url(f"open=settings&lang={lang}")
        await self.messenger.reply(reply_token, [messages.link_guide(lang, url)])

    async def handle_text(self, reply_token: str, line_user_id: str, text: str) -> None:
        search = SEARCH_RE.match(text)
        add_channel = ADD_CHANNEL_RE.match(text)
        delete_channel = DELETE_CHANNEL_RE.match(text)
        delete_schedule = DELETE_SCHEDULE_RE.match(text)

        if text.startswith("CONNECT ") or UUID_RE.match(text):
            await self.connect(reply_token, line_user_id, text.replace("CONNECT ", "", 1).strip())
        elif search:
            await self.search(reply_token, search.group(2).strip())
        elif text.lower() in {"検索", "search"}:
            await self._reply_text(reply_token, SEARCH_HINT)
        elif add_channel:
            await self.add_channel(reply_token, line_user_id, add_channel.group(1).strip())
        elif LIST_CHANNELS_RE.match(text):
            await self.list_channels(reply_token, line_user_id)
        elif delete_channel:
            await self.delete_channel(reply_token, line_user_id, int(delete_channel.group(1)))
        elif LIST_SCHEDULES_RE.match(text):
            await self.list_schedules(reply_token, line_user_id)
        elif delete_schedule:
            await self.delete_schedule(reply_token, line_user_id, int(delete_schedule.group(1)))
        else:
            await self.dispatch_intent(reply_token, line_user_id, text)

    # ---------- Free text ----------

    async def dispatch_intent(self, reply_token: str, line_user_id: str, text: str) -> None:
        intent = await self.router.route(text)

        if isinstance(intent, ScheduleIntent):
            if self.store.get_app_user_id(line_user_id=line_user_id) is None:
                await self._reply_text(reply_token, NOT_LINKED)
                return
            try:
                self.store.add_schedule(line_user_id=line_user_id, request=intent.request)
            except sqlite3.Error:
                logger.exception("Schedule save error")
                await self._reply_text(reply_token, "予約の保存に失敗しました。")
                return
            await self._reply_text(reply_token, format_confirmation(intent))
        elif isinstance(intent, SearchIntent):
            await self.search(reply_token, intent.term)
        else:
            await self._reply_text(reply_token, intent.content)

    # ---------- Commands ----------

    async def connect(self, reply_token: str, line_user_id: str, app_user_id: str) -> None:
        if not app_user_id:
            await self._reply_text(reply_token, "Invalid format. Use: CONNECT <Your-ID>")
            return
        self.store.link_user(line_user_id=line_user_id, app_user_id=app_user_id)
        await self.messenger.reply(
            reply_token,
            [
                messages.text("連携が完了しました！✨"),
                messages.text("次に、どんな番組を登録しますか？\n番組名を入力して送信してください（例: Rebuild, ニュース）"),
            ],
        )

    async def search(self, reply_token: str, term: str) -> None:
        try:
            hits = await self.catalog.search(term, limit=5)
        except CatalogError:
            logger.exception("Podcast search failed")
            await self._reply_text(reply_token, "検索中にエラーが発生しました。")
            return

        if not hits:
            await self._reply_text(reply_token, "見つかりませんでした。別のキーワードで試してください。")
            return
        await self.messenger.reply(reply_token, [messages.search_results(hits)])

    async def add_channel(self, reply_token: str, line_user_id: str, arg: str) -> None:
        parts = WS_RE.split(arg)
        url = parts[0]
        title = " ".join(parts[1:]) or "Unknown"

        app_user_id = self.store.get_app_user_id(line_user_id=line_user_id)
        if app_user_id is None:
            await self._reply_text(reply_token, 'アカウントが連携されていません。"CONNECT <ID>" で連携してください。')
            return

        try:
            self.store.add_channel(user_id=app_user_id, rss_url=url)
        except DuplicateChannelError:
            await self._reply_text(reply_token, "登録に失敗しました。（既に登録済みか、エラーが発生しました）")
            return

        await self.messenger.reply(
            reply_token,
            [messages.text(f"「{title}」を登録しました！"), messages.text(SCHEDULE_HINT)],
        )

    async def list_channels(self, reply_token: str, line_user_id: str) -> None:
        app_user_id = self.store.get_app_user_id(line_user_id=line_user_id)
        if app_user_id is None:
            await self._reply_text(reply_token, '連携されていません。"CONNECT <ID>" を送信してください。')
            return
        channels = self.store.list_channels(user_id=app_user_id)
        await self.messenger.reply(reply_token, [messages.channel_list(channels, self.settings.line_bot_id)])

    async def delete_channel(self, reply_token: str, line_user_id: str, channel_id: int) -> None:
        app_user_id = self.store.get_app_user_id(line_user_id=line_user_id)
        if app_user_id is None:
            return
        if self.store.delete_channel(channel_id=channel_id, user_id=app_user_id):
            await self._reply_text(reply_token, "番組を削除しました。")
        else:
            await self._reply_text(reply_token, "削除に失敗しました。")

    async def list_schedules(self, reply_token: str, line_user_id: str) -> None:
        schedules = self.store.list_schedules(line_user_id=line_user_id)
        if not schedules:
            await self._reply_text(reply_token, "現在、予約はありません。")
            return
        await self.messenger.reply(reply_token, [messages.schedule_list(schedules)])

    async def delete_schedule(self, reply_token: str, line_user_id: str, schedule_id: int) -> None:
        if self.store.delete_schedule(schedule_id=schedule_id, line_user_id=line_user_id):
            await self._reply_text(reply_token, "予約を削除しました。")
        else:
            await self._reply_text(reply_token, "削除に失敗しました。")

    async def _reply_text(self, reply_token: str, body: str) -> None:
        await self.messenger.reply(reply_token, [messages.text(body)])
