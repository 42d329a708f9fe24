from __future__ import annotations

from typing import Any, Dict, List, Sequence

from linebot.v3.messaging import FlexContainer, FlexMessage, TextMessage

from .catalog import PodcastHit
from .clock import day_glyph

ACCENT = "#9333ea"
# LINE caps message action text at 300 chars
MESSAGE_ACTION_LIMIT = 300

LINK_GUIDE = {
    "ja": {
        "welcome": "友だち追加ありがとうございます！🎉",
        "desc": "Random Cast Player Botへようこそ。",
        "link_title": "まずはアカウントを連携しましょう。",
        "link_msg": "下のボタンからWebアプリを開き、設定画面の「LINE連携を再実行」ボタンを押してください。",
        "btn_label": "Webアプリを開く",
    },
    "en": {
        "welcome": "Thanks for adding me! 🎉",
        "desc": "Welcome to Random Cast Player Bot.",
        "link_title": "Let's link your account.",
        "link_msg": 'Tap the button below to open the Web App, then tap "Reconnect LINE" in Settings.',
        "btn_label": "Open Web App",
    },
}


def text(body: str) -> TextMessage:
    return TextMessage(text=body)


def flex(alt_text: str, contents: Dict[str, Any]) -> FlexMessage:
    return FlexMessage(alt_text=alt_text, contents=FlexContainer.from_dict(contents))


def _text(body: str, **style: Any) -> Dict[str, Any]:
    return {"type": "text", "text": body, **style}


def _box(layout: str, contents: List[Dict[str, Any]], **style: Any) -> Dict[str, Any]:
    return {"type": "box", "layout": layout, "contents": contents, **style}


def language_prompt() -> FlexMessage:
    buttons = _box(
        "vertical",
        [
            {
                "type": "button",
                "style": "primary",
                "action": {"type": "postback", "label": "🇯🇵 日本語", "data": "action=set_lang&lang=ja"},
            },
            {
                "type": "button",
                "style": "secondary",
                "action": {"type": "postback", "label": "🇺🇸 English", "data": "action=set_lang&lang=en"},
            },
        ],
        spacing="sm",
        margin="lg",
    )
    bubble = {
        "type": "bubble",
        "body": _box(
            "vertical",
            [
                _text("Select Language", weight="bold", size="lg", align="center"),
                _text("言語を選択してください", size="xs", color="#aaaaaa", align="center", margin="sm"),
                {"type": "separator", "margin": "md"},
                buttons,
            ],
        ),
    }
    return flex("Select Language", bubble)


def link_guide(lang: str, url: str) -> FlexMessage:
    m = LINK_GUIDE.get(lang) or LINK_GUIDE["ja"]
    bubble = {
        "type": "bubble",
        "body": _box(
            "vertical",
            [
                _text(m["welcome"], weight="bold", size="md"),
                _text(m["desc"], size="sm", margin="sm", color="#666666"),
                {"type": "separator", "margin": "lg"},
                _text(m["link_title"], margin="lg", weight="bold"),
                _text(m["link_msg"], margin="md", size="sm", wrap=True),
            ],
        ),
        "footer": _box(
            "vertical",
            [
                {
                    "type": "button",
                    "style": "primary",
                    "height": "sm",
                    "color": ACCENT,
                    "action": {"type": "uri", "label": m["btn_label"], "uri": url},
                }
            ],
            spacing="sm",
            flex=0,
        ),
    }
    return flex(m["link_title"], bubble)


def add_channel_command(feed_url: str, title: str) -> str:
    """Build the `番組追加` message, shortening only the title to fit the action limit."""
    prefix = f"番組追加 {feed_url} "
    room = max(0, MESSAGE_ACTION_LIMIT - len(prefix))
    return (prefix + title[:room]).rstrip()


def search_results(hits: Sequence[PodcastHit]) -> FlexMessage:
    bubbles = []
    for hit in hits:
        bubble: Dict[str, Any] = {
            "type": "bubble",
            "body": _box(
                "vertical",
                [
                    _text(hit.collection_name, weight="bold", size="md", wrap=True),
                    _text(hit.artist_name or "-", size="xs", color="#888888", wrap=True),
                ],
            ),
            "footer": _box(
                "vertical",
                [
                    {
                        "type": "button",
                        "style": "primary",
                        "color": ACCENT,
                        "action": {
                            "type": "message",
                            "label": "登録する",
                            "text": add_channel_command(hit.feed_url, hit.collection_name),
                        },
                    }
                ],
            ),
        }
        if hit.artwork_url:
            bubble["hero"] = {
                "type": "image",
                "url": hit.artwork_url,
                "size": "full",
                "aspectRatio": "1:1",
                "aspectMode": "cover",
            }
        bubbles.append(bubble)
    return flex("検索結果", {"type": "carousel", "contents": bubbles})


def channel_list_bubble(channels: Sequence[Dict[str, Any]], bot_id: str | None = None) -> Dict[str, Any]:
    if channels:
        rows = [
            _box(
                "horizontal",
                [
                    _text(str(c.get("rss_url") or "No URL"), size="xs", color="#555555", flex=4, wrap=True, maxLines=2),
                    {
                        "type": "button",
                        "style": "secondary",
                        "height": "sm",
                        "flex": 1,
                        "action": {"type": "message", "label": "削除", "text": f"番組削除 {c['id']}"},
                    },
                ],
                margin="md",
                alignItems="center",
            )
            for c in channels
        ]
    else:
        rows = [_text("登録番組はありません。", size="sm", color="#999999", wrap=True, align="center")]

    header = [
        _text("番組管理", weight="bold", size="lg", color="#111111"),
        _text("登録済みの番組一覧", size="xs", color="#888888", margin="sm"),
    ]
    if bot_id:
        # trailing space opens the chat input box
        header.append(
            _box(
                "horizontal",
                [_text("🔍 番組を検索する...", color="#cccccc", size="sm")],
                margin="lg",
                backgroundColor="#ffffff",
                cornerRadius="20px",
                paddingAll="md",
                borderColor="#dddddd",
                borderWidth="light",
                action={"type": "uri", "label": "Search", "uri": f"https://line.me/R/oaMessage/{bot_id}/?%20"},
            )
        )

    return {
        "type": "bubble",
        "header": _box("vertical", header, paddingAll="lg", backgroundColor="#f8f8f8"),
        "body": _box("vertical", rows),
    }


def channel_list(channels: Sequence[Dict[str, Any]], bot_id: str | None = None) -> FlexMessage:
    return flex("番組管理", channel_list_bubble(channels, bot_id))


def schedule_list(schedules: Sequence[Dict[str, Any]]) -> FlexMessage:
    rows = [
        _box(
            "horizontal",
            [
                _text(
                    f"{day_glyph(int(s['day_of_week']))}曜 {int(s['hour'])}:{int(s.get('minute') or 0):02d}",
                    size="sm",
                    color="#555555",
                    flex=3,
                ),
                _text(str(s["keyword"]), size="sm", color="#111111", weight="bold", flex=4, wrap=True),
                {
                    "type": "button",
                    "style": "secondary",
                    "height": "sm",
                    "flex": 2,
                    "action": {"type": "message", "label": "削除", "text": f"予約削除 {s['id']}"},
                },
            ],
            margin="md",
            alignItems="center",
        )
        for s in schedules
    ]
    bubble = {
        "type": "bubble",
        "header": _box("vertical", [_text("予約一覧", weight="bold", size="xl", color="#1DB446")]),
        "body": _box("vertical", rows),
    }
    return flex("予約一覧", bubble)


def alarm(keyword: str, url: str) -> FlexMessage:
    bubble = {
        "type": "bubble",
        "body": _box(
            "vertical",
            [
                _text("時間になりました！⏰", weight="bold", size="sm", color="#1DB446"),
                _text(keyword, weight="bold", size="xl", margin="md", wrap=True),
                _text("再生の準備ができています。", size="xs", color="#aaaaaa", margin="sm"),
            ],
        ),
        "footer": _box(
            "vertical",
            [
                {
                    "type": "button",
                    "style": "primary",
                    "color": ACCENT,
                    "action": {"type": "uri", "label": "Webアプリで再生", "uri": url},
                }
            ],
        ),
    }
    return flex(f"時間になりました: {keyword}", bubble)
