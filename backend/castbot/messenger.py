from __future__ import annotations

from typing import Protocol, Sequence

from linebot.v3.messaging import (
    AsyncApiClient,
    AsyncMessagingApi,
    Configuration,
    Message,
    PushMessageRequest,
    ReplyMessageRequest,
)


class Messenger(Protocol):
    async def reply(self, reply_token: str, messages: Sequence[Message]) -> None:
        ...

    async def push(self, to: str, messages: Sequence[Message]) -> None:
        ...


class LineMessenger:
    def __init__(self, access_token: str) -> None:
        self._client = AsyncApiClient(Configuration(access_token=access_token))
        self._api = AsyncMessagingApi(self._client)

    async def reply(self, reply_token: str, messages: Sequence[Message]) -> None:
        await self._api.reply_message(
            ReplyMessageRequest(reply_token=reply_token, messages=list(messages))
        )

    async def push(self, to: str, messages: Sequence[Message]) -> None:
        await self._api.push_message(PushMessageRequest(to=to, messages=list(messages)))

    async def close(self) -> None:
        await self._client.close()
