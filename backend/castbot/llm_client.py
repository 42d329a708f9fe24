from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import httpx

from .settings import Settings


class CompletionError(RuntimeError):
    pass


class TextCompletionService(Protocol):
    enabled: bool

    async def complete(self, prompt: str) -> str:
        ...


class GeminiCompletionService:
    """
    Single-turn text completion against the Gemini generateContent endpoint.
    Upstream and transport failures are raised as CompletionError.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.enabled = bool(self.api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiCompletionService":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
        )

    async def complete(self, prompt: str) -> str:
        if not self.enabled:
            raise CompletionError("GEMINI_API_KEY is missing.")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.2},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                res = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise CompletionError(f"Gemini request failed: {exc}") from exc

        if res.status_code >= 400:
            raise CompletionError(f"Gemini upstream error: {res.status_code} {res.text[:300]}")

        try:
            data = res.json()
        except ValueError as exc:
            raise CompletionError("Gemini returned a non-JSON body.") from exc
        return _first_candidate_text(data)


def _first_candidate_text(data: Dict[str, Any]) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as exc:
        raise CompletionError("Gemini returned unexpected response format.") from exc

    text = "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))
    return text.strip()
