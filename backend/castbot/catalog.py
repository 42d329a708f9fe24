from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

ITUNES_SEARCH_URL = "https://itunes.apple.com/search"


class CatalogError(RuntimeError):
    pass


@dataclass(frozen=True)
class PodcastHit:
    collection_name: str
    artist_name: str
    feed_url: str
    artwork_url: str


def _to_hit(item: Dict[str, Any]) -> Optional[PodcastHit]:
    feed_url = str(item.get("feedUrl") or "").strip()
    if not feed_url:
        return None
    return PodcastHit(
        collection_name=str(item.get("collectionName") or "Unknown"),
        artist_name=str(item.get("artistName") or ""),
        feed_url=feed_url,
        artwork_url=str(item.get("artworkUrl600") or item.get("artworkUrl100") or ""),
    )


class PodcastCatalog:
    def __init__(
        self,
        *,
        base_url: str = ITUNES_SEARCH_URL,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def search(self, term: str, *, limit: int = 5) -> List[PodcastHit]:
        params = {"media": "podcast", "term": term, "limit": int(limit)}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                res = await client.get(self.base_url, params=params)
                res.raise_for_status()
                data = res.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogError(f"iTunes search failed: {exc}") from exc

        results = data.get("results") if isinstance(data, dict) else None
        hits: List[PodcastHit] = []
        for item in results or []:
            if not isinstance(item, dict):
                continue
            hit = _to_hit(item)
            if hit is not None:
                hits.append(hit)
        return hits
