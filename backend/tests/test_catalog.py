import asyncio

import httpx
import pytest

from castbot.catalog import CatalogError, PodcastCatalog, PodcastHit


def test_search_queries_itunes_and_drops_hits_without_feed():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "resultCount": 2,
                "results": [
                    {
                        "collectionName": "Rebuild",
                        "artistName": "Tatsuhiko Miyagawa",
                        "feedUrl": "https://feeds.rebuild.fm/rebuildfm",
                        "artworkUrl100": "https://img.example/100.jpg",
                        "artworkUrl600": "https://img.example/600.jpg",
                    },
                    {"collectionName": "No Feed", "artistName": "x"},
                ],
            },
        )

    catalog = PodcastCatalog(transport=httpx.MockTransport(handler))
    hits = asyncio.run(catalog.search("rebuild", limit=5))

    assert seen["params"] == {"media": "podcast", "term": "rebuild", "limit": "5"}
    assert hits == [
        PodcastHit(
            collection_name="Rebuild",
            artist_name="Tatsuhiko Miyagawa",
            feed_url="https://feeds.rebuild.fm/rebuildfm",
            artwork_url="https://img.example/600.jpg",
        )
    ]


def test_search_raises_catalog_error_on_http_failure():
    catalog = PodcastCatalog(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    with pytest.raises(CatalogError):
        asyncio.run(catalog.search("x"))


def test_search_handles_missing_results_key():
    catalog = PodcastCatalog(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
    assert asyncio.run(catalog.search("x")) == []
