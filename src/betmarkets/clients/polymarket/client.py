"""Polymarket client - scrapes the public search and event pages.

The Gamma API has no usable text search, so search results are read from the
Next.js payload (`__NEXT_DATA__`) embedded in polymarket.com pages.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx
import structlog

from betmarkets.clients.base import MarketClient
from betmarkets.clients.polymarket.normalize import normalize_search_event
from betmarkets.errors import UpstreamError
from betmarkets.models import SearchOptions, UnifiedMarket

log = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://polymarket.com"

_NEXT_DATA_RE = re.compile(
    r'<script id="__NEXT_DATA__" type="application/json"[^>]*>(.+?)</script>', re.DOTALL
)
_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; BettingMarketsBot/1.0)",
    "Accept": "text/html,application/xhtml+xml",
}


def extract_next_data(html: str) -> dict[str, Any] | None:
    """Return the decoded __NEXT_DATA__ payload, or None if the page has none."""
    match = _NEXT_DATA_RE.search(html)
    if not match:
        return None
    data = json.loads(match.group(1))
    return data if isinstance(data, dict) else None


def _dehydrated_queries(next_data: dict[str, Any]) -> list[dict[str, Any]]:
    # pageProps sits under props on full page loads, at the top level on client navigations
    page_props = (next_data.get("props") or {}).get("pageProps") or next_data.get("pageProps") or {}
    queries = (page_props.get("dehydratedState") or {}).get("queries") or []
    return [q for q in queries if isinstance(q, dict)]


def _query_data(query: dict[str, Any]) -> Any:
    return (query.get("state") or {}).get("data")


def find_search_events(next_data: dict[str, Any]) -> list[dict[str, Any]]:
    """Collect result events from the first query holding paginated (or bare) results."""
    for query in _dehydrated_queries(next_data):
        data = _query_data(query)
        if not isinstance(data, dict):
            continue
        if isinstance(data.get("pages"), list):
            pages = data["pages"]
        elif isinstance(data.get("results"), list):
            pages = [data]
        else:
            continue
        events: list[dict[str, Any]] = []
        for page in pages:
            if isinstance(page, dict):
                events.extend(e for e in page.get("results") or [] if isinstance(e, dict))
        return events
    return []


def find_event(next_data: dict[str, Any]) -> dict[str, Any] | None:
    """Locate the event record on an event page."""
    candidates = [_query_data(q) for q in _dehydrated_queries(next_data)]
    for data in candidates:
        if isinstance(data, dict) and "slug" in data and ("markets" in data or "title" in data):
            return data
    first = candidates[0] if candidates else None
    return first if isinstance(first, dict) and first else None


class PolymarketClient(MarketClient):
    """Public, unauthenticated client."""

    platform = "polymarket"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        enabled: bool = True,
        default_max_results: int = 50,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.enabled = enabled
        self.default_max_results = default_max_results

    def is_enabled(self) -> bool:
        return self.enabled

    async def _get_page(self, path: str, params: dict[str, str] | None = None) -> httpx.Response:
        try:
            async with self._http(headers=_HEADERS, follow_redirects=True) as client:
                return await client.get(f"{self.base_url}{path}", params=params)
        except httpx.TransportError as e:
            raise self._network_error(e, "Polymarket request") from e

    async def search(
        self, query: str, options: SearchOptions | None = None
    ) -> list[UnifiedMarket]:
        if not self.enabled:
            return []
        options = options or SearchOptions()
        limit = options.max_results or self.default_max_results

        resp = await self._get_page("/search", params={"_q": query})
        if resp.is_error:
            self._last_error = f"Polymarket search failed: {resp.status_code}"
            raise UpstreamError(self._last_error, self.platform, status_code=resp.status_code)
        try:
            next_data = extract_next_data(resp.text)
        except json.JSONDecodeError as e:
            self._last_error = f"Polymarket search payload is not valid JSON: {e}"
            raise UpstreamError(self._last_error, self.platform) from e
        if next_data is None:
            self._last_error = "Could not find __NEXT_DATA__ in Polymarket response"
            raise UpstreamError(self._last_error, self.platform)

        markets = []
        for event in find_search_events(next_data):
            try:
                markets.append(normalize_search_event(event))
            except Exception as e:
                log.warning("skip_market", platform=self.platform, event_id=event.get("id"), error=str(e))
        markets.sort(key=lambda m: m.volume, reverse=True)
        log.debug("polymarket_search", query=query, count=len(markets), limit=limit)
        return markets[:limit]

    async def get_market(self, market_id: str) -> UnifiedMarket | None:
        """Look up by event slug."""
        if not self.enabled:
            return None
        resp = await self._get_page(f"/event/{market_id}")
        if resp.status_code == 404:
            return None
        if resp.is_error:
            self._last_error = f"Polymarket getMarket failed: {resp.status_code}"
            raise UpstreamError(self._last_error, self.platform, status_code=resp.status_code)
        try:
            next_data = extract_next_data(resp.text)
        except json.JSONDecodeError:
            log.warning("unparseable_event_page", slug=market_id)
            return None
        event = find_event(next_data) if next_data else None
        if event is None:
            return None
        return normalize_search_event(event)
