"""Aggregator - parallel search across platform clients with graceful degradation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping

import structlog

from betmarkets.aggregation.selection import filter_by_min_volume, filter_by_status, sort_markets
from betmarkets.clients import BetfairClient, MarketClient, PolymarketClient
from betmarkets.config.settings import Settings
from betmarkets.conversion import now_iso
from betmarkets.formatting.table import render_result
from betmarkets.models import (
    PLATFORMS,
    AggregatedMeta,
    AggregatedResult,
    AuthStatus,
    PlatformStatus,
    SearchOptions,
    UnifiedMarket,
)

log = structlog.get_logger(__name__)

TOOLS: list[dict[str, Any]] = [
    {
        "name": "search",
        "description": "Search markets across all platforms",
        "options": ["query", "--platform", "--min-volume", "--max-results", "--sort-by", "--status", "--event-type"],
    },
    {
        "name": "format-table",
        "description": "Search and output markdown table",
        "options": ["query", "--platform", "--min-volume", "--max-results", "--sort-by"],
    },
    {
        "name": "market",
        "description": "Get single market details",
        "options": ["id", "--platform"],
    },
    {"name": "event-types", "description": "List Betfair event types (category ids)"},
    {"name": "auth-test", "description": "Test authentication for all platforms"},
    {"name": "list-tools", "description": "List available commands"},
]


@dataclass(frozen=True)
class PlatformResult:
    """Settled outcome of one platform search: markets or a captured error."""

    platform: str
    markets: list[UnifiedMarket] | None = None
    error: str | None = None


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class MarketAggregator:
    """Fans a query out to every enabled client and merges the results.

    Clients are keyed by platform tag; use from_settings() for the standard set.
    """

    def __init__(self, clients: Mapping[str, MarketClient]) -> None:
        self.clients = dict(clients)

    @classmethod
    def from_settings(cls, settings: Settings) -> MarketAggregator:
        timeout = settings.request_timeout_sec
        return cls(
            {
                "polymarket": PolymarketClient(
                    base_url=settings.polymarket_base_url,
                    enabled=settings.polymarket_enabled,
                    default_max_results=settings.default_max_results,
                    timeout=timeout,
                ),
                "betfair": BetfairClient(
                    app_key=settings.betfair_app_key,
                    username=settings.betfair_username,
                    password=settings.betfair_password,
                    sso_url=settings.betfair_sso_url,
                    cert_sso_url=settings.betfair_cert_sso_url,
                    base_url=settings.betfair_base_url,
                    cert_path=settings.betfair_cert_path,
                    key_path=settings.betfair_key_path,
                    enabled=settings.betfair_enabled,
                    gbp_to_usd=settings.gbp_to_usd,
                    default_max_results=settings.default_max_results,
                    timeout=timeout,
                ),
            }
        )

    def _platforms(self) -> list[str]:
        known = [p for p in PLATFORMS if p in self.clients]
        return known + [p for p in self.clients if p not in known]

    async def _search_one(
        self, platform: str, client: MarketClient, query: str, options: SearchOptions
    ) -> PlatformResult:
        try:
            markets = await client.search(query, options)
        except Exception as e:
            log.warning("platform_search_failed", platform=platform, error=_error_message(e))
            return PlatformResult(platform, error=_error_message(e))
        return PlatformResult(platform, markets=markets)

    async def search_all(
        self, query: str, options: SearchOptions | None = None
    ) -> AggregatedResult:
        """Search every enabled (and filter-matching) platform in parallel. Never raises."""
        options = options or SearchOptions()
        statuses = {p: PlatformStatus(status="disabled") for p in self._platforms()}
        candidates = [
            (p, self.clients[p])
            for p in self._platforms()
            if self.clients[p].is_enabled() and (options.platform is None or options.platform == p)
        ]

        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(self._search_one(p, c, query, options)) for p, c in candidates]
        results = [t.result() for t in tasks]

        warnings: list[str] = []
        merged: list[UnifiedMarket] = []
        for result in results:
            if result.error is not None:
                statuses[result.platform] = PlatformStatus(status="error", error=result.error)
                warnings.append(f"{result.platform}: {result.error}")
            else:
                markets = result.markets or []
                statuses[result.platform] = PlatformStatus(status="success", count=len(markets))
                merged.extend(markets)

        if options.min_volume:
            merged = filter_by_min_volume(merged, options.min_volume)
        if options.status:
            merged = filter_by_status(merged, options.status)
        merged = sort_markets(merged, options.sort_by)
        if options.max_results:
            merged = merged[: options.max_results]

        log.info(
            "search_complete",
            query=query,
            platforms=[p for p, _ in candidates],
            results=len(merged),
            failures=len(warnings),
        )
        return AggregatedResult(
            markets=merged,
            meta=AggregatedMeta(
                query=query,
                timestamp=now_iso(),
                platforms=statuses,
                total_results=len(merged),
                warnings=warnings,
            ),
        )

    async def format_table(self, query: str, options: SearchOptions | None = None) -> str:
        """search_all rendered as a markdown table with warnings and summary."""
        return render_result(await self.search_all(query, options))

    async def get_market(self, market_id: str, platform: str) -> UnifiedMarket | None:
        """Single market from one platform. Client failures propagate."""
        client = self.clients.get(platform)
        if client is None:
            return None
        return await client.get_market(market_id)

    async def test_auth(self) -> dict[str, AuthStatus]:
        results: dict[str, AuthStatus] = {}
        for platform in self._platforms():
            client = self.clients[platform]
            enabled = client.is_enabled()
            if not enabled:
                results[platform] = AuthStatus(enabled=False, authenticated=False)
                continue
            try:
                authenticated = await client.test_auth()
                error = None if authenticated else client.get_last_error()
            except Exception as e:
                authenticated, error = False, _error_message(e)
            results[platform] = AuthStatus(enabled=True, authenticated=authenticated, error=error)
        return results

    async def list_event_types(self, platform: str = "betfair") -> list[dict[str, Any]]:
        """Category listing from a platform that has one (Betfair event types)."""
        client = self.clients.get(platform)
        if client is None or not client.is_enabled():
            return []
        return await client.list_event_types()

    def list_tools(self) -> list[dict[str, Any]]:
        return [dict(t) for t in TOOLS]
