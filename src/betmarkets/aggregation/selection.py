"""Filtering and ordering of merged market lists."""

from __future__ import annotations

from betmarkets.models import MarketStatus, SortKey, UnifiedMarket


def filter_by_min_volume(markets: list[UnifiedMarket], min_volume: float) -> list[UnifiedMarket]:
    """Keep markets with volume >= min_volume."""
    return [m for m in markets if m.volume >= min_volume]


def filter_by_status(markets: list[UnifiedMarket], status: MarketStatus) -> list[UnifiedMarket]:
    return [m for m in markets if m.status == status]


def sort_markets(markets: list[UnifiedMarket], sort_by: SortKey = "volume") -> list[UnifiedMarket]:
    """Volume or odds descending, platform name ascending. Stable for equal keys."""
    if sort_by == "volume":
        return sorted(markets, key=lambda m: m.volume, reverse=True)
    if sort_by == "odds":
        return sorted(markets, key=lambda m: m.odds, reverse=True)
    if sort_by == "platform":
        return sorted(markets, key=lambda m: m.platform)
    return list(markets)
