"""Canonical schema (Pydantic) - markets, outcomes, search results."""

from betmarkets.models.market import PLATFORMS, MarketStatus, Outcome, Platform, UnifiedMarket
from betmarkets.models.search import (
    BETFAIR_EVENT_TYPES,
    AggregatedMeta,
    AggregatedResult,
    AuthStatus,
    PlatformStatus,
    SearchOptions,
    SortKey,
)

__all__ = [
    "PLATFORMS",
    "Platform",
    "MarketStatus",
    "Outcome",
    "UnifiedMarket",
    "BETFAIR_EVENT_TYPES",
    "SearchOptions",
    "SortKey",
    "PlatformStatus",
    "AggregatedMeta",
    "AggregatedResult",
    "AuthStatus",
]
