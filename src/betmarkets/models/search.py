"""SearchOptions, AggregatedResult and per-platform status records."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator

from betmarkets.models.market import CamelModel, MarketStatus, Platform, UnifiedMarket

SortKey = Literal["volume", "odds", "platform"]

# Well-known Betfair event type ids; names are accepted in event_type_ids.
BETFAIR_EVENT_TYPES = {
    "soccer": "1",
    "tennis": "2",
    "golf": "3",
    "cricket": "4",
    "horse_racing": "7",
    "politics": "2378961",
}


class SearchOptions(CamelModel):
    """Filters and ordering for a search. Platform-specific hints are ignored elsewhere."""

    platform: Platform | None = None
    min_volume: float | None = Field(None, ge=0)
    max_results: int | None = Field(None, ge=1, le=1000)
    sort_by: SortKey = "volume"
    status: MarketStatus | None = None
    event_type_ids: list[str] | None = None  # Betfair only

    @field_validator("event_type_ids")
    @classmethod
    def resolve_event_type_names(cls, v: list[str] | None) -> list[str] | None:
        """Accept well-known names ("politics") as well as raw ids ("2378961")."""
        if v is None:
            return None
        return [BETFAIR_EVENT_TYPES.get(t.strip().lower().replace(" ", "_"), t) for t in v]


class PlatformStatus(CamelModel):
    status: Literal["success", "error", "disabled"]
    count: int | None = None
    error: str | None = None


class AggregatedMeta(CamelModel):
    query: str
    timestamp: str
    platforms: dict[str, PlatformStatus]
    total_results: int
    warnings: list[str] = Field(default_factory=list)


class AggregatedResult(CamelModel):
    markets: list[UnifiedMarket]
    meta: AggregatedMeta


class AuthStatus(CamelModel):
    enabled: bool
    authenticated: bool
    error: str | None = None
