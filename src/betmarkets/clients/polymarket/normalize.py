"""Polymarket search/event records -> canonical UnifiedMarket."""

from __future__ import annotations

import json
from typing import Any

from betmarkets.conversion import now_iso, probability_decimal_to_percent, to_float, usdc_to_usd
from betmarkets.models import MarketStatus, Outcome, UnifiedMarket

EVENT_URL = "https://polymarket.com/event/{slug}"
DEFAULT_ODDS = 50.0  # unknown price: maximal uncertainty


def _decode_list(value: str | list[Any] | None) -> list[Any]:
    """Outcome fields arrive either as lists or as JSON-encoded lists."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    decoded = json.loads(value)
    if not isinstance(decoded, list):
        raise ValueError(f"expected a list, got {type(decoded).__name__}")
    return decoded


def parse_outcomes(
    outcomes_raw: str | list[Any] | None,
    prices_raw: str | list[Any] | None,
) -> list[Outcome] | None:
    """Build outcomes from name and price fields. None when absent or malformed."""
    try:
        names = _decode_list(outcomes_raw)
        prices = _decode_list(prices_raw)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    if not names or not prices:
        return None
    outcomes = []
    for i, name in enumerate(names):
        price = to_float(prices[i]) if i < len(prices) else 0.0
        if not 0 <= price <= 1:
            return None
        outcomes.append(Outcome(name=str(name), odds=probability_decimal_to_percent(price)))
    return outcomes


def _market_status(market: dict[str, Any]) -> MarketStatus:
    if market.get("closed"):
        return "closed"
    if market.get("active") and market.get("acceptingOrders"):
        return "open"
    return "unknown"


def _event_status(event: dict[str, Any]) -> MarketStatus:
    if event.get("closed"):
        return "closed"
    if event.get("active"):
        return "open"
    return "unknown"


def normalize_event(event: dict[str, Any]) -> UnifiedMarket:
    """Event without market details: prices unknown."""
    return UnifiedMarket(
        platform="polymarket",
        id=str(event.get("id", "")),
        event_id=str(event.get("id", "")) or None,
        url=EVENT_URL.format(slug=event.get("slug", "")),
        question=event.get("title") or "",
        odds=DEFAULT_ODDS,
        volume=usdc_to_usd(to_float(event.get("volume"))),
        liquidity=usdc_to_usd(to_float(event.get("liquidity"))),
        status=_event_status(event),
        end_date=event.get("endDate"),
        last_updated=now_iso(),
    )


def normalize_market_with_event(market: dict[str, Any], event: dict[str, Any]) -> UnifiedMarket:
    """Market prices with event-level title and volume."""
    outcomes = parse_outcomes(market.get("outcomes"), market.get("outcomePrices"))
    odds = outcomes[0].odds if outcomes else DEFAULT_ODDS
    volume = to_float(event.get("volume")) or to_float(market.get("volume"))
    liquidity = to_float(event.get("liquidity")) or to_float(market.get("liquidity"))
    return UnifiedMarket(
        platform="polymarket",
        id=str(market.get("id", "")),
        event_id=str(event.get("id", "")) or None,
        url=EVENT_URL.format(slug=event.get("slug", "")),
        question=event.get("title") or market.get("question") or "",
        outcomes=outcomes,
        odds=odds,
        volume=usdc_to_usd(volume),
        liquidity=usdc_to_usd(liquidity),
        status=_market_status(market),
        end_date=market.get("endDate") or event.get("endDate"),
        last_updated=now_iso(),
    )


def normalize_search_event(event: dict[str, Any]) -> UnifiedMarket:
    """One search result event -> one market (first sub-market carries the prices)."""
    markets = event.get("markets") or []
    if markets and isinstance(markets[0], dict):
        return normalize_market_with_event(markets[0], event)
    return normalize_event(event)
