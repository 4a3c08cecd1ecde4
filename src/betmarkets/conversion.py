"""Odds and currency conversion into the unified schema (percent, USD)."""

from __future__ import annotations

import math
from datetime import datetime, timezone

from betmarkets.config.settings import DEFAULT_GBP_TO_USD


def round2(value: float) -> float:
    """Round to 2 decimals, halves up (22.125 -> 22.13). round() would give 22.12."""
    return math.floor(value * 100 + 0.5) / 100


def decimal_odds_to_implied_probability(price: float) -> float:
    """Decimal odds -> implied probability in percent. 4.55 -> 21.98.

    Prices at or below 1 mean certainty and map to 100.
    """
    if price <= 1:
        return 100.0
    return round2(1 / price * 100)


def probability_decimal_to_percent(price: float) -> float:
    """Share price in [0, 1] -> percent. 0.22 -> 22.0."""
    return round2(price * 100)


def convert_currency(amount: float, rate: float = DEFAULT_GBP_TO_USD) -> float:
    """Linear conversion into USD, rounded to cents."""
    return round2(amount * rate)


def usdc_to_usd(amount: float) -> float:
    # USDC is pegged 1:1
    return amount


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def to_float(value: object, default: float = 0.0) -> float:
    """Lenient float parse for API fields that arrive as str, number or null."""
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
