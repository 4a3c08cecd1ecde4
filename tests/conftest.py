"""Shared fixtures and builders."""

import pytest

from betmarkets.models import UnifiedMarket


def make_market(
    platform: str = "polymarket",
    market_id: str = "m1",
    volume: float = 0.0,
    odds: float = 50.0,
    status: str = "open",
    question: str = "",
) -> UnifiedMarket:
    return UnifiedMarket(
        platform=platform,
        id=market_id,
        url=f"https://example.com/{market_id}",
        question=question or f"Question {market_id}",
        odds=odds,
        volume=volume,
        status=status,
        last_updated="2026-01-01T00:00:00Z",
    )


@pytest.fixture
def markets() -> list[UnifiedMarket]:
    return [
        make_market("polymarket", "p1", volume=500, odds=22),
        make_market("betfair", "b1", volume=12_000, odds=61.5),
        make_market("polymarket", "p2", volume=12_000, odds=8),
        make_market("betfair", "b2", volume=0, odds=0, status="closed"),
    ]
