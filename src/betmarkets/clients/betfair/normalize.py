"""Betfair catalogue + market book -> canonical UnifiedMarket.

Each runner's best back and lay quotes become implied probabilities. Quotes
backed by less than MIN_OFFER_SIZE are stale or indicative and ignored; lay
quotes implying less than MIN_LAY_PERCENT are penny lays and ignored too. A
runner's odds is the back/lay midpoint, or 0 when only one side survives.
"""

from __future__ import annotations

from typing import Any

from betmarkets.config.settings import DEFAULT_GBP_TO_USD
from betmarkets.conversion import (
    convert_currency,
    decimal_odds_to_implied_probability,
    now_iso,
    round2,
    to_float,
)
from betmarkets.models import MarketStatus, Outcome, UnifiedMarket

MIN_OFFER_SIZE = 2.0  # GBP
MIN_LAY_PERCENT = 2.0

MARKET_URL = "https://www.betfair.com/exchange/plus/market/{market_id}"

_STATUS_MAP: dict[str, MarketStatus] = {
    "OPEN": "open",
    "CLOSED": "closed",
    "SUSPENDED": "closed",
}


def _best(levels: Any) -> tuple[float, float] | None:
    """(price, size) of the best level, if any."""
    if not isinstance(levels, list) or not levels or not isinstance(levels[0], dict):
        return None
    return to_float(levels[0].get("price")), to_float(levels[0].get("size"))


def normalize_runner(runner: dict[str, Any], name: str) -> Outcome:
    """One runner book -> Outcome."""
    ex = runner.get("ex") or {}
    back = _best(ex.get("availableToBack"))
    lay = _best(ex.get("availableToLay"))
    back_size = back[1] if back else None
    lay_size = lay[1] if lay else None

    back_odds = None
    if back and back[1] >= MIN_OFFER_SIZE:
        back_odds = decimal_odds_to_implied_probability(back[0])
    lay_odds = None
    if lay and lay[1] >= MIN_OFFER_SIZE:
        lay_odds = decimal_odds_to_implied_probability(lay[0])
        if lay_odds < MIN_LAY_PERCENT:
            lay_odds = None

    # Only an under-sized back with nothing on the lay side counts as thin.
    thin_liquidity = back_size is not None and back_size < MIN_OFFER_SIZE and not lay_size
    back_only = back_odds is not None and lay_odds is None

    odds = 0.0
    spread = None
    if back_odds is not None and lay_odds is not None:
        odds = round2((back_odds + lay_odds) / 2)
        spread = round2(abs(back_odds - lay_odds))

    return Outcome(
        name=name,
        odds=odds,
        back_odds=back_odds,
        lay_odds=lay_odds,
        spread=spread,
        back_size=back_size,
        lay_size=lay_size,
        thin_liquidity=thin_liquidity,
        back_only=back_only,
    )


def normalize_outcomes(
    catalogue: dict[str, Any], book: dict[str, Any] | None
) -> list[Outcome] | None:
    """Runners sorted favourite first. None when the book has no runners."""
    runners = (book or {}).get("runners") or []
    if not runners:
        return None
    names = {
        r.get("selectionId"): r.get("runnerName")
        for r in catalogue.get("runners") or []
        if isinstance(r, dict)
    }
    outcomes = []
    for runner in runners:
        if not isinstance(runner, dict):
            continue
        selection_id = runner.get("selectionId")
        name = names.get(selection_id) or f"Selection {selection_id}"
        outcomes.append(normalize_runner(runner, name))
    outcomes.sort(key=lambda o: o.odds, reverse=True)
    return outcomes


def normalize_market(
    catalogue: dict[str, Any],
    book: dict[str, Any] | None = None,
    gbp_to_usd: float = DEFAULT_GBP_TO_USD,
) -> UnifiedMarket:
    """Catalogue entry (+ optional book) -> UnifiedMarket with USD volume."""
    market_id = str(catalogue.get("marketId", ""))
    event = catalogue.get("event") or {}
    event_name = event.get("name") or ""
    market_name = catalogue.get("marketName") or ""
    question = f"{event_name} - {market_name}" if event_name else market_name

    outcomes = normalize_outcomes(catalogue, book)
    odds = outcomes[0].odds if outcomes else 0.0

    book = book or {}
    volume_gbp = to_float(book.get("totalMatched")) or to_float(catalogue.get("totalMatched"))
    liquidity_gbp = to_float(book.get("totalAvailable"))

    return UnifiedMarket(
        platform="betfair",
        id=market_id,
        event_id=str(event["id"]) if event.get("id") is not None else None,
        url=MARKET_URL.format(market_id=market_id),
        question=question,
        outcomes=outcomes,
        odds=odds,
        volume=convert_currency(volume_gbp, gbp_to_usd),
        liquidity=convert_currency(liquidity_gbp, gbp_to_usd),
        status=_STATUS_MAP.get(str(book.get("status", "")).upper(), "unknown"),
        end_date=catalogue.get("marketStartTime"),
        last_updated=now_iso(),
    )
