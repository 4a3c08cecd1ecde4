"""Outcome, UnifiedMarket - canonical entities."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Platform = Literal["polymarket", "betfair"]
MarketStatus = Literal["open", "closed", "settled", "unknown"]

PLATFORMS: tuple[str, ...] = ("polymarket", "betfair")


class CamelModel(BaseModel):
    """Immutable model that serializes with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Outcome(CamelModel):
    """Single outcome within a market, priced as implied probability."""

    name: str
    odds: float = Field(..., ge=0, le=100, description="Implied probability in [0, 100]")
    back_odds: float | None = None  # implied % from best back price
    lay_odds: float | None = None  # implied % from best lay price
    spread: float | None = None  # |back_odds - lay_odds|, wider = less reliable
    back_size: float | None = None  # native currency at best back price
    lay_size: float | None = None
    thin_liquidity: bool | None = None  # Betfair only
    back_only: bool | None = None  # Betfair only

    @model_validator(mode="after")
    def check_back_only(self) -> Outcome:
        if self.back_only and (self.odds != 0 or self.lay_odds is not None):
            raise ValueError("back-only outcome must have odds 0 and no lay odds")
        return self


class UnifiedMarket(CamelModel):
    """Canonical market - platform-agnostic. Volume and liquidity in USD."""

    platform: Platform
    id: str
    event_id: str | None = None
    url: str
    question: str = ""
    outcomes: list[Outcome] | None = None
    odds: float = Field(..., ge=0, le=100)
    volume: float = 0.0
    liquidity: float | None = None
    status: MarketStatus = "unknown"
    end_date: str | None = None  # ISO 8601
    last_updated: str  # ISO 8601
