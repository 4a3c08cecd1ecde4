"""Platform clients behind one MarketClient contract."""

from betmarkets.clients.base import MarketClient
from betmarkets.clients.betfair.client import BetfairClient
from betmarkets.clients.polymarket.client import PolymarketClient

__all__ = ["MarketClient", "BetfairClient", "PolymarketClient"]
