"""Market client contract, implemented once per platform."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from betmarkets.errors import NetworkError
from betmarkets.models import SearchOptions, UnifiedMarket


class MarketClient(ABC):
    """Fetches raw platform records and returns them normalized. Tagged by `platform`."""

    platform: str = ""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport
        self._last_error: str | None = None

    @abstractmethod
    def is_enabled(self) -> bool:
        """False when credentials are missing or the platform is switched off."""
        ...

    @abstractmethod
    async def search(
        self, query: str, options: SearchOptions | None = None
    ) -> list[UnifiedMarket]:
        """Markets matching query. Empty list on zero matches; raises on failure."""
        ...

    @abstractmethod
    async def get_market(self, market_id: str) -> UnifiedMarket | None:
        """Single market by platform id, or None when not found."""
        ...

    async def test_auth(self) -> bool:
        return self.is_enabled()

    async def list_event_types(self) -> list[dict[str, Any]]:
        """Category listing, for platforms that have one."""
        return []

    def get_last_error(self) -> str | None:
        return self._last_error

    def _http(self, **kwargs) -> httpx.AsyncClient:
        kwargs.setdefault("timeout", self.timeout)
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    def _network_error(self, exc: httpx.TransportError, action: str) -> NetworkError:
        message = f"{action} failed: {str(exc) or exc.__class__.__name__}"
        self._last_error = message
        return NetworkError(message, self.platform)
