"""Betfair Exchange client - session-authenticated REST API.

Login goes through the certificate SSO endpoint when a client certificate is
configured, otherwise through interactive SSO. Sessions are treated as valid
for 15 minutes and renewed lazily before protected calls.
"""

from __future__ import annotations

import ssl
from typing import Any

import httpx
import structlog

from betmarkets.clients.base import MarketClient
from betmarkets.clients.betfair.normalize import normalize_market
from betmarkets.clients.betfair.session import SessionManager
from betmarkets.config.settings import DEFAULT_GBP_TO_USD
from betmarkets.errors import AuthError, UpstreamError
from betmarkets.models import SearchOptions, UnifiedMarket

log = structlog.get_logger(__name__)

DEFAULT_SSO_URL = "https://identitysso.betfair.com/api"
DEFAULT_CERT_SSO_URL = "https://identitysso-cert.betfair.com/api"
DEFAULT_BASE_URL = "https://api.betfair.com/exchange/betting/rest/v1.0"

CATALOGUE_PROJECTION = ["EVENT", "EVENT_TYPE", "COMPETITION", "RUNNER_DESCRIPTION"]
PRICE_PROJECTION = {"priceData": ["EX_BEST_OFFERS", "EX_TRADED"]}

INVALID_APP_KEY_MESSAGE = (
    "App key rejected by Exchange API - it may need activation (can take 48h) "
    "or an upgrade at developer.betfair.com"
)
_SESSION_ERRORS = {"INVALID_SESSION_INFORMATION", "NO_SESSION"}


def api_error_code(resp: httpx.Response) -> str | None:
    """errorCode from an APING fault body, if present."""
    try:
        body = resp.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    fault = (body.get("detail") or {}).get("APINGException") or {}
    return fault.get("errorCode") if isinstance(fault, dict) else None


class BetfairClient(MarketClient):
    """Betfair Exchange client. Enabled only with app key, username and password."""

    platform = "betfair"

    def __init__(
        self,
        *,
        app_key: str = "",
        username: str = "",
        password: str = "",
        sso_url: str = DEFAULT_SSO_URL,
        cert_sso_url: str = DEFAULT_CERT_SSO_URL,
        base_url: str = DEFAULT_BASE_URL,
        cert_path: str | None = None,
        key_path: str | None = None,
        enabled: bool = True,
        gbp_to_usd: float = DEFAULT_GBP_TO_USD,
        default_max_results: int = 50,
        session: SessionManager | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.app_key = app_key
        self.username = username
        self.password = password
        self.sso_url = sso_url.rstrip("/")
        self.cert_sso_url = cert_sso_url.rstrip("/")
        self.base_url = base_url.rstrip("/")
        self.cert_path = cert_path
        self.key_path = key_path
        self.enabled = bool(enabled and app_key and username and password)
        self.gbp_to_usd = gbp_to_usd
        self.default_max_results = default_max_results
        self.session = session or SessionManager(self._login, self.keep_alive)
        self._ssl_context: ssl.SSLContext | None = None

    def is_enabled(self) -> bool:
        return self.enabled

    # --- Authentication ---

    def _cert_context(self) -> ssl.SSLContext | None:
        if not (self.cert_path and self.key_path):
            return None
        if self._ssl_context is None:
            try:
                ctx = ssl.create_default_context()
                ctx.load_cert_chain(self.cert_path, self.key_path)
            except (OSError, ssl.SSLError) as e:
                log.warning("cert_load_failed", cert_path=self.cert_path, error=str(e))
                return None
            self._ssl_context = ctx
        return self._ssl_context

    async def _login(self) -> str:
        """Log in and return a session token. Raises AuthError when rejected."""
        if not (self.app_key and self.username and self.password):
            raise AuthError("Betfair credentials are incomplete", self.platform)
        ctx = self._cert_context()
        if ctx is not None:
            url, http = f"{self.cert_sso_url}/certlogin", self._http(verify=ctx)
        else:
            # interactive login may be refused for automated clients
            url, http = f"{self.sso_url}/login", self._http()
        headers = {
            "X-Application": self.app_key,
            "Accept": "application/json",
        }
        form = {"username": self.username, "password": self.password}
        try:
            async with http as client:
                resp = await client.post(url, data=form, headers=headers)
        except httpx.TransportError as e:
            raise self._network_error(e, "Betfair login") from e
        if resp.is_error:
            self._last_error = f"Betfair login failed: {resp.status_code} {resp.reason_phrase}"
            raise AuthError(self._last_error, self.platform)
        try:
            body = resp.json()
        except ValueError as e:
            self._last_error = f"Betfair login returned an unreadable response: {resp.text[:200]}"
            raise AuthError(self._last_error, self.platform) from e
        if not isinstance(body, dict):
            body = {}
        status = body.get("loginStatus") or body.get("status")
        token = body.get("sessionToken") or body.get("token")
        if status != "SUCCESS" or not token:
            self._last_error = f"Betfair login status: {status or body.get('error') or 'unknown'}"
            raise AuthError(self._last_error, self.platform)
        log.info("betfair_login", cert=ctx is not None)
        return token

    async def keep_alive(self, token: str) -> bool:
        """Extend an existing session. False if the session is gone."""
        headers = {
            "X-Application": self.app_key,
            "X-Authentication": token,
            "Accept": "application/json",
        }
        try:
            async with self._http() as client:
                resp = await client.get(f"{self.sso_url}/keepAlive", headers=headers)
        except httpx.TransportError as e:
            log.debug("keep_alive_failed", error=str(e))
            return False
        if resp.is_error:
            return False
        try:
            return resp.json().get("status") == "SUCCESS"
        except (ValueError, AttributeError):
            return False

    async def login(self) -> bool:
        """Force a fresh login. Diagnostic helper; protected calls renew on their own."""
        if not self.enabled:
            return False
        self.session.invalidate()
        try:
            await self.session.ensure()
        except AuthError:
            return False
        return True

    # --- Exchange API ---

    def _describe_error(self, resp: httpx.Response, code: str | None) -> str:
        if code == "INVALID_APP_KEY":
            return INVALID_APP_KEY_MESSAGE
        if code:
            return f"Betfair API error: {code} ({resp.status_code})"
        return f"Betfair API error: {resp.status_code} {resp.reason_phrase}"

    async def _call(self, operation: str, payload: dict[str, Any]) -> Any:
        """POST one Exchange API operation with session headers."""
        token = await self.session.ensure()
        headers = {
            "X-Application": self.app_key,
            "X-Authentication": token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            async with self._http() as client:
                resp = await client.post(f"{self.base_url}/{operation}/", json=payload, headers=headers)
        except httpx.TransportError as e:
            raise self._network_error(e, f"Betfair {operation}") from e
        if resp.is_error:
            code = api_error_code(resp)
            if code in _SESSION_ERRORS:
                self.session.invalidate(token)
            self._last_error = self._describe_error(resp, code)
            raise UpstreamError(
                self._last_error, self.platform, status_code=resp.status_code, error_code=code
            )
        try:
            return resp.json()
        except ValueError as e:
            self._last_error = f"Betfair {operation} returned invalid JSON"
            raise UpstreamError(self._last_error, self.platform, status_code=resp.status_code) from e

    async def _books(self, market_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Market books by id. Missing prices degrade to catalogue-only markets."""
        try:
            books = await self._call(
                "listMarketBook", {"marketIds": market_ids, "priceProjection": PRICE_PROJECTION}
            )
        except UpstreamError as e:
            log.warning("market_book_unavailable", count=len(market_ids), error=e.message)
            return {}
        return {
            b.get("marketId"): b for b in books or [] if isinstance(b, dict) and b.get("marketId")
        }

    def _normalize_all(
        self, catalogues: list[dict[str, Any]], books: dict[str, dict[str, Any]]
    ) -> list[UnifiedMarket]:
        markets = []
        for cat in catalogues:
            try:
                markets.append(normalize_market(cat, books.get(cat.get("marketId")), self.gbp_to_usd))
            except Exception as e:
                log.warning("skip_market", platform=self.platform, market_id=cat.get("marketId"), error=str(e))
        return markets

    async def search(
        self, query: str, options: SearchOptions | None = None
    ) -> list[UnifiedMarket]:
        if not self.enabled:
            return []
        options = options or SearchOptions()
        market_filter: dict[str, Any] = {"textQuery": query}
        if options.event_type_ids:
            market_filter["eventTypeIds"] = list(options.event_type_ids)
        catalogues = await self._call(
            "listMarketCatalogue",
            {
                "filter": market_filter,
                "maxResults": options.max_results or self.default_max_results,
                "marketProjection": CATALOGUE_PROJECTION,
            },
        )
        catalogues = [c for c in catalogues or [] if isinstance(c, dict)]
        if not catalogues:
            return []
        books = await self._books([c["marketId"] for c in catalogues if c.get("marketId")])
        markets = self._normalize_all(catalogues, books)
        log.debug("betfair_search", query=query, count=len(markets), priced=len(books))
        return markets

    async def get_market(self, market_id: str) -> UnifiedMarket | None:
        if not self.enabled:
            return None
        catalogues = await self._call(
            "listMarketCatalogue",
            {
                "filter": {"marketIds": [market_id]},
                "maxResults": 1,
                "marketProjection": ["EVENT", "EVENT_TYPE", "RUNNER_DESCRIPTION"],
            },
        )
        catalogues = [c for c in catalogues or [] if isinstance(c, dict)]
        if not catalogues:
            return None
        books = await self._books([market_id])
        markets = self._normalize_all(catalogues[:1], books)
        return markets[0] if markets else None

    async def list_event_types(self) -> list[dict[str, Any]]:
        """Available event types (sports/categories) with market counts."""
        if not self.enabled:
            return []
        result = await self._call("listEventTypes", {"filter": {}})
        return [r for r in result or [] if isinstance(r, dict)]

    async def test_auth(self) -> bool:
        """Login, then check the Exchange API with listEventTypes. Failure reason in get_last_error()."""
        if not self.enabled:
            self._last_error = "Betfair client is disabled (missing credentials)"
            return False
        self._last_error = None
        try:
            await self.session.ensure()
        except AuthError as e:
            self._last_error = (
                f"Login failed - check username/password and cert files ({e.message})"
            )
            return False
        try:
            await self._call("listEventTypes", {"filter": {}})
        except UpstreamError as e:
            self._last_error = e.message
            return False
        return True
