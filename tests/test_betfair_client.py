"""Betfair client against a fake SSO + Exchange API."""

import asyncio
import json
import ssl

import httpx
import pytest

from betmarkets.clients.betfair.client import INVALID_APP_KEY_MESSAGE, BetfairClient
from betmarkets.errors import AuthError, UpstreamError
from betmarkets.models import SearchOptions

CATALOGUE = [
    {
        "marketId": "1.100",
        "marketName": "Next President",
        "totalMatched": 5.0,
        "event": {"id": "77", "name": "US Election"},
        "runners": [{"selectionId": 1, "runnerName": "Candidate A"}, {"selectionId": 2, "runnerName": "Candidate B"}],
    }
]
BOOKS = [
    {
        "marketId": "1.100",
        "status": "OPEN",
        "totalMatched": 1000.0,
        "totalAvailable": 100.0,
        "runners": [
            {"selectionId": 1, "ex": {"availableToBack": [{"price": 5.0, "size": 50}], "availableToLay": [{"price": 100 / 24, "size": 50}]}},
            {"selectionId": 2, "ex": {"availableToBack": [{"price": 1.5, "size": 80}], "availableToLay": [{"price": 1.52, "size": 60}]}},
        ],
    }
]


def aping_fault(code: str, status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"detail": {"APINGException": {"errorCode": code}}})


class FakeBetfair:
    """Routes SSO and Exchange API calls; records what it saw."""

    def __init__(self, login_status="SUCCESS"):
        self.login_status = login_status
        self.logins = 0
        self.login_requests: list[tuple[str, httpx.QueryParams, httpx.Headers]] = []
        self.keep_alive_status = "SUCCESS"
        self.keep_alives: list[httpx.Headers] = []
        self.calls: list[tuple[str, dict, httpx.Headers]] = []
        self.overrides: dict[str, httpx.Response] = {}
        self.catalogue = CATALOGUE
        self.books = BOOKS

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/login") or path.endswith("/certlogin"):
            self.logins += 1
            assert request.headers["X-Application"] == "app-key"
            form = httpx.QueryParams(request.content.decode())
            self.login_requests.append((path, form, request.headers))
            if path.endswith("/certlogin"):
                return httpx.Response(
                    200, json={"sessionToken": f"session-{self.logins}", "loginStatus": self.login_status}
                )
            return httpx.Response(200, json={"token": f"session-{self.logins}", "status": self.login_status})
        if path.endswith("/keepAlive"):
            self.keep_alives.append(request.headers)
            return httpx.Response(200, json={"token": request.headers.get("X-Authentication"), "status": self.keep_alive_status})
        operation = path.rstrip("/").rsplit("/", 1)[-1]
        body = json.loads(request.content or b"{}")
        self.calls.append((operation, body, request.headers))
        if operation in self.overrides:
            return self.overrides[operation]
        if operation == "listMarketCatalogue":
            if "marketIds" in body["filter"]:
                return httpx.Response(200, json=[c for c in self.catalogue if c["marketId"] in body["filter"]["marketIds"]])
            return httpx.Response(200, json=self.catalogue)
        if operation == "listMarketBook":
            return httpx.Response(200, json=self.books)
        if operation == "listEventTypes":
            return httpx.Response(200, json=[{"eventType": {"id": "2378961", "name": "Politics"}, "marketCount": 12}])
        return httpx.Response(404)


def make_client(fake: FakeBetfair, **kwargs) -> BetfairClient:
    params = {"app_key": "app-key", "username": "user", "password": "pass"}
    params.update(kwargs)
    return BetfairClient(transport=httpx.MockTransport(fake), **params)


def test_enabled_requires_all_credentials():
    assert make_client(FakeBetfair()).is_enabled()
    assert not make_client(FakeBetfair(), password="").is_enabled()
    assert not make_client(FakeBetfair(), enabled=False).is_enabled()


def test_search_logs_in_once_and_normalizes():
    fake = FakeBetfair()
    client = make_client(fake, gbp_to_usd=1.27)
    markets = asyncio.run(client.search("president", SearchOptions(event_type_ids=["2378961"], max_results=5)))

    assert fake.logins == 1
    operation, body, headers = fake.calls[0]
    assert operation == "listMarketCatalogue"
    assert body["filter"] == {"textQuery": "president", "eventTypeIds": ["2378961"]}
    assert body["maxResults"] == 5
    assert headers["X-Authentication"] == "session-1"
    assert headers["X-Application"] == "app-key"
    assert fake.calls[1][1]["marketIds"] == ["1.100"]

    (m,) = markets
    assert m.question == "US Election - Next President"
    assert m.volume == 1270.0
    assert m.status == "open"
    assert [o.name for o in m.outcomes] == ["Candidate B", "Candidate A"]
    assert m.outcomes[1].odds == 22 and m.outcomes[1].spread == 4
    assert m.odds == m.outcomes[0].odds


def test_event_type_names_resolve_to_ids():
    fake = FakeBetfair()
    options = SearchOptions(event_type_ids=["politics", "Horse Racing", "4", "darts"])
    assert options.event_type_ids == ["2378961", "7", "4", "darts"]
    asyncio.run(make_client(fake).search("x", options))
    assert fake.calls[0][1]["filter"]["eventTypeIds"] == ["2378961", "7", "4", "darts"]


def test_concurrent_searches_share_one_login():
    fake = FakeBetfair()
    client = make_client(fake)

    async def main():
        return await asyncio.gather(*(client.search(f"q{i}") for i in range(5)))

    results = asyncio.run(main())
    assert fake.logins == 1
    assert all(len(r) == 1 for r in results)


def test_no_catalogue_matches_returns_empty_without_book_call():
    fake = FakeBetfair()
    fake.catalogue = []
    assert asyncio.run(make_client(fake).search("nothing")) == []
    assert [c[0] for c in fake.calls] == ["listMarketCatalogue"]


def test_book_failure_degrades_to_catalogue_only():
    fake = FakeBetfair()
    fake.overrides["listMarketBook"] = httpx.Response(500)
    (m,) = asyncio.run(make_client(fake).search("president"))
    assert m.outcomes is None
    assert m.volume == 6.35


def test_invalid_app_key_message():
    fake = FakeBetfair()
    fake.overrides["listMarketCatalogue"] = aping_fault("INVALID_APP_KEY")
    client = make_client(fake)
    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.search("x"))
    assert exc_info.value.message == INVALID_APP_KEY_MESSAGE
    assert exc_info.value.error_code == "INVALID_APP_KEY"
    assert client.get_last_error() == INVALID_APP_KEY_MESSAGE


def test_rejected_session_forces_new_login():
    fake = FakeBetfair()
    client = make_client(fake)
    fake.overrides["listMarketCatalogue"] = aping_fault("INVALID_SESSION_INFORMATION")
    with pytest.raises(UpstreamError):
        asyncio.run(client.search("x"))
    assert client.session.token is None
    del fake.overrides["listMarketCatalogue"]
    asyncio.run(client.search("x"))
    assert fake.logins == 2


def test_late_rejection_of_old_token_keeps_new_session():
    fake = FakeBetfair()
    client = make_client(fake)
    asyncio.run(client.session.ensure())
    client.session.invalidate()
    asyncio.run(client.session.ensure())
    assert client.session.token.value == "session-2"

    client.session.invalidate("session-1")
    assert client.session.token.value == "session-2"
    asyncio.run(client.search("x"))
    assert fake.logins == 2


def test_interactive_login_posts_form():
    fake = FakeBetfair()
    asyncio.run(make_client(fake).search("x"))
    ((path, form, headers),) = fake.login_requests
    assert path == "/api/login"
    assert form["username"] == "user"
    assert form["password"] == "pass"
    assert headers["Content-Type"] == "application/x-www-form-urlencoded"


def test_unreadable_cert_files_fall_back_to_interactive_login(tmp_path):
    fake = FakeBetfair()
    client = make_client(
        fake, cert_path=str(tmp_path / "missing.crt"), key_path=str(tmp_path / "missing.key")
    )
    asyncio.run(client.search("x"))
    assert [p for p, _, _ in fake.login_requests] == ["/api/login"]
    assert client._ssl_context is None


def test_cert_login_used_when_certificate_loads():
    fake = FakeBetfair()
    client = make_client(fake, cert_path="client.crt", key_path="client.key")
    client._ssl_context = ssl.create_default_context()
    asyncio.run(client.search("x"))

    ((path, form, headers),) = fake.login_requests
    assert path == "/api/certlogin"
    assert form["username"] == "user"
    assert form["password"] == "pass"
    assert headers["X-Application"] == "app-key"
    assert headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert fake.calls[0][2]["X-Authentication"] == "session-1"


def test_keep_alive():
    fake = FakeBetfair()
    client = make_client(fake)
    assert asyncio.run(client.keep_alive("session-9")) is True
    (headers,) = fake.keep_alives
    assert headers["X-Authentication"] == "session-9"
    assert headers["X-Application"] == "app-key"

    fake.keep_alive_status = "FAIL"
    assert asyncio.run(client.keep_alive("session-9")) is False


def test_login_rejected_raises_auth_error():
    client = make_client(FakeBetfair(login_status="INVALID_USERNAME_OR_PASSWORD"))
    with pytest.raises(AuthError, match="INVALID_USERNAME_OR_PASSWORD"):
        asyncio.run(client.search("x"))


def test_get_market_found_and_missing():
    client = make_client(FakeBetfair())
    m = asyncio.run(client.get_market("1.100"))
    assert m is not None and m.id == "1.100"
    assert asyncio.run(client.get_market("1.999")) is None


def test_list_event_types():
    types = asyncio.run(make_client(FakeBetfair()).list_event_types())
    assert types[0]["eventType"]["name"] == "Politics"


def test_test_auth_success():
    assert asyncio.run(make_client(FakeBetfair()).test_auth()) is True


def test_test_auth_disabled():
    client = make_client(FakeBetfair(), app_key="")
    assert asyncio.run(client.test_auth()) is False
    assert "disabled" in client.get_last_error()


def test_test_auth_login_failure():
    client = make_client(FakeBetfair(login_status="ACCOUNT_LOCKED"))
    assert asyncio.run(client.test_auth()) is False
    assert "Login failed" in client.get_last_error()
    assert "ACCOUNT_LOCKED" in client.get_last_error()


def test_test_auth_api_check_failure():
    fake = FakeBetfair()
    fake.overrides["listEventTypes"] = aping_fault("INVALID_APP_KEY")
    client = make_client(fake)
    assert asyncio.run(client.test_auth()) is False
    assert client.get_last_error() == INVALID_APP_KEY_MESSAGE
