"""Market filtering and sorting."""

from betmarkets.aggregation.selection import filter_by_min_volume, filter_by_status, sort_markets


def test_filter_by_min_volume_is_inclusive(markets):
    kept = filter_by_min_volume(markets, 12_000)
    assert [m.id for m in kept] == ["b1", "p2"]
    assert all(m.volume >= 12_000 for m in kept)


def test_filter_by_zero_min_volume_is_identity(markets):
    assert filter_by_min_volume(markets, 0) == markets


def test_filter_by_status(markets):
    assert [m.id for m in filter_by_status(markets, "closed")] == ["b2"]


def test_sort_by_volume_descending_and_stable(markets):
    ordered = sort_markets(markets, "volume")
    assert [m.id for m in ordered] == ["b1", "p2", "p1", "b2"]


def test_sort_by_odds_descending(markets):
    ordered = sort_markets(markets, "odds")
    assert [m.odds for m in ordered] == [61.5, 22, 8, 0]


def test_sort_by_platform_ascending(markets):
    ordered = sort_markets(markets, "platform")
    assert [m.platform for m in ordered] == ["betfair", "betfair", "polymarket", "polymarket"]


def test_sort_is_idempotent(markets):
    for key in ("volume", "odds", "platform"):
        once = sort_markets(markets, key)
        assert sort_markets(once, key) == once


def test_sort_does_not_mutate_input(markets):
    before = list(markets)
    sort_markets(markets, "odds")
    assert markets == before
