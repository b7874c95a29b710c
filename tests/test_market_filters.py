from datetime import datetime, timedelta, timezone

from pairlist.filters.base import FilterProviders
from pairlist.filters.market import AgeFilter, MarketCapPairList
from pairlist.models.market import MarketInfo


def _listed(days_ago: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days_ago)


def test_age_filter_keeps_old_listings() -> None:
    markets = [
        MarketInfo(symbol="OLD", listed_at=_listed(400)),
        MarketInfo(symbol="EDGE", listed_at=_listed(10.5)),
        MarketInfo(symbol="NEW", listed_at=_listed(3)),
        MarketInfo(symbol="UNKNOWN"),
    ]
    pair_filter = AgeFilter({"min_days_listed": 10}, market_provider=lambda: markets)

    assert pair_filter.filter(["OLD", "EDGE", "NEW", "UNKNOWN", "NOMARKET"], {}) == ["OLD", "EDGE"]


def test_age_filter_accepts_naive_timestamps() -> None:
    naive = (datetime.now(timezone.utc) - timedelta(days=30)).replace(tzinfo=None)
    pair_filter = AgeFilter({"min_days_listed": 7}, market_provider=lambda: [MarketInfo(symbol="A", listed_at=naive)])

    assert pair_filter.filter(["A"], {}) == ["A"]


def test_age_filter_without_provider_passes_through() -> None:
    assert AgeFilter().filter(["A", "B"], {}) == ["A", "B"]


def test_age_filter_provider_failure_passes_through() -> None:
    def broken() -> list[MarketInfo]:
        raise RuntimeError("exchange down")

    assert AgeFilter(market_provider=broken).filter(["A", "B"], {}) == ["A", "B"]


def test_market_cap_rank_scenario() -> None:
    markets = [
        MarketInfo(symbol="A", market_cap_rank=5, market_cap=50_000.0),
        MarketInfo(symbol="B", market_cap_rank=15, market_cap=10_000.0),
        MarketInfo(symbol="C", market_cap_rank=-1, market_cap=90_000.0),
        MarketInfo(symbol="D", market_cap_rank=3, market_cap=80_000.0),
    ]
    pair_filter = MarketCapPairList({"max_rank": 10}, market_provider=lambda: markets)

    assert pair_filter.filter(["A", "B", "C", "D"], {}) == ["D", "A"]


def test_market_cap_top_n_and_missing_market() -> None:
    markets = [
        MarketInfo(symbol=f"P{i}", market_cap_rank=i + 1, market_cap=float(100 - i))
        for i in range(5)
    ]
    pair_filter = MarketCapPairList({"number_assets": 2, "max_rank": 100}, market_provider=lambda: markets)

    assert pair_filter.filter(["P3", "P0", "GHOST", "P1"], {}) == ["P0", "P1"]


def test_bind_providers_sets_market_provider() -> None:
    pair_filter = MarketCapPairList()
    pair_filter.bind_providers(FilterProviders(market=lambda: [MarketInfo(symbol="A", market_cap_rank=1)]))

    assert pair_filter.filter(["A", "B"], {}) == ["A"]


def test_market_cap_without_provider_passes_through() -> None:
    assert MarketCapPairList().filter(["B", "A"], {}) == ["B", "A"]
