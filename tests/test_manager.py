import json
import logging
from pathlib import Path

import pytest

from pairlist.config import PairlistConfig
from pairlist.filters.base import FilterProviders, PairFilter
from pairlist.filters.ordering import ShuffleFilter
from pairlist.filters.static import BlacklistFilter, StaticPairList
from pairlist.filters.volume import VolumePairList
from pairlist.models.market import MarketInfo, TickerInfo
from pairlist.pipeline.manager import DEFAULT_REFRESH_INTERVAL_S, PairListManager


class StubProviders:
    def __init__(self, markets: list[MarketInfo], tickers: dict[str, TickerInfo]) -> None:
        self.markets = markets
        self.tickers = tickers
        self.market_calls = 0
        self.ticker_calls = 0

    def get_markets(self) -> list[MarketInfo]:
        self.market_calls += 1
        return self.markets

    def get_tickers(self) -> dict[str, TickerInfo]:
        self.ticker_calls += 1
        return self.tickers


class ExplodingFilter(PairFilter):
    method = "Exploding"

    def filter(self, pairs, tickers):  # type: ignore[no-untyped-def]
        raise RuntimeError("boom")


def _logger() -> logging.Logger:
    logger = logging.getLogger("pairlist.manager.test")
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


def _stub() -> StubProviders:
    volumes = {"BTCUSDT": 900.0, "ETHUSDT": 700.0, "XRPUSDT": 300.0, "DOGEUSDT": 500.0, "ADAUSDT": 100.0}
    markets = [MarketInfo(symbol=symbol) for symbol in volumes]
    markets.append(MarketInfo(symbol="HALTUSDT", active=False))
    tickers = {
        symbol: TickerInfo(symbol=symbol, last_price=1.0, bid=1.0, ask=1.001, quote_volume_24h=volume)
        for symbol, volume in volumes.items()
    }
    tickers["HALTUSDT"] = TickerInfo(symbol="HALTUSDT", quote_volume_24h=10_000.0)
    return StubProviders(markets, tickers)


def _manager(stub: StubProviders, **kwargs) -> PairListManager:  # type: ignore[no-untyped-def]
    return PairListManager(
        ticker_provider=stub.get_tickers,
        market_provider=stub.get_markets,
        logger=_logger(),
        **kwargs,
    )


def test_refresh_seeds_active_pairs_only() -> None:
    manager = _manager(_stub())

    assert manager.refresh() is True
    assert manager.get_pairs() == ["BTCUSDT", "ETHUSDT", "XRPUSDT", "DOGEUSDT", "ADAUSDT"]
    assert manager.has_pair("HALTUSDT") is False
    assert manager.get_pair_count() == 5


def test_refresh_applies_chain_in_order() -> None:
    manager = _manager(_stub())
    manager.add_filter(VolumePairList({"number_assets": 3}))
    manager.add_filter(BlacklistFilter({"blacklist": ["ETHUSDT"]}))

    manager.refresh()

    assert manager.get_pairs() == ["BTCUSDT", "DOGEUSDT"]
    stats = manager.get_statistics()
    assert stats["filters"] == ["VolumePairList", "BlacklistFilter"]
    assert stats["total_filter_executions"] == 2
    assert stats["refresh_count"] == 1


def test_refresh_is_deterministic() -> None:
    manager = _manager(_stub())
    manager.add_filter(VolumePairList({"number_assets": 4}))
    manager.add_filter(ShuffleFilter({"seed": 7}))

    manager.refresh()
    first = manager.get_pairs()
    manager.refresh()

    assert manager.get_pairs() == first


def test_empty_market_keeps_previous_list() -> None:
    stub = _stub()
    manager = _manager(stub)
    manager.refresh()
    published = manager.get_pairs()

    stub.markets = []
    assert manager.refresh() is False

    assert manager.get_pairs() == published
    stats = manager.get_statistics()
    assert stats["refresh_count"] == 1
    assert stats["refresh_skipped"] == 1


def test_missing_market_provider_skips() -> None:
    manager = PairListManager(logger=_logger())

    assert manager.refresh() is False
    assert manager.get_pairs() == []
    assert manager.last_refresh_time is None


def test_provider_failure_keeps_previous_list() -> None:
    stub = _stub()
    manager = _manager(stub)
    manager.refresh()

    def broken() -> dict[str, TickerInfo]:
        raise ConnectionError("ticker feed down")

    manager.set_ticker_provider(broken)

    assert manager.refresh() is False
    assert manager.get_pair_count() == 5
    assert manager.get_statistics()["refresh_failures"] == 1


def test_filter_exception_does_not_publish_partial_list() -> None:
    manager = _manager(_stub())
    manager.add_filter(StaticPairList({"whitelist": ["BTCUSDT"]}))
    manager.refresh()

    manager.clear_filters()
    manager.add_filter(VolumePairList({"number_assets": 1}))
    manager.add_filter(ExplodingFilter())

    assert manager.refresh() is False
    assert manager.get_pairs() == ["BTCUSDT"]


def test_chain_stops_when_working_set_empty() -> None:
    manager = _manager(_stub())
    manager.add_filter(StaticPairList({"whitelist": ["NOPEUSDT"]}))
    manager.add_filter(VolumePairList())

    assert manager.refresh() is True
    assert manager.get_pairs() == []
    assert manager.get_statistics()["total_filter_executions"] == 1


def test_load_from_config_skips_bad_entries(caplog: pytest.LogCaptureFixture) -> None:
    manager = _manager(_stub())
    manager.add_filter(BlacklistFilter())

    with caplog.at_level(logging.ERROR, logger="pairlist.manager.test"):
        loaded = manager.load_from_config(
            {
                "pairlist_filters": [
                    {"method": "VolumePairList", "number_assets": 2, "unknown_key": True},
                    {"method": "TopGainersPairList"},
                    {"method": "SpreadFilter", "max_spread_ratio": "wide"},
                    {"number_assets": 3},
                    {"method": "OffsetFilter", "offset": 1},
                ],
                "refresh_period": 600,
            }
        )

    assert loaded == 2
    stats = manager.get_statistics()
    assert stats["filters"] == ["VolumePairList", "OffsetFilter"]
    assert stats["refresh_interval"] == 600
    assert "Skipping pair list filter entry" in caplog.text

    manager.refresh()
    assert manager.get_pairs() == ["ETHUSDT"]


def test_load_from_config_model_and_invalid_period() -> None:
    manager = _manager(_stub())
    manager.load_from_config({"pairlist_filters": [], "refresh_period": "soon"})
    assert manager.refresh_interval == DEFAULT_REFRESH_INTERVAL_S

    loaded = manager.load_from_config(
        PairlistConfig(pairlist_filters=[{"method": "StaticPairList", "whitelist": ["ADAUSDT"]}], refresh_period=60)
    )

    assert loaded == 1
    assert manager.refresh_interval == 60


def test_load_from_config_binds_manager_market_provider() -> None:
    stub = _stub()
    stub.markets = [
        MarketInfo(symbol="BTCUSDT", market_cap_rank=1, market_cap=900.0),
        MarketInfo(symbol="ETHUSDT", market_cap_rank=2, market_cap=400.0),
        MarketInfo(symbol="MEMEUSDT", market_cap_rank=0),
    ]
    manager = _manager(stub)
    manager.load_from_config({"pairlist_filters": [{"method": "MarketCapPairList", "max_rank": 10}]})

    manager.refresh()

    assert manager.get_pairs() == ["BTCUSDT", "ETHUSDT"]


def test_load_from_config_binds_extra_providers() -> None:
    manager = _manager(_stub())
    manager.load_from_config(
        {
            "pairlist_filters": [
                {"method": "PerformanceFilter", "min_profit": 0.01},
                {"method": "ProducerPairList", "producer_name": "main"},
            ]
        },
        providers=FilterProviders(
            performance=lambda: {"BTCUSDT": -0.5},
            remote_pairs=lambda: ["SOLUSDT", "BTCUSDT"],
        ),
    )

    manager.refresh()

    assert manager.get_pairs() == ["SOLUSDT", "BTCUSDT"]


def test_statistics_snapshot() -> None:
    manager = _manager(_stub())
    manager.add_filter(BlacklistFilter({"blacklist": ["ADAUSDT"]}))

    stats = manager.get_statistics()
    assert stats["pair_count"] == 0
    assert stats["last_refresh_time"] is None
    assert stats["auto_refresh_running"] is False

    manager.refresh()
    stats = manager.get_statistics()

    assert stats["pair_count"] == 4
    assert stats["filter_count"] == 1
    assert stats["last_refresh_time"].endswith("Z")
    assert stats["last_refresh_duration_ms"] >= 0
    json.dumps(stats)


def test_metrics_file_updated(tmp_path: Path) -> None:
    metrics_path = tmp_path / "metrics.json"
    stub = _stub()
    manager = _manager(stub, metrics_path=metrics_path)

    manager.refresh()
    stub.markets = []
    manager.refresh()

    payload = json.loads(metrics_path.read_text(encoding="utf-8"))
    assert payload["pairlist_refresh_total"] == 1
    assert payload["pairlist_refresh_skipped_total"] == 1
    assert payload["pairlist_pairs"] == 5


def test_corrupt_metrics_file_does_not_fail_refresh(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    metrics_path = tmp_path / "metrics.json"
    metrics_path.write_text("{not json", encoding="utf-8")
    manager = _manager(_stub(), metrics_path=metrics_path)

    with caplog.at_level(logging.WARNING, logger="pairlist.manager.test"):
        assert manager.refresh() is True

    assert manager.get_pair_count() == 5
    assert manager.get_statistics()["refresh_count"] == 1
    assert "Could not update metrics file" in caplog.text


def test_missing_metrics_directory_does_not_fail_refresh(tmp_path: Path) -> None:
    stub = _stub()
    manager = _manager(stub, metrics_path=tmp_path / "nope" / "metrics.json")

    assert manager.refresh() is True

    stub.markets = []
    assert manager.refresh() is False

    manager.set_market_provider(lambda: [MarketInfo(symbol="BTCUSDT")])
    manager.set_ticker_provider(lambda: 1 / 0)  # type: ignore[arg-type,return-value]
    assert manager.refresh() is False

    stats = manager.get_statistics()
    assert stats["refresh_skipped"] == 1
    assert stats["refresh_failures"] == 1
    assert manager.get_pair_count() == 5
