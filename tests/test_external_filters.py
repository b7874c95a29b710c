from pairlist.filters.base import FilterProviders
from pairlist.filters.external import PerformanceFilter, ProducerPairList


def test_performance_drops_low_profit_keeps_unscored() -> None:
    scores = {"A": 0.05, "B": -0.02, "C": 0.0}
    pair_filter = PerformanceFilter({"min_profit": 0.0}, performance_provider=lambda: scores)

    assert pair_filter.filter(["A", "B", "C", "D"], {}) == ["A", "C", "D"]


def test_performance_without_provider_passes_through() -> None:
    assert PerformanceFilter({"min_profit": 1.0}).filter(["A", "B"], {}) == ["A", "B"]


def test_performance_provider_failure_passes_through() -> None:
    def broken() -> dict[str, float]:
        raise TimeoutError("db unavailable")

    assert PerformanceFilter(performance_provider=broken).filter(["A"], {}) == ["A"]


def test_producer_replaces_working_set() -> None:
    pair_filter = ProducerPairList(
        {"producer_name": "main"},
        remote_provider=lambda: ["X", "Y", "X", "", "Z"],
    )

    assert pair_filter.filter(["A", "B"], {}) == ["X", "Y", "Z"]


def test_producer_without_provider_is_empty() -> None:
    assert ProducerPairList().filter(["A", "B"], {}) == []


def test_producer_failure_is_empty() -> None:
    def broken() -> list[str]:
        raise ConnectionError("producer offline")

    pair_filter = ProducerPairList()
    pair_filter.bind_providers(FilterProviders(remote_pairs=broken))

    assert pair_filter.filter(["A"], {}) == []
