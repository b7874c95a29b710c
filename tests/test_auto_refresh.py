import logging
import threading
import time

from pairlist.models.market import MarketInfo, TickerInfo
from pairlist.pipeline.manager import PairListManager


def _logger() -> logging.Logger:
    logger = logging.getLogger("pairlist.auto.test")
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


def _manager() -> PairListManager:
    return PairListManager(
        ticker_provider=lambda: {"BTCUSDT": TickerInfo(symbol="BTCUSDT", quote_volume_24h=1.0)},
        market_provider=lambda: [MarketInfo(symbol="BTCUSDT")],
        logger=_logger(),
    )


def _wait_for(predicate, timeout_s: float = 2.0) -> bool:  # type: ignore[no-untyped-def]
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_start_then_stop_returns_promptly() -> None:
    manager = _manager()

    assert manager.start_auto_refresh(5) is True
    started = time.monotonic()
    manager.stop_auto_refresh()
    elapsed = time.monotonic() - started

    assert elapsed < 2.0
    assert manager.is_auto_refreshing() is False
    count = manager.get_statistics()["refresh_count"]
    time.sleep(0.2)
    assert manager.get_statistics()["refresh_count"] == count
    assert not any(thread.name == "pairlist-auto-refresh" for thread in threading.enumerate())


def test_auto_refresh_publishes_and_reports_running() -> None:
    manager = _manager()
    manager.start_auto_refresh(60)
    try:
        assert _wait_for(lambda: manager.get_statistics()["refresh_count"] >= 1)
        stats = manager.get_statistics()
        assert stats["auto_refresh_running"] is True
        assert stats["refresh_interval"] == 60
        assert manager.get_pairs() == ["BTCUSDT"]
    finally:
        manager.stop_auto_refresh()

    assert manager.get_statistics()["auto_refresh_running"] is False


def test_second_start_is_rejected() -> None:
    with _manager() as manager:
        assert manager.start_auto_refresh(30) is True
        assert manager.start_auto_refresh(30) is False

    assert manager.is_auto_refreshing() is False


def test_stop_is_idempotent() -> None:
    manager = _manager()
    manager.stop_auto_refresh()
    manager.start_auto_refresh(30)
    manager.stop_auto_refresh()
    manager.stop_auto_refresh()

    assert manager.is_auto_refreshing() is False


def test_invalid_interval_not_started() -> None:
    manager = _manager()

    assert manager.start_auto_refresh(0) is False
    assert manager.is_auto_refreshing() is False


def test_loop_survives_failing_provider() -> None:
    calls = {"count": 0}

    def flaky_markets() -> list[MarketInfo]:
        calls["count"] += 1
        raise RuntimeError("exchange maintenance")

    manager = PairListManager(market_provider=flaky_markets, logger=_logger())
    manager.start_auto_refresh(1)
    try:
        assert _wait_for(lambda: calls["count"] >= 2, timeout_s=4.0)
        assert manager.is_auto_refreshing() is True
    finally:
        manager.stop_auto_refresh()

    assert manager.get_statistics()["refresh_failures"] >= 2


def test_concurrent_starts_run_one_loop() -> None:
    manager = _manager()
    barrier = threading.Barrier(8)
    results: list[bool] = []
    results_lock = threading.Lock()

    def start() -> None:
        barrier.wait()
        started = manager.start_auto_refresh(30)
        with results_lock:
            results.append(started)

    callers = [threading.Thread(target=start) for _ in range(8)]
    for caller in callers:
        caller.start()
    for caller in callers:
        caller.join()

    try:
        assert results.count(True) == 1
        loops = [thread for thread in threading.enumerate() if thread.name == "pairlist-auto-refresh"]
        assert len(loops) == 1
    finally:
        manager.stop_auto_refresh()
