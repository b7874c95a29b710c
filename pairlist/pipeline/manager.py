"""
Pair-list manager: owns the filter chain and the published pair list.

A refresh pulls market metadata and tickers from the two providers,
seeds the working set with the active pairs, folds the filter chain over
it left to right and publishes the result. Readers always see the list
of the last complete run; a run that cannot finish leaves the previous
list in place.

Locking:
    _state_lock    guards the published list, the chain and the counters.
                   It is never held while providers or filters run.
    _refresh_lock  serializes whole refresh() calls, so a manual refresh
                   and the background loop never interleave.

Example:
    >>> manager = PairListManager(ticker_provider=get_tickers, market_provider=get_markets)
    >>> manager.load_from_config({"pairlist_filters": [{"method": "VolumePairList", "number_assets": 5}]})
    >>> manager.refresh()
    True
    >>> manager.get_pairs()
    ['BTCUSDT', 'ETHUSDT', ...]
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from pairlist.config import PairlistConfig
from pairlist.filters.base import FilterProviders, MarketProvider, PairFilter, TickerProvider
from pairlist.filters.errors import FilterConfigError
from pairlist.filters.registry import create_filter_from_config
from pairlist.models.market import TickerInfo
from pairlist.obs.logging import log_event
from pairlist.obs.metrics import update_metrics

DEFAULT_REFRESH_INTERVAL_S = 1800

# Background loop wakes at least this often to check for cancellation
_STOP_POLL_S = 1.0


def _iso(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    return ts.isoformat().replace("+00:00", "Z")


class PairListManager:
    def __init__(
        self,
        *,
        ticker_provider: TickerProvider | None = None,
        market_provider: MarketProvider | None = None,
        logger: logging.Logger | None = None,
        metrics_path: Path | None = None,
        refresh_interval: int = DEFAULT_REFRESH_INTERVAL_S,
    ) -> None:
        self._ticker_provider = ticker_provider
        self._market_provider = market_provider
        self._logger = logger or logging.getLogger(__name__)
        self._metrics_path = metrics_path

        self._state_lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self._pairs: list[str] = []
        self._filters: list[PairFilter] = []
        self._refresh_interval = refresh_interval
        self._last_refresh_time: datetime | None = None
        self._last_refresh_duration_ms: float | None = None
        self._refresh_count = 0
        self._filter_executions = 0
        self._refresh_failures = 0
        self._refresh_skipped = 0

        self._auto_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    # -- providers -------------------------------------------------------

    def set_ticker_provider(self, provider: TickerProvider | None) -> None:
        self._ticker_provider = provider

    def set_market_provider(self, provider: MarketProvider | None) -> None:
        self._market_provider = provider

    # -- chain -----------------------------------------------------------

    def load_from_config(
        self,
        cfg: PairlistConfig | Mapping[str, Any],
        *,
        providers: FilterProviders | None = None,
    ) -> int:
        """
        Replace the filter chain with the declarations in ``cfg``.

        Entries with an unknown method or invalid options are logged and
        skipped. Filters that consume market metadata get the manager's
        market provider unless ``providers`` names another one.

        Returns:
            Number of filters loaded.
        """
        if isinstance(cfg, PairlistConfig):
            entries: Any = cfg.pairlist_filters
            refresh_period: Any = cfg.refresh_period
        elif isinstance(cfg, Mapping):
            entries = cfg.get("pairlist_filters", [])
            refresh_period = cfg.get("refresh_period")
        else:
            log_event(
                self._logger,
                logging.ERROR,
                "config_invalid",
                "Pair list config must be a mapping",
                config_type=type(cfg).__name__,
            )
            return 0

        providers = providers or FilterProviders()
        if providers.market is None and self._market_provider is not None:
            providers = FilterProviders(
                market=self._market_provider,
                performance=providers.performance,
                remote_pairs=providers.remote_pairs,
            )

        if not isinstance(entries, list):
            log_event(
                self._logger,
                logging.ERROR,
                "config_invalid",
                "pairlist_filters must be a list",
                value_type=type(entries).__name__,
            )
            entries = []

        loaded: list[PairFilter] = []
        for index, entry in enumerate(entries):
            try:
                pair_filter = create_filter_from_config(entry, providers=providers, logger=self._logger)
            except FilterConfigError as exc:
                log_event(
                    self._logger,
                    logging.ERROR,
                    "filter_load_failed",
                    "Skipping pair list filter entry",
                    index=index,
                    method=exc.method,
                    error=exc.reason,
                )
                continue
            loaded.append(pair_filter)
            log_event(self._logger, logging.INFO, "filter_loaded", "Loaded filter", index=index, filter=pair_filter.name)

        interval = self._coerce_refresh_period(refresh_period)

        with self._state_lock:
            self._filters = loaded
            if interval is not None:
                self._refresh_interval = interval

        log_event(
            self._logger,
            logging.INFO,
            "pairlist_configured",
            "Pair list manager configured",
            filters=[pair_filter.name for pair_filter in loaded],
            skipped=len(entries) - len(loaded),
            refresh_interval=self.refresh_interval,
        )
        return len(loaded)

    def _coerce_refresh_period(self, value: Any) -> int | None:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            log_event(
                self._logger,
                logging.WARNING,
                "config_invalid",
                "Ignoring invalid refresh_period",
                refresh_period=value,
            )
            return None
        return value

    def add_filter(self, pair_filter: PairFilter) -> None:
        with self._state_lock:
            self._filters.append(pair_filter)
        log_event(self._logger, logging.INFO, "filter_added", "Added filter", filter=pair_filter.name)

    def clear_filters(self) -> None:
        with self._state_lock:
            self._filters = []

    @property
    def filters(self) -> list[PairFilter]:
        with self._state_lock:
            return list(self._filters)

    # -- refresh ---------------------------------------------------------

    def refresh(self) -> bool:
        """
        Run the filter chain once and publish the result.

        Never raises. Returns True when a new list was published, False when
        the run was skipped (no active pairs) or failed (provider or filter
        error); in both cases the previously published list is kept.
        """
        with self._refresh_lock:
            return self._refresh_locked()

    def _refresh_locked(self) -> bool:
        start = time.monotonic()

        try:
            markets = self._market_provider() if self._market_provider else []
        except Exception as exc:  # noqa: BLE001
            self._record_failure("market_provider", exc)
            return False

        # dict.fromkeys keeps first occurrence order and drops duplicates
        working = list(dict.fromkeys(market.symbol for market in markets if market.active))
        if not working:
            with self._state_lock:
                self._refresh_skipped += 1
            self._update_metrics(increments={"pairlist_refresh_skipped_total": 1})
            log_event(
                self._logger,
                logging.WARNING,
                "refresh_skipped",
                "No active pairs available from market provider; keeping previous list",
                markets_total=len(markets),
            )
            return False

        try:
            tickers: Mapping[str, TickerInfo] = self._ticker_provider() if self._ticker_provider else {}
        except Exception as exc:  # noqa: BLE001
            self._record_failure("ticker_provider", exc)
            return False

        log_event(
            self._logger,
            logging.INFO,
            "refresh_started",
            "Starting pair list refresh",
            initial_pairs=len(working),
            tickers=len(tickers),
        )

        chain = self.filters
        executed = 0
        for pair_filter in chain:
            if not working:
                break
            try:
                working = list(pair_filter.filter(working, tickers))
            except Exception as exc:  # noqa: BLE001
                with self._state_lock:
                    self._filter_executions += executed
                self._record_failure(f"filter:{pair_filter.name}", exc)
                return False
            executed += 1

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        with self._state_lock:
            self._pairs = working
            self._last_refresh_time = datetime.now(timezone.utc)
            self._last_refresh_duration_ms = duration_ms
            self._refresh_count += 1
            self._filter_executions += executed

        self._update_metrics(
            increments={"pairlist_refresh_total": 1},
            gauges={"pairlist_pairs": len(working), "pairlist_refresh_duration_ms": duration_ms},
        )
        log_event(
            self._logger,
            logging.INFO,
            "pairlist_refreshed",
            "Pair list refreshed",
            pair_count=len(working),
            filters_executed=executed,
            duration_ms=duration_ms,
        )
        return True

    def _update_metrics(
        self,
        *,
        increments: dict[str, int] | None = None,
        gauges: dict[str, int | float] | None = None,
    ) -> None:
        if not self._metrics_path:
            return
        try:
            update_metrics(self._metrics_path, increments=increments, gauges=gauges)
        except (OSError, ValueError) as exc:
            # metrics are best effort; the refresh outcome stands
            log_event(
                self._logger,
                logging.WARNING,
                "metrics_write_failed",
                "Could not update metrics file",
                path=str(self._metrics_path),
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def _record_failure(self, source: str, exc: Exception) -> None:
        with self._state_lock:
            self._refresh_failures += 1
        self._update_metrics(increments={"pairlist_refresh_failed_total": 1})
        log_event(
            self._logger,
            logging.ERROR,
            "refresh_failed",
            "Pair list refresh failed; keeping previous list",
            exc_info=exc,
            source=source,
            error_type=type(exc).__name__,
            error=str(exc),
        )

    # -- readers ---------------------------------------------------------

    def get_pairs(self) -> list[str]:
        with self._state_lock:
            return list(self._pairs)

    def get_pair_count(self) -> int:
        with self._state_lock:
            return len(self._pairs)

    def has_pair(self, symbol: str) -> bool:
        with self._state_lock:
            return symbol in self._pairs

    @property
    def last_refresh_time(self) -> datetime | None:
        with self._state_lock:
            return self._last_refresh_time

    @property
    def refresh_interval(self) -> int:
        with self._state_lock:
            return self._refresh_interval

    def get_statistics(self) -> dict[str, Any]:
        with self._state_lock:
            return {
                "pair_count": len(self._pairs),
                "filter_count": len(self._filters),
                "filters": [pair_filter.name for pair_filter in self._filters],
                "refresh_count": self._refresh_count,
                "total_filter_executions": self._filter_executions,
                "refresh_failures": self._refresh_failures,
                "refresh_skipped": self._refresh_skipped,
                "last_refresh_time": _iso(self._last_refresh_time),
                "last_refresh_duration_ms": self._last_refresh_duration_ms,
                "auto_refresh_running": self._auto_thread is not None and self._auto_thread.is_alive(),
                "refresh_interval": self._refresh_interval,
            }

    # -- background refresh ----------------------------------------------

    def is_auto_refreshing(self) -> bool:
        thread = self._auto_thread
        return thread is not None and thread.is_alive()

    def start_auto_refresh(self, interval_seconds: int | None = None) -> bool:
        """
        Start the background loop: refresh, then wait ``interval_seconds``.

        Uses the configured refresh interval when ``interval_seconds`` is None.
        Returns False when a loop is already running or the interval is invalid.
        """
        if interval_seconds is not None and (
            isinstance(interval_seconds, bool) or not isinstance(interval_seconds, int) or interval_seconds < 1
        ):
            log_event(
                self._logger,
                logging.ERROR,
                "config_invalid",
                "Auto refresh interval must be a positive integer",
                interval=interval_seconds,
            )
            return False

        # check and start in one critical section so concurrent callers get one loop
        with self._state_lock:
            running = self._auto_thread is not None and self._auto_thread.is_alive()
            if not running:
                if interval_seconds is not None:
                    self._refresh_interval = interval_seconds
                self._stop_event.clear()
                thread = threading.Thread(
                    target=self._auto_refresh_loop, name="pairlist-auto-refresh", daemon=True
                )
                self._auto_thread = thread
                thread.start()

        if running:
            log_event(self._logger, logging.WARNING, "auto_refresh_running", "Auto refresh already running")
            return False

        log_event(
            self._logger,
            logging.INFO,
            "auto_refresh_started",
            "Started auto refresh",
            interval=self.refresh_interval,
        )
        return True

    def stop_auto_refresh(self) -> None:
        """Stop the background loop and wait for it to exit. No-op when not running."""
        with self._state_lock:
            thread = self._auto_thread
        if thread is None:
            return
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join()
        with self._state_lock:
            if self._auto_thread is thread:
                self._auto_thread = None
        log_event(self._logger, logging.INFO, "auto_refresh_stopped", "Stopped auto refresh")

    def _auto_refresh_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.refresh()
            except Exception:  # noqa: BLE001
                log_event(self._logger, logging.ERROR, "auto_refresh_error", "Error in auto refresh", exc_info=True)

            deadline = time.monotonic() + self.refresh_interval
            while not self._stop_event.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._stop_event.wait(min(_STOP_POLL_S, remaining))

    # -- lifecycle -------------------------------------------------------

    def close(self) -> None:
        self.stop_auto_refresh()

    def __enter__(self) -> "PairListManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
