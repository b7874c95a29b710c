"""Filters whose decision comes from an external provider rather than the snapshot."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from pydantic import Field

from pairlist.filters.base import (
    FilterOptions,
    FilterProviders,
    PairFilter,
    PerformanceProvider,
    RemotePairProvider,
)
from pairlist.models.market import TickerInfo


class PerformanceOptions(FilterOptions):
    min_profit: float = Field(default=0.0)


class ProducerOptions(FilterOptions):
    producer_name: str = Field(default="")


class PerformanceFilter(PairFilter):
    """
    Drops pairs whose recorded profit ratio is below ``min_profit``.

    Pairs the provider has no score for are kept. Without a provider, or
    when it fails, the working set passes through unchanged.
    """

    method = "PerformanceFilter"
    options_model = PerformanceOptions
    options: PerformanceOptions

    def __init__(
        self,
        options: Mapping[str, Any] | FilterOptions | None = None,
        *,
        performance_provider: PerformanceProvider | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(options, logger=logger)
        self._performance_provider = performance_provider

    def set_performance_provider(self, provider: PerformanceProvider | None) -> None:
        self._performance_provider = provider

    def bind_providers(self, providers: FilterProviders) -> None:
        if providers.performance is not None:
            self._performance_provider = providers.performance

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        if self._performance_provider is None:
            self._log_provider_missing("pass_through")
            return list(pairs)
        try:
            scores = self._performance_provider()
        except Exception as exc:  # noqa: BLE001
            self._log_provider_failed(exc, "pass_through")
            return list(pairs)

        min_profit = self.options.min_profit
        result: list[str] = []
        unscored = 0
        for pair in pairs:
            profit = scores.get(pair)
            if profit is None:
                unscored += 1
                result.append(pair)
                continue
            if profit >= min_profit:
                result.append(pair)
            else:
                self._log_dropped(pair, "low_profit", profit=profit)

        self._log_applied(len(pairs), len(result), min_profit=min_profit, unscored=unscored)
        return result


class ProducerPairList(PairFilter):
    """
    Replaces the working set with the list published by a producer instance.

    The incoming pairs are ignored. Without a provider, or when it fails,
    the result is empty.
    """

    method = "ProducerPairList"
    options_model = ProducerOptions
    options: ProducerOptions

    def __init__(
        self,
        options: Mapping[str, Any] | FilterOptions | None = None,
        *,
        remote_provider: RemotePairProvider | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(options, logger=logger)
        self._remote_provider = remote_provider

    def set_remote_provider(self, provider: RemotePairProvider | None) -> None:
        self._remote_provider = provider

    def bind_providers(self, providers: FilterProviders) -> None:
        if providers.remote_pairs is not None:
            self._remote_provider = providers.remote_pairs

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        if self._remote_provider is None:
            self._log_provider_missing("empty")
            return []
        try:
            remote_pairs = self._remote_provider()
        except Exception as exc:  # noqa: BLE001
            self._log_provider_failed(exc, "empty")
            return []

        # keep first occurrence so the working set stays unique
        result = list(dict.fromkeys(pair for pair in remote_pairs if isinstance(pair, str) and pair))

        self._log_applied(len(pairs), len(result), producer=self.options.producer_name)
        return result
