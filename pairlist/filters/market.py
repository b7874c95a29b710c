"""Filters driven by market metadata instead of ticker statistics."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Sequence

from pydantic import Field

from pairlist.filters.base import FilterOptions, FilterProviders, MarketProvider, PairFilter
from pairlist.models.market import MarketInfo, TickerInfo


class AgeOptions(FilterOptions):
    min_days_listed: int = Field(default=10, ge=0)


class MarketCapOptions(FilterOptions):
    number_assets: int = Field(default=20, ge=1)
    max_rank: int = Field(default=100, ge=1)


class _MarketMetadataFilter(PairFilter):
    """
    Shared provider handling for filters that look up MarketInfo.

    Without a provider, or when the provider raises, the working set is
    passed through unchanged.
    """

    def __init__(
        self,
        options: Mapping[str, Any] | FilterOptions | None = None,
        *,
        market_provider: MarketProvider | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(options, logger=logger)
        self._market_provider = market_provider

    def set_market_provider(self, provider: MarketProvider | None) -> None:
        self._market_provider = provider

    def bind_providers(self, providers: FilterProviders) -> None:
        if providers.market is not None:
            self._market_provider = providers.market

    def _market_map(self) -> dict[str, MarketInfo] | None:
        if self._market_provider is None:
            self._log_provider_missing("pass_through")
            return None
        try:
            markets = self._market_provider()
        except Exception as exc:  # noqa: BLE001
            self._log_provider_failed(exc, "pass_through")
            return None
        return {market.symbol: market for market in markets}


class AgeFilter(_MarketMetadataFilter):
    """Keeps pairs listed at least ``min_days_listed`` full days ago."""

    method = "AgeFilter"
    options_model = AgeOptions
    options: AgeOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        market_map = self._market_map()
        if market_map is None:
            return list(pairs)

        now = datetime.now(timezone.utc)
        min_days = self.options.min_days_listed
        result: list[str] = []
        for pair in pairs:
            market = market_map.get(pair)
            if market is None:
                self._log_dropped(pair, "missing_market")
                continue
            if market.listed_at is None:
                self._log_dropped(pair, "listing_date_unknown")
                continue
            listed_at = market.listed_at
            if listed_at.tzinfo is None:
                listed_at = listed_at.replace(tzinfo=timezone.utc)
            days_listed = (now - listed_at) // timedelta(days=1)
            if days_listed >= min_days:
                result.append(pair)
            else:
                self._log_dropped(pair, "listed_too_recently", days_listed=days_listed)

        self._log_applied(len(pairs), len(result), min_days_listed=min_days)
        return result


class MarketCapPairList(_MarketMetadataFilter):
    """
    Keeps ranked pairs with rank <= ``max_rank``, ordered by market cap.

    Unranked pairs (rank <= 0) and pairs without a market entry are dropped.
    Sorting is by market cap descending and stable for equal values.
    """

    method = "MarketCapPairList"
    options_model = MarketCapOptions
    options: MarketCapOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        market_map = self._market_map()
        if market_map is None:
            return list(pairs)

        max_rank = self.options.max_rank
        ranked: list[tuple[str, float]] = []
        for pair in pairs:
            market = market_map.get(pair)
            if market is None:
                self._log_dropped(pair, "missing_market")
                continue
            if not market.is_ranked or market.market_cap_rank > max_rank:
                self._log_dropped(pair, "rank_out_of_range", rank=market.market_cap_rank)
                continue
            ranked.append((pair, market.market_cap))

        ranked = sorted(ranked, key=lambda item: item[1], reverse=True)
        result = [pair for pair, _cap in ranked[: self.options.number_assets]]

        self._log_applied(len(pairs), len(result), max_rank=max_rank, number_assets=self.options.number_assets)
        return result
