"""Filters that keep pairs whose ticker statistics fall inside a band."""

from __future__ import annotations

import math
from typing import Mapping, Sequence

from pydantic import Field, model_validator

from pairlist.filters.base import FilterOptions, PairFilter
from pairlist.models.market import TickerInfo


class SpreadOptions(FilterOptions):
    max_spread_ratio: float = Field(default=0.005, ge=0)


class PriceOptions(FilterOptions):
    min_price: float = Field(default=0.0, ge=0)
    max_price: float = Field(default=math.inf, ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> "PriceOptions":
        if self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")
        return self


class VolatilityOptions(FilterOptions):
    min_volatility: float = Field(default=0.0, ge=0)
    max_volatility: float = Field(default=math.inf, ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> "VolatilityOptions":
        if self.min_volatility > self.max_volatility:
            raise ValueError("min_volatility must not exceed max_volatility")
        return self


class SpreadFilter(PairFilter):
    method = "SpreadFilter"
    options_model = SpreadOptions
    options: SpreadOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        result: list[str] = []
        for pair in pairs:
            ticker = tickers.get(pair)
            if ticker is None:
                self._log_dropped(pair, "missing_ticker")
                continue
            spread_ratio = ticker.spread_ratio
            if spread_ratio <= self.options.max_spread_ratio:
                result.append(pair)
            else:
                self._log_dropped(pair, "spread_too_wide", spread_ratio=spread_ratio)

        self._log_applied(len(pairs), len(result), max_spread_ratio=self.options.max_spread_ratio)
        return result


class PriceFilter(PairFilter):
    method = "PriceFilter"
    options_model = PriceOptions
    options: PriceOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        low, high = self.options.min_price, self.options.max_price
        result: list[str] = []
        for pair in pairs:
            ticker = tickers.get(pair)
            if ticker is None:
                self._log_dropped(pair, "missing_ticker")
                continue
            if low <= ticker.last_price <= high:
                result.append(pair)
            else:
                self._log_dropped(pair, "price_out_of_range", price=ticker.last_price)

        self._log_applied(len(pairs), len(result), min_price=low, max_price=high)
        return result


class VolatilityFilter(PairFilter):
    method = "VolatilityFilter"
    options_model = VolatilityOptions
    options: VolatilityOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        low, high = self.options.min_volatility, self.options.max_volatility
        result: list[str] = []
        for pair in pairs:
            ticker = tickers.get(pair)
            if ticker is None:
                self._log_dropped(pair, "missing_ticker")
                continue
            volatility = ticker.volatility
            if low <= volatility <= high:
                result.append(pair)
            else:
                self._log_dropped(pair, "volatility_out_of_range", volatility=volatility)

        self._log_applied(len(pairs), len(result), min_volatility=low, max_volatility=high)
        return result
