from __future__ import annotations

import math
from typing import Mapping, Sequence

from pydantic import Field

from pairlist.filters.base import FilterOptions, PairFilter
from pairlist.models.market import SortKey, TickerInfo


class VolumeOptions(FilterOptions):
    number_assets: int = Field(default=20, ge=1)
    sort_key: SortKey = Field(default=SortKey.QUOTE_VOLUME)
    min_value: float = Field(default=0.0)


class VolumePairList(PairFilter):
    """
    Ranks pairs by a ticker metric and keeps the top ``number_assets``.

    Pairs without a ticker, or whose metric is below ``min_value``, are
    dropped. Equal metric values keep their incoming relative order.
    """

    method = "VolumePairList"
    options_model = VolumeOptions
    options: VolumeOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        sort_key = self.options.sort_key
        ranked: list[tuple[str, float]] = []

        for pair in pairs:
            ticker = tickers.get(pair)
            if ticker is None:
                self._log_dropped(pair, "missing_ticker")
                continue
            value = ticker.metric(sort_key)
            if math.isnan(value) or value < self.options.min_value:
                self._log_dropped(pair, "below_min_value", value=value)
                continue
            ranked.append((pair, value))

        # sorted() is stable with reverse=True, ties keep input order
        ranked = sorted(ranked, key=lambda item: item[1], reverse=True)
        result = [pair for pair, _value in ranked[: self.options.number_assets]]

        self._log_applied(
            len(pairs),
            len(result),
            sort_key=sort_key.value,
            number_assets=self.options.number_assets,
        )
        return result
