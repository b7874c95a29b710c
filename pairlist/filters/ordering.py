from __future__ import annotations

import random
from typing import Mapping, Sequence

from pydantic import Field

from pairlist.filters.base import FilterOptions, PairFilter
from pairlist.models.market import TickerInfo


class OffsetOptions(FilterOptions):
    offset: int = Field(default=0, ge=0)
    # 0 keeps the rest of the list
    number_assets: int = Field(default=0, ge=0)


class ShuffleOptions(FilterOptions):
    # 0 shuffles with system randomness
    seed: int = Field(default=0, ge=0)


class OffsetFilter(PairFilter):
    """Pagination over the current working-set order."""

    method = "OffsetFilter"
    options_model = OffsetOptions
    options: OffsetOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        start = self.options.offset
        if self.options.number_assets > 0:
            result = list(pairs[start : start + self.options.number_assets])
        else:
            result = list(pairs[start:])

        self._log_applied(
            len(pairs),
            len(result),
            offset=self.options.offset,
            number_assets=self.options.number_assets,
        )
        return result


class ShuffleFilter(PairFilter):
    method = "ShuffleFilter"
    options_model = ShuffleOptions
    options: ShuffleOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        result = list(pairs)
        if self.options.seed:
            rng: random.Random = random.Random(self.options.seed)
        else:
            rng = random.SystemRandom()
        rng.shuffle(result)

        self._log_applied(len(pairs), len(result), seed=self.options.seed)
        return result
