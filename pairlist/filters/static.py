from __future__ import annotations

from typing import Mapping, Sequence

from pydantic import Field

from pairlist.filters.base import FilterOptions, PairFilter
from pairlist.models.market import TickerInfo


class WhitelistOptions(FilterOptions):
    whitelist: list[str] = Field(default_factory=list)


class BlacklistOptions(FilterOptions):
    blacklist: list[str] = Field(default_factory=list)


class StaticPairList(PairFilter):
    """Keeps only whitelisted pairs. An empty whitelist passes everything through."""

    method = "StaticPairList"
    options_model = WhitelistOptions
    options: WhitelistOptions

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        if not self.options.whitelist:
            return list(pairs)

        allowed = set(self.options.whitelist)
        result = [pair for pair in pairs if pair in allowed]
        self._log_applied(len(pairs), len(result), whitelist_size=len(allowed))
        return result


class BlacklistFilter(PairFilter):
    method = "BlacklistFilter"
    options_model = BlacklistOptions
    options: BlacklistOptions

    def add(self, symbol: str) -> None:
        if symbol not in self.options.blacklist:
            self.options = BlacklistOptions(blacklist=[*self.options.blacklist, symbol])

    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        if not self.options.blacklist:
            return list(pairs)

        blocked = set(self.options.blacklist)
        result: list[str] = []
        for pair in pairs:
            if pair in blocked:
                self._log_dropped(pair, "blacklisted")
                continue
            result.append(pair)

        self._log_applied(len(pairs), len(result), removed=len(pairs) - len(result))
        return result
