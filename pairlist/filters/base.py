"""
Common contract for pair-list filters.

A filter takes the current working set (ordered, unique symbols) and the
ticker snapshot of the run, and returns a new working set. Filters may
drop, reorder or, in the ProducerPairList case, replace pairs. They keep
no state between runs apart from their options and bound providers.

Options are pydantic models that ignore unknown keys and default missing
ones. A malformed value raises FilterConfigError from configure().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError

from pairlist.filters.errors import FilterConfigError
from pairlist.models.market import MarketInfo, TickerInfo
from pairlist.obs.logging import log_event

MarketProvider = Callable[[], Sequence[MarketInfo]]
TickerProvider = Callable[[], Mapping[str, TickerInfo]]
PerformanceProvider = Callable[[], Mapping[str, float]]
RemotePairProvider = Callable[[], Sequence[str]]


@dataclass(frozen=True)
class FilterProviders:
    """
    External data sources that individual filters may consume.

    Attributes:
        market: Market metadata for AgeFilter and MarketCapPairList.
        performance: Symbol -> profit ratio for PerformanceFilter.
        remote_pairs: Pair list published by a producer, for ProducerPairList.
    """
    market: MarketProvider | None = None
    performance: PerformanceProvider | None = None
    remote_pairs: RemotePairProvider | None = None


class FilterOptions(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PairFilter(ABC):
    """
    Base class for all pair-list filters.

    Subclasses set ``method`` (the configuration dispatch key, also used as
    the filter name in logs and statistics) and ``options_model``, and
    implement ``filter``.
    """

    method: ClassVar[str]
    options_model: ClassVar[type[FilterOptions]] = FilterOptions

    def __init__(
        self,
        options: Mapping[str, Any] | FilterOptions | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._logger = logger or logging.getLogger(type(self).__module__)
        self.options = self.options_model()
        if options is not None:
            self.configure(options)

    @property
    def name(self) -> str:
        return self.method

    def configure(self, options: Mapping[str, Any] | FilterOptions) -> None:
        """
        Apply option values on top of the current ones.

        Keys that are not options of this filter are ignored; keys that are
        absent keep their current (initially default) value.

        Raises:
            FilterConfigError: If a value has the wrong type or is out of range.
        """
        if isinstance(options, FilterOptions):
            update = options.model_dump(exclude_unset=True)
        elif isinstance(options, Mapping):
            update = dict(options)
        else:
            raise FilterConfigError(self.name, "options must be a mapping")

        merged = {**self.options.model_dump(), **update}
        try:
            self.options = self.options_model.model_validate(merged)
        except ValidationError as exc:
            raise FilterConfigError(self.name, str(exc)) from exc

    def bind_providers(self, providers: FilterProviders) -> None:
        """Attach the external providers this filter consumes. No-op by default."""

    @abstractmethod
    def filter(self, pairs: Sequence[str], tickers: Mapping[str, TickerInfo]) -> list[str]:
        """Return the new working set for ``pairs``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.options!r})"

    def _log_applied(self, pairs_in: int, pairs_out: int, **extra: Any) -> None:
        log_event(
            self._logger,
            logging.INFO,
            "filter_applied",
            f"{self.name}: filtered {pairs_in} pairs to {pairs_out}",
            filter=self.name,
            pairs_in=pairs_in,
            pairs_out=pairs_out,
            **extra,
        )

    def _log_dropped(self, symbol: str, reason: str, **extra: Any) -> None:
        log_event(
            self._logger,
            logging.DEBUG,
            "pair_dropped",
            f"{self.name}: dropped {symbol}",
            filter=self.name,
            symbol=symbol,
            reason=reason,
            **extra,
        )

    def _log_provider_missing(self, fallback: str) -> None:
        log_event(
            self._logger,
            logging.WARNING,
            "filter_provider_missing",
            f"{self.name}: no provider set",
            filter=self.name,
            fallback=fallback,
        )

    def _log_provider_failed(self, exc: Exception, fallback: str) -> None:
        log_event(
            self._logger,
            logging.ERROR,
            "filter_provider_failed",
            f"{self.name}: provider call failed",
            filter=self.name,
            fallback=fallback,
            error_type=type(exc).__name__,
            error=str(exc),
        )
