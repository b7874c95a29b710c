from __future__ import annotations

import logging
from typing import Any, Mapping

from pairlist.filters.base import FilterProviders, PairFilter
from pairlist.filters.errors import FilterConfigError, UnknownFilterError
from pairlist.filters.external import PerformanceFilter, ProducerPairList
from pairlist.filters.market import AgeFilter, MarketCapPairList
from pairlist.filters.ordering import OffsetFilter, ShuffleFilter
from pairlist.filters.static import BlacklistFilter, StaticPairList
from pairlist.filters.ticker_bands import PriceFilter, SpreadFilter, VolatilityFilter
from pairlist.filters.volume import VolumePairList

FILTER_REGISTRY: dict[str, type[PairFilter]] = {
    cls.method: cls
    for cls in (
        StaticPairList,
        BlacklistFilter,
        VolumePairList,
        SpreadFilter,
        PriceFilter,
        VolatilityFilter,
        AgeFilter,
        OffsetFilter,
        ShuffleFilter,
        PerformanceFilter,
        ProducerPairList,
        MarketCapPairList,
    )
}


def create_filter(method: str, *, logger: logging.Logger | None = None) -> PairFilter:
    """Instantiate the filter registered under ``method`` with default options."""
    try:
        filter_cls = FILTER_REGISTRY[method]
    except KeyError:
        raise UnknownFilterError(method) from None
    return filter_cls(logger=logger)


def create_filter_from_config(
    entry: Mapping[str, Any],
    *,
    providers: FilterProviders | None = None,
    logger: logging.Logger | None = None,
) -> PairFilter:
    """
    Build a configured filter from a ``{"method": ..., **options}`` declaration.

    Raises:
        UnknownFilterError: If ``method`` is not a registered filter.
        FilterConfigError: If the entry is malformed or an option value is invalid.
    """
    if not isinstance(entry, Mapping):
        raise FilterConfigError("<entry>", "filter declaration must be a mapping")
    method = entry.get("method")
    if not isinstance(method, str) or not method:
        raise FilterConfigError("<entry>", "filter declaration is missing 'method'")

    pair_filter = create_filter(method, logger=logger)
    pair_filter.configure({key: value for key, value in entry.items() if key != "method"})
    if providers is not None:
        pair_filter.bind_providers(providers)
    return pair_filter
