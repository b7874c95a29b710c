from pairlist.filters.base import FilterOptions, FilterProviders, PairFilter
from pairlist.filters.errors import FilterConfigError, UnknownFilterError
from pairlist.filters.external import PerformanceFilter, ProducerPairList
from pairlist.filters.market import AgeFilter, MarketCapPairList
from pairlist.filters.ordering import OffsetFilter, ShuffleFilter
from pairlist.filters.registry import FILTER_REGISTRY, create_filter, create_filter_from_config
from pairlist.filters.static import BlacklistFilter, StaticPairList
from pairlist.filters.ticker_bands import PriceFilter, SpreadFilter, VolatilityFilter
from pairlist.filters.volume import VolumePairList

__all__ = [
    "AgeFilter",
    "BlacklistFilter",
    "FILTER_REGISTRY",
    "FilterConfigError",
    "FilterOptions",
    "FilterProviders",
    "MarketCapPairList",
    "OffsetFilter",
    "PairFilter",
    "PerformanceFilter",
    "PriceFilter",
    "ProducerPairList",
    "ShuffleFilter",
    "SpreadFilter",
    "StaticPairList",
    "UnknownFilterError",
    "VolatilityFilter",
    "VolumePairList",
    "create_filter",
    "create_filter_from_config",
]
