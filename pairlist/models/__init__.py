from pairlist.models.market import MarketInfo, PairType, SortKey, TickerInfo

__all__ = ["MarketInfo", "PairType", "SortKey", "TickerInfo"]
