"""
Snapshot models for tradable pairs.

MarketInfo carries the slow-changing trading rules of a pair (limits,
precision, fees, listing date, market-cap rank). TickerInfo carries the
live 24h statistics. Both are plain records: no validation happens on
construction, the data providers are responsible for coherent values.

Derived quantities on TickerInfo are computed on every access:
    spread       = ask - bid
    spread_ratio = spread / ask            (inf when ask <= 0)
    volatility   = (high - low) / last     (0.0 when last <= 0)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PairType(str, Enum):
    SPOT = "spot"
    FUTURES = "futures"
    MARGIN = "margin"


class SortKey(str, Enum):
    """Ranking metrics accepted by VolumePairList (config spelling as values)."""

    QUOTE_VOLUME = "quoteVolume"
    VOLUME = "volume"
    PRICE_CHANGE = "priceChange"
    VOLATILITY = "volatility"


@dataclass(frozen=True)
class MarketInfo:
    """
    Trading rules and listing data for one pair.

    Attributes:
        symbol: Pair identifier (e.g., "BTCUSDT" or "BTC/USDT").
        base: Base asset code.
        quote: Quote asset code.
        pair_type: Instrument class (spot, futures, margin).
        active: Whether the pair currently trades; only active pairs seed a run.
        min_amount / max_amount: Order quantity bounds.
        min_price / max_price: Order price bounds.
        min_cost: Minimum order notional (price * quantity).
        amount_precision / price_precision: Decimal places allowed.
        maker_fee / taker_fee: Fee rates as fractions.
        listed_at: Listing timestamp (timezone-aware), None when unknown.
        market_cap: Market capitalization in quote terms.
        market_cap_rank: Market-cap rank; values <= 0 mean unranked.
    """
    symbol: str
    base: str = ""
    quote: str = ""
    pair_type: PairType = PairType.SPOT
    active: bool = True
    min_amount: float = 0.0
    max_amount: float = 0.0
    min_price: float = 0.0
    max_price: float = 0.0
    min_cost: float = 0.0
    amount_precision: int = 8
    price_precision: int = 8
    maker_fee: float = 0.0
    taker_fee: float = 0.0
    listed_at: datetime | None = None
    market_cap: float = 0.0
    market_cap_rank: int = 0

    @property
    def is_ranked(self) -> bool:
        return self.market_cap_rank > 0


@dataclass(frozen=True)
class TickerInfo:
    """
    Point-in-time 24h statistics for one pair.

    Attributes:
        symbol: Pair identifier.
        last_price: Last trade price.
        bid / ask: Best bid and ask.
        high_24h / low_24h: 24h price range.
        volume_24h: 24h volume in base asset.
        quote_volume_24h: 24h volume in quote asset.
        price_change_percent_24h: Signed 24h change in percent.
        timestamp: Snapshot time, None when the provider did not supply one.
    """
    symbol: str
    last_price: float = 0.0
    bid: float = 0.0
    ask: float = 0.0
    high_24h: float = 0.0
    low_24h: float = 0.0
    volume_24h: float = 0.0
    quote_volume_24h: float = 0.0
    price_change_percent_24h: float = 0.0
    timestamp: datetime | None = None

    @property
    def spread(self) -> float:
        return self.ask - self.bid

    @property
    def spread_ratio(self) -> float:
        if self.ask <= 0:
            return math.inf
        return self.spread / self.ask

    @property
    def volatility(self) -> float:
        if self.last_price <= 0:
            return 0.0
        return (self.high_24h - self.low_24h) / self.last_price

    def metric(self, key: SortKey) -> float:
        if key is SortKey.QUOTE_VOLUME:
            return self.quote_volume_24h
        if key is SortKey.VOLUME:
            return self.volume_24h
        if key is SortKey.PRICE_CHANGE:
            return abs(self.price_change_percent_24h)
        return self.volatility
