"""
JSON snapshot files as market, ticker and performance providers.

Accepted layouts:
    markets.json  -> [{...}, ...] or {"markets": [{...}, ...]}
    tickers.json  -> [{...}, ...] or {"tickers": [{...}, ...]}
    scores.json   -> {"BTCUSDT": 0.12, ...} or {"scores": {...}}

Field names follow exchange payloads where one exists (``quoteVolume``,
``bidPrice``, ``priceChangePercent`` ...); the snake_case model names
are accepted too. Numbers may be strings. Values that do not parse fall
back to the model default, and entries without a symbol are skipped.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from pairlist.models.market import MarketInfo, PairType, TickerInfo
from pairlist.obs.logging import log_event


class SnapshotError(Exception):
    """Raised when a snapshot file cannot be read or has the wrong shape."""


_MARKET_KEYS: dict[str, tuple[str, ...]] = {
    "min_amount": ("min_amount", "minQty"),
    "max_amount": ("max_amount", "maxQty"),
    "min_price": ("min_price", "minPrice"),
    "max_price": ("max_price", "maxPrice"),
    "min_cost": ("min_cost", "minNotional"),
    "maker_fee": ("maker_fee", "makerCommission"),
    "taker_fee": ("taker_fee", "takerCommission"),
    "market_cap": ("market_cap", "marketCap"),
}

_TICKER_KEYS: dict[str, tuple[str, ...]] = {
    "last_price": ("last_price", "lastPrice", "last"),
    "bid": ("bid", "bidPrice"),
    "ask": ("ask", "askPrice"),
    "high_24h": ("high_24h", "highPrice", "high"),
    "low_24h": ("low_24h", "lowPrice", "low"),
    "volume_24h": ("volume_24h", "volume"),
    "quote_volume_24h": ("quote_volume_24h", "quoteVolume"),
    "price_change_percent_24h": ("price_change_percent_24h", "priceChangePercent"),
}


def _parse_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def _parse_int(value: object) -> int | None:
    parsed = _parse_float(value)
    if parsed is None:
        return None
    return int(parsed)


def _parse_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "trading", "enabled"}:
            return True
        if lowered in {"false", "0", "break", "halt", "disabled"}:
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def _parse_timestamp(value: object) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        # epoch milliseconds as returned by exchanges
        seconds = value / 1000 if value > 10_000_000_000 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _first(entry: dict[str, Any], keys: Iterable[str]) -> object:
    for key in keys:
        if key in entry:
            return entry[key]
    return None


def _floats(entry: dict[str, Any], keys: dict[str, tuple[str, ...]]) -> dict[str, float]:
    values: dict[str, float] = {}
    for field_name, aliases in keys.items():
        parsed = _parse_float(_first(entry, aliases))
        if parsed is not None:
            values[field_name] = parsed
    return values


def _parse_pair_type(value: object) -> PairType:
    if isinstance(value, str):
        try:
            return PairType(value.lower())
        except ValueError:
            pass
    return PairType.SPOT


def parse_market(entry: dict[str, Any]) -> MarketInfo | None:
    symbol = entry.get("symbol")
    if not isinstance(symbol, str) or not symbol:
        return None

    base = _first(entry, ("base", "baseAsset"))
    quote = _first(entry, ("quote", "quoteAsset"))
    values: dict[str, Any] = _floats(entry, _MARKET_KEYS)
    for field_name, aliases in (
        ("amount_precision", ("amount_precision", "baseAssetPrecision")),
        ("price_precision", ("price_precision", "quotePrecision")),
        ("market_cap_rank", ("market_cap_rank", "marketCapRank")),
    ):
        parsed = _parse_int(_first(entry, aliases))
        if parsed is not None:
            values[field_name] = parsed

    return MarketInfo(
        symbol=symbol,
        base=str(base) if base is not None else "",
        quote=str(quote) if quote is not None else "",
        pair_type=_parse_pair_type(_first(entry, ("pair_type", "type"))),
        active=_parse_bool(_first(entry, ("active", "status")), default=True),
        listed_at=_parse_timestamp(_first(entry, ("listed_at", "onboardDate", "listingDate"))),
        **values,
    )


def parse_ticker(entry: dict[str, Any]) -> TickerInfo | None:
    symbol = entry.get("symbol")
    if not isinstance(symbol, str) or not symbol:
        return None
    return TickerInfo(
        symbol=symbol,
        timestamp=_parse_timestamp(_first(entry, ("timestamp", "closeTime"))),
        **_floats(entry, _TICKER_KEYS),
    )


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SnapshotError(f"Snapshot not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Invalid JSON in {path}: {exc}") from exc


def _rows(payload: Any, key: str, path: Path) -> list[Any]:
    if isinstance(payload, dict):
        payload = payload.get(key)
    if not isinstance(payload, list):
        raise SnapshotError(f"{path}: expected a list or an object with '{key}' list")
    return payload


def load_markets(path: Path, *, logger: logging.Logger | None = None) -> list[MarketInfo]:
    logger = logger or logging.getLogger(__name__)
    rows = _rows(_read_json(path), "markets", path)
    markets: list[MarketInfo] = []
    skipped = 0
    for entry in rows:
        market = parse_market(entry) if isinstance(entry, dict) else None
        if market is None:
            skipped += 1
            continue
        markets.append(market)

    log_event(
        logger,
        logging.INFO,
        "markets_loaded",
        "Loaded market snapshot",
        path=str(path),
        total_rows=len(rows),
        skipped=skipped,
    )
    return markets


def load_tickers(path: Path, *, logger: logging.Logger | None = None) -> dict[str, TickerInfo]:
    logger = logger or logging.getLogger(__name__)
    rows = _rows(_read_json(path), "tickers", path)
    tickers: dict[str, TickerInfo] = {}
    skipped = 0
    for entry in rows:
        ticker = parse_ticker(entry) if isinstance(entry, dict) else None
        if ticker is None:
            skipped += 1
            continue
        tickers[ticker.symbol] = ticker

    log_event(
        logger,
        logging.INFO,
        "tickers_loaded",
        "Loaded ticker snapshot",
        path=str(path),
        total_rows=len(rows),
        skipped=skipped,
    )
    return tickers


def load_scores(path: Path) -> dict[str, float]:
    payload = _read_json(path)
    if isinstance(payload, dict) and isinstance(payload.get("scores"), dict):
        payload = payload["scores"]
    if not isinstance(payload, dict):
        raise SnapshotError(f"{path}: expected an object mapping symbol to profit ratio")

    scores: dict[str, float] = {}
    for symbol, value in payload.items():
        parsed = _parse_float(value)
        if parsed is not None:
            scores[str(symbol)] = parsed
    return scores


def file_market_provider(path: Path, *, logger: logging.Logger | None = None) -> Callable[[], list[MarketInfo]]:
    """Provider that re-reads ``path`` on every call."""
    return lambda: load_markets(path, logger=logger)


def file_ticker_provider(path: Path, *, logger: logging.Logger | None = None) -> Callable[[], dict[str, TickerInfo]]:
    return lambda: load_tickers(path, logger=logger)


def file_score_provider(path: Path) -> Callable[[], dict[str, float]]:
    return lambda: load_scores(path)
