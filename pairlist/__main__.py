from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

from pairlist import __version__
from pairlist.config import ConfigError, load_config
from pairlist.filters.base import FilterProviders
from pairlist.io.snapshots import file_market_provider, file_score_provider, file_ticker_provider
from pairlist.obs.logging import LogSettings, build_logger, log_event
from pairlist.obs.metrics import summarize_refresh_health, write_statistics
from pairlist.pipeline.manager import PairListManager
from pairlist.producer.client import ProducerClient, remote_pair_provider

EXIT_OK = 0
EXIT_NO_PAIRS = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pair list selection pipeline")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Build the pair list from snapshot files")
    run_parser.add_argument("--config", required=True, help="Path to config YAML")
    run_parser.add_argument("--markets", required=True, help="Market metadata snapshot (JSON)")
    run_parser.add_argument("--tickers", required=True, help="Ticker snapshot (JSON)")
    run_parser.add_argument("--scores", help="Performance scores (JSON symbol -> profit ratio)")
    run_parser.add_argument("--stats-out", help="Write manager statistics to this JSON file")
    run_parser.add_argument("--metrics", help="Accumulate refresh counters in this JSON file")
    run_parser.add_argument("--log-level", help="Logging level (overrides config)")
    run_parser.add_argument("--watch", action="store_true", help="Keep refreshing until interrupted")
    run_parser.add_argument("--interval", type=int, help="Refresh interval in seconds for --watch")

    return parser.parse_args(argv)


def _producer_name(entries: list[dict[str, Any]]) -> str:
    for entry in entries:
        if isinstance(entry, dict) and entry.get("method") == "ProducerPairList":
            name = entry.get("producer_name")
            if isinstance(name, str):
                return name
    return ""


def _refresh_health(metrics_path: Path, logger: logging.Logger) -> dict[str, int | str]:
    metrics_payload: dict[str, Any] = {}
    try:
        if metrics_path.exists():
            raw_metrics = metrics_path.read_text(encoding="utf-8").strip()
            if raw_metrics:
                metrics_payload = json.loads(raw_metrics)
    except (OSError, ValueError) as exc:
        log_event(
            logger, 30, "metrics_read_failed", "Could not read metrics file", path=str(metrics_path), error=str(exc)
        )
    return summarize_refresh_health(metrics_payload if isinstance(metrics_payload, dict) else {})


def _emit(
    manager: PairListManager,
    stats_out: str | None,
    metrics_path: Path | None,
    logger: logging.Logger,
) -> None:
    print(json.dumps(manager.get_pairs(), ensure_ascii=False))
    stats = manager.get_statistics()
    if metrics_path:
        health = _refresh_health(metrics_path, logger)
        stats["refresh_health"] = health
        log_event(logger, 20, "run_complete", "Run complete", health=health["health"])
    if stats_out:
        try:
            write_statistics(Path(stats_out), stats)
        except OSError as exc:
            log_event(
                logger, 40, "stats_write_failed", "Could not write statistics", path=stats_out, error=str(exc)
            )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])

    logger = build_logger(LogSettings(level=(args.log_level or "INFO").upper(), instance_id="pairlist"))

    try:
        loaded = load_config(Path(args.config))
    except ConfigError as exc:
        log_event(logger, 40, "config_invalid", str(exc))
        return EXIT_CONFIG_ERROR

    obs = loaded.config.obs
    logger = build_logger(
        LogSettings(
            level=(args.log_level or obs.log_level).upper(),
            instance_id=obs.instance_id,
            jsonl=obs.log_jsonl,
        )
    )

    producer_client: ProducerClient | None = None
    remote_pairs = None
    if loaded.config.producer.base_url:
        producer_client = ProducerClient(loaded.config.producer, logger=logger)
        remote_pairs = remote_pair_provider(
            producer_client, _producer_name(loaded.config.pairlist.pairlist_filters)
        )

    metrics_path = Path(args.metrics) if args.metrics else None
    manager = PairListManager(
        ticker_provider=file_ticker_provider(Path(args.tickers), logger=logger),
        market_provider=file_market_provider(Path(args.markets), logger=logger),
        logger=logger,
        metrics_path=metrics_path,
    )
    manager.load_from_config(
        loaded.config.pairlist,
        providers=FilterProviders(
            performance=file_score_provider(Path(args.scores)) if args.scores else None,
            remote_pairs=remote_pairs,
        ),
    )

    try:
        if args.watch:
            if not manager.start_auto_refresh(args.interval):
                return EXIT_CONFIG_ERROR
            log_event(logger, 20, "watch_started", "Watching; press Ctrl+C to stop")
            try:
                while True:
                    time.sleep(1)
            except KeyboardInterrupt:
                log_event(logger, 20, "watch_interrupted", "Interrupted; stopping auto refresh")
            manager.stop_auto_refresh()
            published = manager.get_statistics()["refresh_count"] > 0
        else:
            published = manager.refresh()
        _emit(manager, args.stats_out, metrics_path, logger)
    finally:
        manager.close()
        if producer_client:
            producer_client.close()

    return EXIT_OK if published else EXIT_NO_PAIRS


if __name__ == "__main__":
    raise SystemExit(main())
