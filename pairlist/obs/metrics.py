from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping


def _read_metrics(metrics_path: Path) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if metrics_path.exists():
        raw = metrics_path.read_text(encoding="utf-8").strip()
        if raw:
            payload = json.loads(raw)
    return payload


def _write_json(path: Path, payload: Mapping[str, Any]) -> None:
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def update_metrics(
    metrics_path: Path,
    *,
    increments: dict[str, int] | None = None,
    gauges: dict[str, int | float] | None = None,
) -> None:
    payload = _read_metrics(metrics_path)

    if increments:
        for key, value in increments.items():
            payload[key] = int(payload.get(key, 0)) + value

    if gauges:
        for key, value in gauges.items():
            payload[key] = value

    _write_json(metrics_path, payload)


def write_statistics(path: Path, stats: Mapping[str, Any]) -> None:
    """Write a manager statistics snapshot as pretty-printed JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    _write_json(path, dict(stats))


def summarize_refresh_health(payload: Mapping[str, Any]) -> dict[str, int | str]:
    refresh_total = int(payload.get("pairlist_refresh_total") or 0)
    failed_total = int(payload.get("pairlist_refresh_failed_total") or 0)
    skipped_total = int(payload.get("pairlist_refresh_skipped_total") or 0)

    if refresh_total == 0 and (failed_total > 0 or skipped_total > 0):
        health = "no_data"
    elif failed_total > 0 or skipped_total > 0:
        health = "degraded"
    else:
        health = "ok"

    return {
        "health": health,
        "pairlist_refresh_total": refresh_total,
        "pairlist_refresh_failed_total": failed_total,
        "pairlist_refresh_skipped_total": skipped_total,
    }
