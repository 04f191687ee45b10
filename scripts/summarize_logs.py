#!/usr/bin/env python3
"""Summarize plugin-maker JSON event logs (moderation bot and API)."""

from __future__ import annotations

import argparse
import json
import math
from collections import Counter, defaultdict
from collections.abc import Iterator
from pathlib import Path
from typing import Any


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize plugin-maker event logs.")
    parser.add_argument("files", nargs="+", help="JSONL log files.")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON.")
    return parser.parse_args()


def _iter_events(paths: list[Path], errors: Counter[str]) -> Iterator[dict[str, Any]]:
    for path in paths:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError:
            errors["unreadable_files"] += 1
            continue
        for raw in text.splitlines():
            if not raw.strip():
                continue
            try:
                event = json.loads(raw)
            except json.JSONDecodeError:
                errors["bad_lines"] += 1
                continue
            if isinstance(event, dict):
                yield event
            else:
                errors["bad_lines"] += 1


def _p95(values: list[int]) -> int | None:
    if not values:
        return None
    ordered = sorted(values)
    return ordered[max(0, math.ceil(0.95 * len(ordered)) - 1)]


def summarize_log_files(paths: list[Path]) -> dict[str, Any]:
    errors: Counter[str] = Counter()
    counters: dict[str, Counter[str]] = defaultdict(Counter)
    route_ms: dict[str, list[int]] = defaultdict(list)
    removed_lines = 0

    for event in _iter_events(paths, errors):
        for key in ("event", "outcome", "error_code", "status_code"):
            if key in event and event[key] is not None:
                counters[key][str(event[key])] += 1

        if event.get("event") == "outcome" and isinstance(event.get("removed_lines"), int):
            removed_lines += event["removed_lines"]

        timing = event.get("timing")
        if isinstance(timing, dict) and isinstance(timing.get("total_ms"), int):
            route_ms[str(event.get("route", "unknown"))].append(timing["total_ms"])

    return {
        "bad_lines": errors["bad_lines"],
        "unreadable_files": errors["unreadable_files"],
        "events": dict(sorted(counters["event"].items())),
        "outcomes": dict(sorted(counters["outcome"].items())),
        "error_codes": dict(sorted(counters["error_code"].items())),
        "status_codes": dict(sorted(counters["status_code"].items())),
        "removed_lines_total": removed_lines,
        "total_ms_p95_by_route": {route: _p95(values) for route, values in sorted(route_ms.items())},
    }


def main() -> None:
    args = _parse_args()
    summary = summarize_log_files([Path(item).expanduser() for item in args.files])

    if args.json:
        print(json.dumps(summary, ensure_ascii=False, indent=2, sort_keys=True))
        return

    print("plugin-maker log summary")
    for key, value in summary.items():
        print(f"{key}={value}")


if __name__ == "__main__":
    main()
