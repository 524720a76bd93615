"""
Run a Facebook insights stream from CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from fb_insights.config import get_optional_str_env
from fb_insights.connectors import InsightStreamError
from fb_insights.domain import ProgressEvent
from fb_insights.schemas import InsightStreamOptions
from fb_insights.services import FacebookInsightStream, build_export, collect_all, write_csv


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Read Facebook page/app insights as a date-indexed table.")
    parser.add_argument("--node", choices=("page", "app"), default="page", help="Node kind to read.")
    parser.add_argument(
        "--token",
        default=None,
        help="Graph API access token (defaults to FACEBOOK_ACCESS_TOKEN).",
    )
    parser.add_argument(
        "--metric",
        dest="metrics",
        action="append",
        default=[],
        help="Metric name; repeat for several metrics.",
    )
    parser.add_argument(
        "--item",
        dest="items",
        action="append",
        default=[],
        help="Page or app id; repeat for several items.",
    )
    parser.add_argument("--period", default="day", help="Aggregation period (day, week, days_28, ...).")
    parser.add_argument("--pastdays", type=int, default=30, help="Lookback window in days.")
    parser.add_argument("--format", dest="output_format", choices=("json", "csv"), default="json")
    parser.add_argument("--verbose", action="store_true", help="Log every Graph API request.")
    return parser


def _print_progress(event: ProgressEvent) -> None:
    print(f"[{event.loaded}/{event.total}] {event.message}", file=sys.stderr)


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        options = InsightStreamOptions(
            node=args.node,
            token=args.token or get_optional_str_env("FACEBOOK_ACCESS_TOKEN") or "",
            metrics=args.metrics,
            period=args.period,
            pastdays=args.pastdays,
            item_list=args.items,
        )
    except ValidationError as exc:
        print(f"Invalid options: {exc}", file=sys.stderr)
        return 2

    stream = FacebookInsightStream(options)
    stream.on("progress", _print_progress)

    try:
        rows = asyncio.run(collect_all(stream))
    except InsightStreamError as exc:
        print(f"Insights stream failed: {exc}", file=sys.stderr)
        return 1

    if args.output_format == "csv":
        write_csv(build_export(rows), sys.stdout)
    else:
        print(json.dumps(rows, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
