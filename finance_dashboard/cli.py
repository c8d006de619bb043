"""Command-line interface for the finance dashboard.

Usage:
  python -m finance_dashboard.cli sync [--account ID ...] [--namespace NAME]
  python -m finance_dashboard.cli serve [--no-schedule]
  python -m finance_dashboard.cli uncategorized public/data/TXT251030225219.TAB
  python -m finance_dashboard.cli merchants public/data/TXT251030225219.TAB
  python -m finance_dashboard.cli categories public/data/TXT251030225219.TAB

Aggregator credentials are read from GOCARDLESS_SECRET_ID and
GOCARDLESS_SECRET_KEY unless given on the command line.
"""

from __future__ import annotations

import argparse
import json
from typing import List, Optional

from .analytics import category_totals, uncategorized_descriptions, unique_merchants
from .categorizer import categorize_transactions
from .config import DEFAULT_CATEGORY, AppConfig
from .data_loader import load_tab_files
from .logging_setup import configure_logging, get_logger
from .reports import (
    format_category_report,
    format_merchant_report,
    format_uncategorized_report,
    save_json,
    to_json_ready,
)
from .webapp import build_tracker, create_app

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Personal Finance Dashboard")
    p.add_argument("--config", "-c", help="Path to JSON config with rules and settings")
    p.add_argument("--log-level", help="Logging level (default INFO)")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("sync", help="Run one transaction sync and print the status")
    s.add_argument("--secret-id", help="Aggregator secret id")
    s.add_argument("--secret-key", help="Aggregator secret key")
    s.add_argument("--account", "-a", dest="accounts", action="append", default=[], help="Account id (repeatable)")
    s.add_argument("--namespace", help="Store the snapshot under data/accounts/<namespace>")

    v = sub.add_parser("serve", help="Run the web server")
    v.add_argument("--host", default="127.0.0.1")
    v.add_argument("--port", type=int, help="Port (default from PORT or 3002)")
    v.add_argument("--no-schedule", action="store_true", help="Do not start the periodic sync")

    for name, help_text in (
        ("uncategorized", "List descriptions that match no category rule"),
        ("merchants", "List unique merchant names"),
        ("categories", "Total amounts per category"),
    ):
        a = sub.add_parser(name, help=help_text)
        a.add_argument("input", nargs="+", help="ABN AMRO .TAB export(s)")
        a.add_argument("--json", dest="json_out", help="Write results as JSON to path")
        if name == "uncategorized":
            a.add_argument("--limit", type=int, default=50, help="Number of items to show")
    return p.parse_args(argv)


def _cmd_sync(args: argparse.Namespace, cfg: AppConfig) -> int:
    tracker = build_tracker(cfg, args.namespace)
    status = tracker.trigger(
        args.secret_id or cfg.aggregator.secret_id,
        args.secret_key or cfg.aggregator.secret_key,
        args.accounts,
    )
    print(json.dumps(status, indent=2))
    result = status.get("lastResult") or {}
    return 0 if result.get("ok") else 1


def _cmd_serve(args: argparse.Namespace, cfg: AppConfig) -> int:
    app = create_app(args.config, start_scheduler=not args.no_schedule)
    port = args.port or cfg.port
    logger.info("financial-dashboard listening on :%d", port)
    app.run(host=args.host, port=port)
    return 0


def _cmd_analysis(args: argparse.Namespace, cfg: AppConfig) -> int:
    txns = load_tab_files(args.input)
    if args.command == "uncategorized":
        items = uncategorized_descriptions(txns, cfg.rules)
        print(format_uncategorized_report(items, DEFAULT_CATEGORY, args.limit))
        data = to_json_ready(items)
    elif args.command == "merchants":
        merchants = unique_merchants(txns)
        print(format_merchant_report(merchants))
        data = to_json_ready(merchants)
    else:
        categorize_transactions(txns, cfg.rules)
        data = category_totals(txns)
        print(format_category_report(data))

    if args.json_out:
        save_json(data, args.json_out)
        print(f"\nSaved JSON to: {args.json_out}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    cfg = AppConfig.load(args.config)

    if args.command == "sync":
        return _cmd_sync(args, cfg)
    if args.command == "serve":
        return _cmd_serve(args, cfg)
    return _cmd_analysis(args, cfg)


if __name__ == "__main__":
    raise SystemExit(main())
