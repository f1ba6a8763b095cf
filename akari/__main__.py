"""Allow running as: python -m akari

Usage:
  python -m akari check-config --require rapidapi store
  python -m akari sentiment "gm, this is bullish" "total rug"
  python -m akari overview
  python -m akari mindshare --window 24h
  python -m akari project <slug>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from akari.config.settings import REQUIREMENTS, AkariConfig, ConfigurationError, get_config, validate_config
from akari.utils.logger import get_logger, setup_logging

logger = get_logger("cli")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def check_config(config: AkariConfig, require: list[str]) -> int:
    try:
        validate_config(config, require=require)
    except ConfigurationError as e:
        logger.error("config_check_failed", missing=e.missing)
        _print_json({"ok": False, "missing": e.missing})
        return 1
    _print_json({"ok": True, "checked": require})
    return 0


async def score_texts(config: AkariConfig, texts: list[str]) -> int:
    from akari.sentiment.scorer import SentimentScorer

    scorer = SentimentScorer.from_config(config)
    try:
        results = [await scorer.analyze_sentiment(text) for text in texts]
    finally:
        await scorer.close()
    _print_json([r.to_dict() for r in results])
    return 0


async def show_overview(config: AkariConfig) -> int:
    from akari.portal.markets import get_chain_flow_summary, get_market_overview
    from akari.utils.db import create_store

    async with create_store(config) as store:
        overview = await get_market_overview(store, config.portal)
        flows = await get_chain_flow_summary(store, config.portal.chain_flow_lookback_hours)
    payload = overview.to_dict()
    payload["chain_flows"] = flows.to_dict()
    _print_json(payload)
    return 0


async def show_mindshare(config: AkariConfig, window_arg: str | None) -> int:
    from akari.portal.common import InvalidInputError
    from akari.portal.sentiment import get_mindshare_leaderboard, parse_mindshare_window
    from akari.utils.db import create_store

    window = parse_mindshare_window(window_arg)
    if isinstance(window, InvalidInputError):
        _print_json(window.to_dict())
        return 2

    async with create_store(config) as store:
        leaderboard = await get_mindshare_leaderboard(store, window)
    if leaderboard is None:
        _print_json({"ok": False, "error": "Failed to fetch mindshare data"})
        return 1
    _print_json(leaderboard.to_dict())
    return 0


async def show_project(config: AkariConfig, slug: str) -> int:
    from akari.portal.sentiment import get_project_detail
    from akari.utils.db import create_store

    async with create_store(config) as store:
        detail = await get_project_detail(store, slug)
    if detail is None:
        _print_json({"ok": False, "error": f"Project not found: {slug}"})
        return 1
    _print_json(detail.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="akari", description="Akari portal data core")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check-config", help="Report missing credentials")
    check.add_argument(
        "--require",
        nargs="+",
        default=["rapidapi", "store"],
        choices=sorted(REQUIREMENTS),
    )

    sentiment = sub.add_parser("sentiment", help="Score texts with the configured backend")
    sentiment.add_argument("texts", nargs="+")

    sub.add_parser("overview", help="Market overview from the read store")

    mindshare = sub.add_parser("mindshare", help="Mindshare leaderboard")
    mindshare.add_argument("--window", default=None)

    project = sub.add_parser("project", help="Project detail page data")
    project.add_argument("slug")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    config = get_config()
    setup_logging(log_level=args.log_level or config.log_level)

    try:
        if args.command == "check-config":
            return check_config(config, args.require)
        if args.command == "sentiment":
            return asyncio.run(score_texts(config, args.texts))
        if args.command == "overview":
            return asyncio.run(show_overview(config))
        if args.command == "mindshare":
            return asyncio.run(show_mindshare(config, args.window))
        return asyncio.run(show_project(config, args.slug))
    except ConfigurationError as e:
        logger.error("configuration_error", missing=e.missing)
        _print_json({"ok": False, "missing": e.missing})
        return 1


if __name__ == "__main__":
    sys.exit(main())
