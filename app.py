#!/usr/bin/env python3
"""
Island Pulse - Main Application Entry Point.

============================================================
COMMANDS
============================================================
    python app.py serve [--host H] [--port P]
        Run the HTTP API (uvicorn)

    python app.py fetch <domain> [--island I] [--category C] [--limit N]
        Aggregate one domain once and print the result as JSON
        (weather, surf, tides, news, events)

    python app.py briefing [--island I] [--dry-run] [--to EMAIL ...]
        Render (dry run) or send the daily briefing

    python app.py status [--refresh]
        Print source health; --refresh fetches every domain first

Configuration comes from the environment (a .env file is
honoured); see core/config.py.
============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

import aiohttp

from core.config import AppConfig
from core.constants import SYSTEM_VERSION
from data_sources.payloads import EventCategory, Island, NewsCategory
from feeds.container import Services, build_services


DOMAINS = ["weather", "surf", "tides", "news", "events"]

LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="island-pulse",
        description="Resilient Hawaiian islands dashboard aggregator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 8080
  %(prog)s fetch weather --island maui
  %(prog)s fetch news --category weather --limit 5
  %(prog)s briefing --island kauai --dry-run
  %(prog)s status --refresh
        """,
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None, help="Bind address (default: API_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: API_PORT)")

    fetch = commands.add_parser("fetch", help="Aggregate one domain and print JSON")
    fetch.add_argument("domain", choices=DOMAINS)
    fetch.add_argument("--island", type=str, default=None)
    fetch.add_argument("--category", type=str, default=None)
    fetch.add_argument("--days", type=int, default=7, help="Events look-ahead in days")
    fetch.add_argument("--limit", type=int, default=20)

    briefing = commands.add_parser("briefing", help="Render or send the daily briefing")
    briefing.add_argument("--island", type=str, default="oahu")
    briefing.add_argument("--dry-run", action="store_true", help="Print the briefing instead of sending")
    briefing.add_argument("--to", nargs="*", default=[], metavar="EMAIL", help="Subscribe these addresses first")

    status = commands.add_parser("status", help="Print source health")
    status.add_argument("--refresh", action="store_true", help="Fetch every domain before reporting")

    return parser


def validate_args(args: argparse.Namespace) -> List[str]:
    """Validate parsed arguments, returning error messages."""
    errors = []

    island = getattr(args, "island", None)
    if island:
        try:
            Island.parse(island)
        except ValueError as e:
            errors.append(str(e))

    if args.command == "fetch":
        if args.limit < 1:
            errors.append("--limit must be positive")
        if args.days < 0 or args.days > 90:
            errors.append("--days must be between 0 and 90")
        if args.category:
            enum = NewsCategory if args.domain == "news" else EventCategory
            if args.domain not in ("news", "events"):
                errors.append(f"--category is not supported for {args.domain}")
            elif args.category.lower() not in {c.value for c in enum}:
                errors.append(f"Invalid {args.domain} category: {args.category}")

    return errors


def setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


# ============================================================
# COMMANDS
# ============================================================

async def run_fetch(services: Services, args: argparse.Namespace) -> int:
    island = Island.parse(args.island) if args.island else None

    if args.domain == "weather":
        result = await services.weather.get_weather(island or Island.OAHU)
    elif args.domain == "surf":
        result = await services.surf.get_spots(island or Island.OAHU)
    elif args.domain == "tides":
        result = await services.surf.get_tides(island or Island.OAHU)
    elif args.domain == "news":
        category = NewsCategory(args.category.lower()) if args.category else None
        result = await services.news.get_latest(category, limit=args.limit)
    else:
        category = EventCategory(args.category.lower()) if args.category else None
        result = await services.events.get_events(island, category, days_ahead=args.days, limit=args.limit)

    print_json(result.to_dict())
    return 0


async def run_briefing(services: Services, args: argparse.Namespace) -> int:
    island = Island.parse(args.island)

    if args.dry_run:
        template = await services.dispatcher.preview(island)
        print(template.subject)
        print()
        print(template.text)
        return 0

    for email in args.to:
        result = services.subscribers.subscribe(email, island)
        if not result.success:
            print(f"Skipping {email}: {result.message}", file=sys.stderr)

    report = await services.dispatcher.send_daily_briefing()
    print_json(report.to_dict())
    return 0 if report.failed == 0 else 1


async def run_status(services: Services, args: argparse.Namespace) -> int:
    if args.refresh:
        await asyncio.gather(
            services.weather.get_weather(Island.OAHU),
            services.surf.get_report(Island.OAHU),
            services.news.get_latest(),
            services.events.get_events(),
        )

    report = services.health_report()
    print_json(report)
    return 0 if report["overall"] != "unhealthy" else 1


async def run_command(config: AppConfig, args: argparse.Namespace) -> int:
    """Run one command with a shared HTTP session."""
    logger = logging.getLogger(__name__)

    async with aiohttp.ClientSession() as session:
        services = build_services(config, session=session)
        try:
            if args.command == "fetch":
                return await run_fetch(services, args)
            if args.command == "briefing":
                return await run_briefing(services, args)
            return await run_status(services, args)
        except Exception as e:
            logger.error(f"Fatal error: {e}", exc_info=True)
            return 1
        finally:
            await services.close()


def run_server(config: AppConfig, args: argparse.Namespace) -> int:
    import uvicorn

    from dashboard.api import build_app

    host = args.host or config.api_host
    port = args.port or config.api_port
    logging.getLogger(__name__).info(f"Starting Island Pulse API {SYSTEM_VERSION} on {host}:{port}")
    uvicorn.run(build_app(config), host=host, port=port, log_level=config.log_level.lower())
    return 0


# ============================================================
# MAIN FUNCTION
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 2

    config = AppConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level
    setup_logging(config.log_level)

    if args.command == "serve":
        return run_server(config, args)

    try:
        return asyncio.run(run_command(config, args))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
