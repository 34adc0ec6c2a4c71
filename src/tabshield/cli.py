"""tabshield CLI entry point.

Usage: tabshield [-v] [command]

    tabshield check --document https://site.test/ URL [URL ...]
    tabshield rules-count
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from tabshield.background import BackgroundContext
from tabshield.interceptor.pipeline import RequestDetails
from tabshield.settings import RuntimeSettings


def _add_common_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--list", dest="lists", action="append", default=None, metavar="URL",
        help="Filter list URL (repeatable). Default: the stored configuration.",
    )
    p.add_argument(
        "--db", default=None,
        help="sqlite file for configuration and compiled lists (default: $TABSHIELD_DB_PATH, else in-memory)",
    )
    p.add_argument(
        "--timeout", type=float, default=None,
        help="Per-list download timeout in seconds (default: none)",
    )


def _add_check_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "check",
        help="Decide whether requests would be cancelled.",
    )
    p.add_argument("urls", nargs="+", metavar="URL", help="Request URLs to evaluate.")
    p.add_argument(
        "--document", required=True,
        help="URL of the document issuing the requests.",
    )
    p.add_argument(
        "--block-domain", dest="blocked_domains", action="append", default=None,
        metavar="DOMAIN", help="Document hostname to block outright (repeatable).",
    )
    p.add_argument(
        "--tab-id", type=int, default=1,
        help="Tab the requests are attributed to (default: 1)",
    )
    p.add_argument(
        "--disable-protection", action="store_true",
        help="Evaluate with protection switched off.",
    )
    _add_common_options(p)


def _add_rules_count_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "rules-count",
        help="Build the engine and print how many rules it holds.",
    )
    _add_common_options(p)


def _make_context(args: argparse.Namespace) -> BackgroundContext:
    env = RuntimeSettings.from_env()
    settings = RuntimeSettings(
        db_path=args.db or env.db_path,
        poll_interval=env.poll_interval,
        fetch_timeout=args.timeout if args.timeout is not None else env.fetch_timeout,
    )
    return BackgroundContext(settings=settings)


async def _start(context: BackgroundContext, args: argparse.Namespace, **changes) -> None:
    if args.lists is not None:
        changes["list_sources"] = args.lists
    if changes:
        # Persist overrides first so start() builds the engine for them only
        current = context.watcher.load()
        context.watcher.apply(current.with_changes(**changes))
    await context.start(poll=False)
    await context.wait_ready()


async def _run_check(args: argparse.Namespace) -> int:
    context = _make_context(args)
    changes = {}
    if args.blocked_domains is not None:
        changes["blocked_domains"] = args.blocked_domains
    if args.disable_protection:
        changes["protection_enabled"] = False
    try:
        await _start(context, args, **changes)
        blocked = 0
        for url in args.urls:
            verdict = context.pipeline.handle(RequestDetails(url, args.document, args.tab_id))
            if verdict is None:
                continue
            blocked += verdict.cancel
            label = "BLOCK" if verdict.cancel else "ALLOW"
            print(f"{label}  {verdict.reason.name:<20} {url}")
        stats = context.stats.get(args.tab_id)
        print()
        print(
            f"{stats.request_count} request(s), {stats.blocked_count} blocked, "
            f"{stats.third_party_blocked_count} third-party blocked"
        )
    finally:
        await context.stop()
    return 1 if blocked else 0


async def _run_rules_count(args: argparse.Namespace) -> int:
    context = _make_context(args)
    try:
        await _start(context, args)
        print(context.engine_manager.rules_count)
    finally:
        await context.stop()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="tabshield",
        description="Filter-list request blocking with per-tab statistics.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log at DEBUG level.",
    )
    subparsers = parser.add_subparsers(dest="command")

    _add_check_parser(subparsers)
    _add_rules_count_parser(subparsers)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "check":
        sys.exit(asyncio.run(_run_check(args)))
    if args.command == "rules-count":
        sys.exit(asyncio.run(_run_rules_count(args)))
