"""
Command line entry point.

Usage:
    vmnative explore --src-addr http://vm:8428 --match '{job="node"}' --start 2024-01-01
    vmnative tenants --src-addr http://vmselect:8481
    vmnative migrate --src-addr http://old:8428 --dst-addr http://new:8428 --start 2024-01-01
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from vmnative.auth import AuthConfig
from vmnative.cli.ux import console, error, format_bytes, info, success, warning
from vmnative.client import NativeClient
from vmnative.errors import NativeClientError
from vmnative.filter import Chunk, Filter
from vmnative.logging import LOG_FORMATS, configure_logging
from vmnative.migrate import NativeMigrator
from vmnative.settings import Settings, get_settings

DEFAULT_MATCH = '{__name__!=""}'


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--match", default=DEFAULT_MATCH, help="Series selector (default: all series)")
    parser.add_argument("--start", default=None, help="Start of the time range (RFC3339, partial date or unix time)")
    parser.add_argument("--end", default=None, help="End of the time range (default: now)")
    parser.add_argument(
        "--chunk",
        default="",
        choices=[c.value for c in Chunk],
        help="Split the time range into chunks of this size",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vmnative", description="VictoriaMetrics native protocol tooling")
    parser.add_argument("--log-level", default=None, help="Log level (default: VMNATIVE_LOG_LEVEL or INFO)")
    parser.add_argument(
        "--log-format",
        default=None,
        choices=LOG_FORMATS,
        help="Log output format (default: VMNATIVE_LOG_FORMAT or console)",
    )
    subparsers = parser.add_subparsers(dest="command")

    explore_parser = subparsers.add_parser("explore", help="List metric names on the source")
    explore_parser.add_argument("--src-addr", default=None, help="Source address")
    explore_parser.add_argument("--tenant", default="", help="Tenant ID (default: global)")
    explore_parser.add_argument("--concurrency", type=int, default=None, help="Maximum concurrent requests")
    _add_filter_arguments(explore_parser)

    tenants_parser = subparsers.add_parser("tenants", help="List tenants on the source")
    tenants_parser.add_argument("--src-addr", default=None, help="Source address")
    tenants_parser.add_argument("--start", default=None, help="Start of the time range")
    tenants_parser.add_argument("--end", default=None, help="End of the time range")

    migrate_parser = subparsers.add_parser("migrate", help="Copy series from source to destination")
    migrate_parser.add_argument("--src-addr", default=None, help="Source address")
    migrate_parser.add_argument("--dst-addr", default=None, help="Destination address")
    migrate_parser.add_argument("--tenant", default="", help="Tenant ID (default: global)")
    migrate_parser.add_argument(
        "--all-tenants",
        action="store_true",
        help="Discover tenants on the source and migrate each of them",
    )
    migrate_parser.add_argument("--concurrency", type=int, default=None, help="Maximum concurrent transfers")
    migrate_parser.add_argument(
        "--extra-label",
        action="append",
        default=None,
        dest="extra_labels",
        help="Label (name=value) added to every imported series; repeatable",
    )
    migrate_parser.add_argument(
        "--disable-per-metric-requests",
        action="store_true",
        help="Transfer the whole selector at once instead of one request per metric",
    )
    _add_filter_arguments(migrate_parser)

    return parser


def _source(args: argparse.Namespace, settings: Settings, concurrency: int | None = None) -> NativeClient:
    return NativeClient(
        args.src_addr or settings.src_addr,
        auth=AuthConfig.from_settings(settings, "src"),
        timeout=settings.http_timeout,
        concurrency=concurrency,
    )


def _destination(args: argparse.Namespace, settings: Settings) -> NativeClient:
    return NativeClient(
        args.dst_addr or settings.dst_addr,
        auth=AuthConfig.from_settings(settings, "dst"),
        extra_labels=args.extra_labels or settings.dst_extra_labels,
        timeout=settings.http_timeout,
    )


async def explore_command(args: argparse.Namespace, settings: Settings) -> int:
    f = Filter(match=args.match, time_start=args.start, time_end=args.end, chunk=Chunk(args.chunk))
    concurrency = args.concurrency or settings.explore_concurrency

    async with _source(args, settings, concurrency) as src:
        result = await src.explore_detailed(f, args.tenant)

    for name in sorted(set(result.metric_names)):
        console.print(name, soft_wrap=True, markup=False, highlight=False)

    if not result.complete:
        warning(f"{len(result.failures)} time range(s) failed; the metric list may be incomplete")
    return 0


async def tenants_command(args: argparse.Namespace, settings: Settings) -> int:
    f = Filter(match=DEFAULT_MATCH, time_start=args.start, time_end=args.end)

    async with _source(args, settings) as src:
        tenants = await src.get_source_tenants(f)

    for tenant in tenants:
        console.print(tenant, soft_wrap=True, markup=False, highlight=False)
    return 0


async def migrate_command(args: argparse.Namespace, settings: Settings) -> int:
    f = Filter(match=args.match, time_start=args.start, time_end=args.end, chunk=Chunk(args.chunk))

    async with _source(args, settings) as src, _destination(args, settings) as dst:
        migrator = NativeMigrator(
            src,
            dst,
            f,
            concurrency=args.concurrency or settings.migrate_concurrency,
            disable_per_metric_requests=args.disable_per_metric_requests,
        )
        if args.all_tenants:
            stats = await migrator.run_all_tenants()
            info(f"Migrated {stats.tenants} tenant(s)")
        else:
            stats = await migrator.run(args.tenant)

    success(
        f"Transferred {format_bytes(stats.bytes)} in {stats.requests} request(s)"
        f" for {stats.metrics} metric(s)"
    )
    return 0


_COMMANDS = {
    "explore": explore_command,
    "tenants": tenants_command,
    "migrate": migrate_command,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in _COMMANDS:
        parser.print_help()
        return 1

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, args.log_format or settings.log_format)

    try:
        return asyncio.run(_COMMANDS[args.command](args, settings))
    except (NativeClientError, ValueError) as exc:
        error(str(exc))
        return 1


if __name__ == "__main__":  # pragma: no cover - exercised via module entrypoint
    raise SystemExit(main())
