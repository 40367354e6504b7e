"""
Native protocol migration between two endpoints.

Explores metric names on the source, then streams each metric's native export
straight into the destination's native import, one transfer per metric and
time range.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from urllib.parse import urlencode

import structlog

from vmnative.client import NativeClient
from vmnative.errors import RangeSplitError, TimeParseError
from vmnative.filter import Chunk, Filter
from vmnative.logging import bind_context
from vmnative.stepper import split_date_range
from vmnative.timeutil import format_rfc3339, parse_time, utcnow

logger = structlog.get_logger()

NATIVE_EXPORT_ADDR = "api/v1/export/native"
NATIVE_IMPORT_ADDR = "api/v1/import/native"


@dataclass
class MigrationStats:
    """Counters accumulated by a migration run."""

    requests: int = 0
    bytes: int = 0
    metrics: int = 0
    tenants: int = 0

    def merge(self, other: MigrationStats) -> None:
        self.requests += other.requests
        self.bytes += other.bytes
        self.metrics += other.metrics
        self.tenants += other.tenants


def export_url(addr: str, tenant_id: str = "") -> str:
    if tenant_id:
        return f"{addr}/select/{tenant_id}/prometheus/{NATIVE_EXPORT_ADDR}"
    return f"{addr}/{NATIVE_EXPORT_ADDR}"


def import_url(addr: str, tenant_id: str = "", extra_labels: list[str] | None = None) -> str:
    url = f"{addr}/{NATIVE_IMPORT_ADDR}"
    if tenant_id:
        url = f"{addr}/insert/{tenant_id}/prometheus/{NATIVE_IMPORT_ADDR}"
    if extra_labels:
        url = f"{url}?{urlencode([('extra_label', label) for label in extra_labels])}"
    return url


def metric_match(name: str) -> str:
    """Selector matching a single metric name."""
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'{{__name__="{escaped}"}}'


class NativeMigrator:
    """
    Copy series from a source to a destination using the native protocol.

    Transfers are not retried: the first failed transfer cancels the others
    and its error is raised.
    """

    def __init__(
        self,
        src: NativeClient,
        dst: NativeClient,
        f: Filter,
        *,
        concurrency: int = 2,
        disable_per_metric_requests: bool = False,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be a positive integer")
        self.src = src
        self.dst = dst
        self.filter = f
        self.concurrency = concurrency
        self.disable_per_metric_requests = disable_per_metric_requests

    async def run(self, tenant_id: str = "") -> MigrationStats:
        """
        Migrate all series matching the filter for one tenant ('' = global).

        Returns:
            MigrationStats for this tenant
        """
        log = bind_context(src=self.src.addr, dst=self.dst.addr, tenant=tenant_id)
        stats = MigrationStats()

        if self.disable_per_metric_requests:
            filters = self._split_filter(self.filter)
        else:
            names = sorted(set(await self.src.explore(self.filter, tenant_id)))
            stats.metrics = len(names)
            log.info("migration_metrics_found", metrics=len(names))
            filters = [
                part
                for name in names
                for part in self._split_filter(replace(self.filter, match=metric_match(name)))
            ]

        src_url = export_url(self.src.addr, tenant_id)
        dst_url = import_url(self.dst.addr, tenant_id, self.dst.extra_labels)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def transfer(part: Filter) -> None:
            async with semaphore:
                transferred = await self.transfer(src_url, dst_url, part)
            stats.bytes += transferred
            stats.requests += 1

        tasks = [asyncio.create_task(transfer(part)) for part in filters]
        try:
            await asyncio.gather(*tasks)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        log.info("migration_completed", requests=stats.requests, bytes=stats.bytes)
        return stats

    async def run_all_tenants(self) -> MigrationStats:
        """Discover tenants on the source and migrate each of them in turn."""
        tenants = await self.src.get_source_tenants(self.filter)
        logger.info("migration_tenants_found", src=self.src.addr, tenants=len(tenants))

        total = MigrationStats(tenants=len(tenants))
        for tenant_id in tenants:
            total.merge(await self.run(tenant_id))
        return total

    async def transfer(self, src_url: str, dst_url: str, f: Filter) -> int:
        """
        Pipe one native export into one native import.

        Returns:
            Number of bytes transferred
        """
        transferred = 0
        response = await self.src.export_pipe(src_url, f)
        try:

            async def body():
                nonlocal transferred
                async for chunk in response.aiter_raw():
                    transferred += len(chunk)
                    yield chunk

            await self.dst.import_pipe(dst_url, body())
        finally:
            await response.aclose()

        logger.debug(
            "transfer_completed",
            match=f.match,
            start=f.time_start,
            end=f.time_end,
            bytes=transferred,
        )
        return transferred

    def _split_filter(self, f: Filter) -> list[Filter]:
        """Split a filter into one filter per chunk of its interval."""
        if f.chunk == Chunk.NONE or not f.time_start:
            return [f]

        try:
            start = parse_time(f.time_start)
            end = parse_time(f.time_end) if f.time_end else utcnow()
        except ValueError as exc:
            raise TimeParseError(f"failed to parse time range for migration: {exc}") from exc

        try:
            ranges = split_date_range(start, end, f.chunk.value)
        except ValueError as exc:
            raise RangeSplitError(f"failed to create date ranges for migration: {exc}") from exc

        return [
            replace(f, time_start=format_rfc3339(range_start), time_end=format_rfc3339(range_end))
            for range_start, range_end in ranges
        ]
