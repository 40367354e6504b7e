"""
HTTP client for exporting and importing time series via the native protocol.

Implements metric name exploration, tenant discovery and the streaming
export/import endpoints of VictoriaMetrics-compatible storage.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from vmnative.auth import AuthConfig
from vmnative.errors import (
    CloseError,
    DecodeError,
    NativeClientError,
    RangeSplitError,
    TimeParseError,
    TransportError,
    UnexpectedStatusError,
)
from vmnative.filter import Chunk, Filter
from vmnative.stepper import Step, split_date_range
from vmnative.timeutil import format_rfc3339, parse_time, utcnow

logger = structlog.get_logger()

DEFAULT_USER_AGENT = "vmnative/0.1.0"

NATIVE_TENANTS_ADDR = "admin/tenants"
NATIVE_METRIC_NAMES_ADDR = "api/v1/label/__name__/values"

# Exploring below a week is wasteful for a name listing query
_EXPLORE_MIN_CHUNKS = {Chunk.NONE, Chunk.MINUTE, Chunk.HOUR, Chunk.DAY}

# A start of None means the range is unbounded on the left
ExploreRange = tuple[datetime | None, datetime]

_Model = TypeVar("_Model", bound=BaseModel)


class MetricNamesResponse(BaseModel):
    """Response of api/v1/label/__name__/values."""

    status: str = ""
    data: list[str] | None = None


class TenantsResponse(BaseModel):
    """Response of admin/tenants."""

    data: list[str] | None = None


@dataclass(frozen=True)
class RangeFailure:
    """A sub-range whose metric name request failed during explore."""

    range: ExploreRange
    error: NativeClientError


@dataclass
class ExploreResult:
    """Metric names collected by explore, with the sub-ranges that failed."""

    metric_names: list[str] = field(default_factory=list)
    failures: list[RangeFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


def explore_step(chunk: Chunk | str) -> Step:
    """Resolve the step used for exploring; anything finer than a week becomes a week."""
    chunk = Chunk(chunk or "")
    if chunk in _EXPLORE_MIN_CHUNKS:
        return Step.WEEK
    return Step(chunk.value)


class NativeClient:
    """
    Client for a single VictoriaMetrics endpoint speaking the native protocol.

    The underlying ``httpx.AsyncClient`` and the auth config are shared by all
    concurrent requests issued by one client and are never mutated.
    """

    def __init__(
        self,
        addr: str,
        *,
        auth: AuthConfig | None = None,
        extra_labels: list[str] | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 300.0,
        concurrency: int | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        """
        Initialize native client.

        Args:
            addr: Base address of the endpoint (e.g. 'http://victoria:8428')
            auth: Credentials injected into every request
            extra_labels: Labels (``name=value``) added to imported series
            http_client: Transport to use; a new one is created when omitted
            timeout: Request timeout in seconds for an owned transport
            concurrency: Maximum in-flight explore requests (None = unbounded)
            user_agent: User agent string
        """
        if concurrency is not None and concurrency < 1:
            raise ValueError("concurrency must be a positive integer")

        self.addr = addr.rstrip("/")
        self.auth = auth
        self.extra_labels = list(extra_labels or [])
        self._concurrency = concurrency
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> NativeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def explore(self, f: Filter, tenant_id: str = "") -> list[str]:
        """
        Find metric names matching the filter via api/v1/label/__name__/values.

        The interval is split into sub-ranges (at least a week long) that are
        queried concurrently. Failed sub-ranges are logged and skipped, so the
        result may be incomplete without any error being raised; use
        ``explore_detailed`` to see which ranges failed.

        Args:
            f: Filter with match expression and optional time bounds
            tenant_id: Tenant to explore ('' = global)

        Returns:
            Metric names in completion order, neither sorted nor deduplicated

        Raises:
            TimeParseError: If a time bound cannot be parsed
            RangeSplitError: If the interval cannot be partitioned
        """
        result = await self.explore_detailed(f, tenant_id)
        return result.metric_names

    async def explore_detailed(self, f: Filter, tenant_id: str = "") -> ExploreResult:
        """Explore metric names, reporting failed sub-ranges alongside the names."""
        ranges = self.explore_ranges(f)
        semaphore = asyncio.Semaphore(self._concurrency) if self._concurrency else None

        async def run(
            date_range: ExploreRange,
        ) -> tuple[ExploreRange, list[str], NativeClientError | None]:
            try:
                names = await self._explore_range(f, tenant_id, date_range, semaphore)
            except NativeClientError as exc:
                return date_range, [], exc
            return date_range, names, None

        tasks = [asyncio.create_task(run(date_range)) for date_range in ranges]
        result = ExploreResult()
        try:
            for completed in asyncio.as_completed(tasks):
                date_range, names, error = await completed
                if error is not None:
                    result.failures.append(RangeFailure(range=date_range, error=error))
                    logger.warning(
                        "explore_range_failed",
                        addr=self.addr,
                        tenant=tenant_id,
                        start=format_rfc3339(date_range[0]) if date_range[0] else None,
                        end=format_rfc3339(date_range[1]),
                        error=str(error),
                    )
                    continue
                result.metric_names.extend(names)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        logger.info(
            "explore_completed",
            addr=self.addr,
            tenant=tenant_id,
            ranges=len(ranges),
            failed=len(result.failures),
            metric_names=len(result.metric_names),
        )
        return result

    def explore_ranges(self, f: Filter) -> list[ExploreRange]:
        """
        Partition the filter interval into the sub-ranges queried by explore.

        A missing end defaults to now. A missing start yields one range
        unbounded on the left.
        """
        step = explore_step(f.chunk)

        try:
            start = parse_time(f.time_start) if f.time_start else None
        except ValueError as exc:
            raise TimeParseError(f"failed to parse time start for explore metrics: {exc}") from exc
        try:
            end = parse_time(f.time_end) if f.time_end else utcnow()
        except ValueError as exc:
            raise TimeParseError(f"failed to parse time end for explore metrics: {exc}") from exc

        if start is None:
            return [(None, end)]

        try:
            return list(split_date_range(start, end, step))
        except ValueError as exc:
            raise RangeSplitError(f"failed to create date ranges for explore metrics: {exc}") from exc

    async def _explore_range(
        self,
        f: Filter,
        tenant_id: str,
        date_range: ExploreRange,
        semaphore: asyncio.Semaphore | None,
    ) -> list[str]:
        url = f"{self.addr}/{NATIVE_METRIC_NAMES_ADDR}"
        if tenant_id:
            url = f"{self.addr}/select/{tenant_id}/prometheus/{NATIVE_METRIC_NAMES_ADDR}"

        start, end = date_range
        params: dict[str, str] = {}
        if f.time_start and start is not None:
            params["start"] = format_rfc3339(start)
        if f.time_end:
            params["end"] = format_rfc3339(end)
        params["match[]"] = f.match

        async with semaphore if semaphore is not None else contextlib.nullcontext():
            request = self._build("GET", url, params=params)
            response = await self._do(request, httpx.codes.OK)
            decoded = await self._decode(response, MetricNamesResponse, "series")
        return decoded.data or []

    async def get_source_tenants(self, f: Filter) -> list[str]:
        """
        Discover tenants of the source via admin/tenants.

        Time bounds are passed through verbatim. Any failure is raised.
        """
        url = f"{self.addr}/{NATIVE_TENANTS_ADDR}"
        params: dict[str, str] = {}
        if f.time_start:
            params["start"] = f.time_start
        if f.time_end:
            params["end"] = f.time_end

        request = self._build("GET", url, params=params)
        response = await self._do(request, httpx.codes.OK)
        tenants = await self._decode(response, TenantsResponse, "tenants")
        return tenants.data or []

    async def export_pipe(self, url: str, f: Filter) -> httpx.Response:
        """
        Request native data for the filter and return the open response.

        The caller drains the body (``aiter_raw``) and must close the response.
        """
        params = {"match[]": f.match}
        if f.time_start:
            params["start"] = f.time_start
        if f.time_end:
            params["end"] = f.time_end

        request = self._build("GET", url, params=params)
        # disable compression since it is meaningless for native format
        request.headers["Accept-Encoding"] = "identity"

        return await self._do(request, httpx.codes.OK)

    async def import_pipe(self, dst_url: str, reader: AsyncIterable[bytes]) -> None:
        """
        Stream native data from ``reader`` into the destination.

        Raises:
            CloseError: If the response cannot be released after a successful
                import; the data may still have been accepted
        """
        request = self._build("POST", dst_url, content=reader)
        response = await self._do(request, httpx.codes.NO_CONTENT)
        await _close(response, "import")

    def _build(self, method: str, url: str, **kwargs: Any) -> httpx.Request:
        try:
            return self._http.build_request(method, url, **kwargs)
        except httpx.InvalidURL as exc:
            raise TransportError(f"cannot create request to {url}: {exc}") from exc

    async def _do(self, request: httpx.Request, expected_status: int) -> httpx.Response:
        """Send a request and return the open response if the status matches."""
        if self.auth is not None:
            self.auth.set_headers(request, True)

        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise TransportError(
                f"unexpected error when performing request to {request.url}: {exc}"
            ) from exc

        if response.status_code != expected_status:
            try:
                body = await response.aread()
            except httpx.HTTPError as exc:
                raise TransportError(
                    f"failed to read response body for status code {response.status_code}: {exc}"
                ) from exc
            finally:
                await response.aclose()
            raise UnexpectedStatusError(response.status_code, body.decode("utf-8", errors="replace"))

        return response

    async def _decode(self, response: httpx.Response, model: type[_Model], what: str) -> _Model:
        try:
            body = await response.aread()
        except httpx.HTTPError as exc:
            await response.aclose()
            raise TransportError(f"cannot read {what} response body: {exc}") from exc

        try:
            decoded = model.model_validate_json(body)
        except ValidationError as exc:
            await response.aclose()
            raise DecodeError(f"cannot decode {what} response: {exc}") from exc

        await _close(response, what)
        return decoded


async def _close(response: httpx.Response, what: str) -> None:
    try:
        await response.aclose()
    except httpx.HTTPError as exc:
        raise CloseError(f"cannot close {what} response body: {exc}") from exc
