"""Root test configuration."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Union

import httpx
import pytest
import structlog

from vmnative.client import NativeClient

Handler = Callable[[httpx.Request], Union[httpx.Response, Awaitable[httpx.Response]]]

SRC_ADDR = "http://vmsource:8428"


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def mock_client() -> Callable[..., NativeClient]:
    """Build a NativeClient whose transport is served by a handler function."""

    def factory(handler: Handler, addr: str = SRC_ADDR, **kwargs) -> NativeClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return NativeClient(addr, http_client=http_client, **kwargs)

    return factory
