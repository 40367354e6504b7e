"""
Error taxonomy for the native protocol client.
"""

from __future__ import annotations


class NativeClientError(RuntimeError):
    """Base class for every error raised by the native client."""


class TransportError(NativeClientError):
    """Raised when a request fails before a response status is observed."""


class UnexpectedStatusError(NativeClientError):
    """Raised when the response status code differs from the expected one."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"unexpected response code {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class DecodeError(NativeClientError):
    """Raised when a response body does not match the expected JSON shape."""


class TimeParseError(NativeClientError):
    """Raised when a filter time bound cannot be parsed."""


class RangeSplitError(NativeClientError):
    """Raised when a time interval cannot be partitioned into ranges."""


class CloseError(NativeClientError):
    """Raised when releasing a response fails after the work completed."""
