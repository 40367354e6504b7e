"""
Client for the VictoriaMetrics native transfer protocol.
"""

from vmnative.auth import AuthConfig
from vmnative.client import ExploreResult, NativeClient, RangeFailure
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
from vmnative.migrate import MigrationStats, NativeMigrator

__version__ = "0.1.0"

__all__ = [
    "AuthConfig",
    "Chunk",
    "CloseError",
    "DecodeError",
    "ExploreResult",
    "Filter",
    "MigrationStats",
    "NativeClient",
    "NativeClientError",
    "NativeMigrator",
    "RangeFailure",
    "RangeSplitError",
    "TimeParseError",
    "TransportError",
    "UnexpectedStatusError",
]
