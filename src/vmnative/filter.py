from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Chunk(str, Enum):
    """Chunking granularity hint carried by a filter."""

    NONE = ""
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class Filter:
    """Series selection for explore, export and tenant discovery requests."""

    match: str
    time_start: str | None = None
    time_end: str | None = None
    chunk: Chunk = Chunk.NONE

    def __post_init__(self) -> None:
        if not self.match:
            raise ValueError("filter match expression must not be empty")
        # Normalise plain strings passed from configuration or the CLI
        object.__setattr__(self, "chunk", Chunk(self.chunk or ""))
