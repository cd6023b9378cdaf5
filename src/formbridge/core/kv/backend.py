"""Shared types for key-value backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Values stored in the KV primitive must round-trip through JSON.
JSONValue = Any


@dataclass(frozen=True, slots=True)
class WindowCount:
    """Result of incrementing a fixed-window counter.

    Attributes:
        count: Counter value after this increment
        retry_after_ms: Milliseconds until the current window expires
    """

    count: int
    retry_after_ms: int


def now_ms_from(clock_seconds: float) -> int:
    return int(clock_seconds * 1000)
