# src/formbridge/core/kv/memory.py
"""In-process key-value backend with lazy expiry.

State is per process: two instances behind a load balancer do not share
counters or cached values. That is the accepted degradation when Redis is
absent or has failed.
"""

from __future__ import annotations

import copy
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from formbridge.core.kv.backend import JSONValue, WindowCount, now_ms_from


@dataclass(slots=True)
class _Entry:
    value: JSONValue
    expires_at_ms: int | None


class MemoryBackend:
    """Dict-backed store. Expired entries are pruned when read.

    Thread-safe: a single lock guards every read-modify-write so window
    counter increments are atomic within the process.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> int:
        return now_ms_from(self._clock())

    def _live_entry(self, key: str, now_ms: int) -> _Entry | None:
        """Return the entry for key, pruning it first if it has expired.

        Caller must hold the lock.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at_ms is not None and entry.expires_at_ms <= now_ms:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> JSONValue | None:
        with self._lock:
            entry = self._live_entry(key, self._now_ms())
            if entry is None:
                return None
            # Callers must not be able to mutate stored state through the result
            return copy.deepcopy(entry.value)

    def set(self, key: str, value: JSONValue, ttl_ms: int | None = None) -> None:
        with self._lock:
            expires_at_ms = self._now_ms() + ttl_ms if ttl_ms is not None and ttl_ms > 0 else None
            self._entries[key] = _Entry(value=copy.deepcopy(value), expires_at_ms=expires_at_ms)

    def increment_window_counter(self, key: str, window_ms: int) -> WindowCount:
        """Increment the counter for key, starting a new window if none is live.

        An increment inside a live window keeps that window's expiry.
        """
        with self._lock:
            now_ms = self._now_ms()
            entry = self._live_entry(key, now_ms)
            if entry is None or not isinstance(entry.value, int) or isinstance(entry.value, bool):
                self._entries[key] = _Entry(value=1, expires_at_ms=now_ms + window_ms)
                return WindowCount(count=1, retry_after_ms=window_ms)

            entry.value += 1
            if entry.expires_at_ms is None:
                entry.expires_at_ms = now_ms + window_ms
            return WindowCount(count=entry.value, retry_after_ms=max(0, entry.expires_at_ms - now_ms))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
