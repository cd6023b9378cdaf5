# src/formbridge/core/idempotency.py
"""Idempotency ledger.

Remembers the response produced for an idempotency key together with a hash
of the request payload that produced it. A retry with the same key and the
same payload replays the stored response; the same key with a different
payload is a conflict. Entries expire by TTL and are never deleted.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from formbridge.contracts.enums import IdempotencyOutcome
from formbridge.core.canonical import stable_hash
from formbridge.core.kv import KeyValueStore

logger = structlog.get_logger(__name__)

DEFAULT_IDEMPOTENCY_TTL_MS = 24 * 60 * 60 * 1000


def hash_payload(payload: str | bytes | Mapping[str, Any]) -> str:
    """SHA-256 hex digest identifying a request payload.

    Raw bodies (str/bytes) are hashed as-is. Mappings are hashed through
    canonical JSON so key order does not matter.
    """
    if isinstance(payload, bytes):
        return hashlib.sha256(payload).hexdigest()
    if isinstance(payload, str):
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return stable_hash(dict(payload))


@dataclass(frozen=True, slots=True)
class IdempotencyEntry:
    payload_hash: str
    response: Any
    status: int
    expires_at_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "payload_hash": self.payload_hash,
            "response": self.response,
            "status": self.status,
            "expires_at_ms": self.expires_at_ms,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IdempotencyEntry:
        return cls(
            payload_hash=str(data["payload_hash"]),
            response=data["response"],
            status=int(data["status"]),
            expires_at_ms=int(data["expires_at_ms"]),
        )


@dataclass(frozen=True, slots=True)
class IdempotencyCheck:
    outcome: IdempotencyOutcome
    entry: IdempotencyEntry | None = None


class IdempotencyLedger:
    """Stores and looks up idempotency entries in the KV primitive."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key_prefix: str = "formbridge:idempotency:",
        default_ttl_ms: int = DEFAULT_IDEMPOTENCY_TTL_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._key_prefix = key_prefix
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def get(self, key: str) -> IdempotencyEntry | None:
        """Return the live entry for key, or None if absent, expired or unreadable."""
        raw = await self._store.get(self._key_prefix + key)
        if not isinstance(raw, Mapping):
            return None
        try:
            entry = IdempotencyEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            logger.warning("idempotency.entry_unreadable", key=key)
            return None
        if entry.expires_at_ms <= self._now_ms():
            return None
        return entry

    async def set(
        self,
        key: str,
        payload_hash: str,
        response: Any,
        status: int,
        ttl_ms: int | None = None,
    ) -> IdempotencyEntry:
        ttl = ttl_ms if ttl_ms is not None else self._default_ttl_ms
        entry = IdempotencyEntry(
            payload_hash=payload_hash,
            response=response,
            status=status,
            expires_at_ms=self._now_ms() + ttl,
        )
        await self._store.set(self._key_prefix + key, entry.to_dict(), ttl)
        return entry

    async def check(self, key: str, payload_hash: str) -> IdempotencyCheck:
        entry = await self.get(key)
        if entry is None:
            return IdempotencyCheck(outcome=IdempotencyOutcome.NEW)
        if entry.payload_hash != payload_hash:
            return IdempotencyCheck(outcome=IdempotencyOutcome.CONFLICT, entry=entry)
        return IdempotencyCheck(outcome=IdempotencyOutcome.REPLAY, entry=entry)
