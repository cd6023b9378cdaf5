# src/formbridge/submission.py
"""Idempotent, rate-limited form submission to the primary table."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from formbridge.catalog import FieldCatalog
from formbridge.clients.protocols import RecordStoreClient
from formbridge.contracts.enums import IdempotencyOutcome, TelemetryLevel
from formbridge.contracts.errors import RecordStoreConfigError, RecordStoreError
from formbridge.core.idempotency import IdempotencyLedger, hash_payload
from formbridge.core.rate_limit import NoOpLimiter, ScopedLimiter
from formbridge.runtime import RuntimeConfigStore
from formbridge.telemetry import NullTelemetrySink, TelemetrySink

logger = structlog.get_logger(__name__)

SUBMIT_RATE_LIMITED_MESSAGE = "Too many submissions. Please wait a moment and try again."
IDEMPOTENCY_CONFLICT_MESSAGE = "This idempotency key was already used with a different submission."
SUBMIT_FAILED_MESSAGE = "Unable to save your submission right now. Please try again."
SUBMIT_NOT_CONFIGURED_MESSAGE = "Submissions are not configured yet. Please contact an administrator."


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, list | tuple) and len(value) == 0)


def map_form_to_record_fields(
    data: Mapping[str, Any],
    field_map: Mapping[str, str | None],
    catalog: FieldCatalog,
) -> dict[str, Any]:
    """Translate a form payload into external field names.

    Unmapped keys and blank values are skipped. Percent fields are stored as
    fractions; file fields become [{url, filename}] attachment lists.
    """
    fields: dict[str, Any] = {}
    for form_key, external in field_map.items():
        if not external or form_key not in data:
            continue
        value = data[form_key]
        if _is_blank(value):
            continue

        if form_key in catalog.percent_keys and isinstance(value, int | float) and not isinstance(value, bool):
            fields[external] = value / 100
        elif form_key in catalog.file_keys and isinstance(value, list):
            fields[external] = [
                {"url": item["url"], "filename": item.get("name", item.get("filename"))}
                for item in value
                if isinstance(item, Mapping) and "url" in item
            ]
        else:
            fields[external] = value
    return fields


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    """HTTP-shaped result of a submission.

    replayed is True when body/status come verbatim from the idempotency ledger.
    retry_after_ms is set only for rate-limited outcomes.
    """

    status: int
    body: dict[str, Any]
    replayed: bool = False
    retry_after_ms: int | None = None


class SubmissionService:
    def __init__(
        self,
        client: RecordStoreClient,
        runtime: RuntimeConfigStore,
        ledger: IdempotencyLedger,
        limiter: ScopedLimiter | NoOpLimiter,
        *,
        primary_table: str = "Inventory",
        telemetry: TelemetrySink | None = None,
    ) -> None:
        self._client = client
        self._runtime = runtime
        self._ledger = ledger
        self._limiter = limiter
        self._primary_table = primary_table
        self._telemetry = telemetry if telemetry is not None else NullTelemetrySink()

    async def submit(
        self,
        data: Mapping[str, Any],
        *,
        idempotency_key: str | None = None,
        client_id: str,
        raw_body: str | bytes | None = None,
    ) -> SubmissionOutcome:
        """Create one record from a (validated) form payload.

        Args:
            data: Form key -> value
            idempotency_key: Client-chosen key; retries with the same key and
                payload replay the first response
            client_id: Caller identity for rate limiting
            raw_body: Original request body, hashed in place of data when given
        """
        limit = await self._limiter.check(client_id)
        if not limit.allowed:
            self._telemetry.emit(
                "submit.rate_limited",
                {"client_id": client_id, "retry_after_ms": limit.retry_after_ms},
                TelemetryLevel.WARN,
            )
            return SubmissionOutcome(
                status=429,
                body={"error": SUBMIT_RATE_LIMITED_MESSAGE},
                retry_after_ms=limit.retry_after_ms,
            )

        payload_hash = hash_payload(raw_body if raw_body is not None else data)
        if idempotency_key:
            check = await self._ledger.check(idempotency_key, payload_hash)
            if check.outcome == IdempotencyOutcome.CONFLICT:
                return SubmissionOutcome(status=409, body={"error": IDEMPOTENCY_CONFLICT_MESSAGE})
            if check.outcome == IdempotencyOutcome.REPLAY and check.entry is not None:
                return SubmissionOutcome(status=check.entry.status, body=dict(check.entry.response), replayed=True)

        field_map = await self._runtime.get_effective_field_map()
        fields = map_form_to_record_fields(data, field_map, self._runtime.catalog)

        try:
            created = await self._client.create_record(self._primary_table, fields)
        except RecordStoreConfigError as exc:
            logger.error("submit.not_configured", error=str(exc))
            return SubmissionOutcome(status=500, body={"error": SUBMIT_NOT_CONFIGURED_MESSAGE})
        except RecordStoreError as exc:
            logger.error("submit.record_store_failed", status_code=exc.status_code, error=str(exc))
            self._telemetry.emit(
                "submit.error",
                {"client_id": client_id, "status_code": exc.status_code, "message": str(exc)},
                TelemetryLevel.ERROR,
            )
            return SubmissionOutcome(status=502, body={"error": SUBMIT_FAILED_MESSAGE})

        body = {"success": True, "record_id": created.id}
        if idempotency_key:
            await self._ledger.set(idempotency_key, payload_hash, body, 200)
        self._telemetry.emit("submit.success", {"client_id": client_id, "field_count": len(fields)})
        return SubmissionOutcome(status=200, body=body)
