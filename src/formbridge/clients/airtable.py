# src/formbridge/clients/airtable.py
"""Airtable REST client.

Implements RecordStoreClient over httpx. 429, 5xx and transport failures are
retried with exponential backoff and jitter (tenacity); every other failure
is raised immediately as RecordStoreError carrying the status code and the
store's error type so callers can classify it.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from formbridge.clients.protocols import CreatedRecord, RawRecord, RecordSort
from formbridge.contracts.errors import RecordStoreConfigError, RecordStoreError
from formbridge.contracts.schema import ExternalBaseSchema
from formbridge.core.config import RecordStoreSettings

logger = structlog.get_logger(__name__)

_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Placeholder shipped in example env files
_PLACEHOLDER_TOKENS = frozenset({"your_pat_here"})


def is_retryable(exc: BaseException) -> bool:
    """Transient failures worth another attempt: throttling, 5xx, transport."""
    if not isinstance(exc, RecordStoreError) or isinstance(exc, RecordStoreConfigError):
        return False
    if exc.status_code is None:
        return exc.error_type in ("TIMEOUT", "TRANSPORT")
    return exc.status_code in _RETRYABLE_STATUS_CODES


def _error_type(body: Any) -> str | None:
    if isinstance(body, Mapping):
        error = body.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("type"), str):
            return str(error["type"])
        if isinstance(error, str):
            return error
    return None


class AirtableClient:
    """Async Airtable client.

    Example:
        client = AirtableClient(settings.record_store)
        schema = await client.fetch_schema()
        records = await client.list_records("Sellers", fields=["Seller"], max_records=100)
        await client.aclose()
    """

    def __init__(
        self,
        settings: RecordStoreSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        wait_initial: float = 0.25,
        wait_max: float = 4.0,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=settings.timeout_seconds)
        self._wait_initial = wait_initial
        self._wait_max = wait_max

    def _credentials(self) -> tuple[str, str]:
        api_key = self._settings.api_key
        if not api_key or api_key in _PLACEHOLDER_TOKENS:
            raise RecordStoreConfigError("AIRTABLE_PAT is not configured", error_type="CONFIG_MISSING")
        if not self._settings.base_id:
            raise RecordStoreConfigError("AIRTABLE_BASE_ID is not configured", error_type="CONFIG_MISSING")
        return api_key, self._settings.base_id

    async def _send(self, operation: str, method: str, url: str, **kwargs: Any) -> Any:
        """Send one request; map failures to RecordStoreError."""
        api_key, _ = self._credentials()
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        try:
            response = await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise RecordStoreError(f"Airtable {operation} timed out", error_type="TIMEOUT") from exc
        except httpx.TransportError as exc:
            raise RecordStoreError(f"Airtable {operation} transport error: {exc}", error_type="TRANSPORT") from exc

        if response.is_success:
            return response.json()

        try:
            body: Any = response.json()
        except ValueError:
            body = {}
        raise RecordStoreError(
            f"Airtable {operation} failed ({response.status_code}): {json.dumps(body)}",
            status_code=response.status_code,
            error_type=_error_type(body),
            body=body,
        )

    def wait_strategy(self) -> wait_exponential_jitter:
        """Backoff between retried requests: wait_initial doubling per attempt, capped at wait_max."""
        return wait_exponential_jitter(multiplier=self._wait_initial, max=self._wait_max, jitter=self._wait_initial)

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=self.wait_strategy(),
            retry=retry_if_exception(is_retryable),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.debug("airtable.retry", operation=operation, attempt=attempt.retry_state.attempt_number)
                return await self._send(operation, method, url, **kwargs)
        raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover

    def _table_url(self, table: str) -> str:
        _, base_id = self._credentials()
        return f"{self._settings.api_url}/{base_id}/{quote(table, safe='')}"

    async def fetch_schema(self) -> ExternalBaseSchema:
        _, base_id = self._credentials()
        data = await self._request("metadata fetch", "GET", f"{self._settings.meta_url}/bases/{base_id}/tables")
        return ExternalBaseSchema.from_dict(data)

    async def list_records(
        self,
        table: str,
        *,
        fields: Sequence[str] | None = None,
        max_records: int = 100,
        filter_formula: str | None = None,
        sort: RecordSort | None = None,
    ) -> list[RawRecord]:
        params: list[tuple[str, str]] = []
        for name in fields or ():
            params.append(("fields[]", name))
        if max_records:
            params.append(("maxRecords", str(max_records)))
        if filter_formula:
            params.append(("filterByFormula", filter_formula))
        if sort is not None:
            params.append(("sort[0][field]", sort.field))
            params.append(("sort[0][direction]", str(sort.direction)))

        data = await self._request("list", "GET", self._table_url(table), params=params)
        records = data.get("records", []) if isinstance(data, Mapping) else []
        return [
            RawRecord(id=str(raw["id"]), fields=dict(raw.get("fields") or {}))
            for raw in records
            if isinstance(raw, Mapping) and "id" in raw
        ]

    async def create_record(self, table: str, fields: Mapping[str, Any]) -> CreatedRecord:
        data = await self._request("create", "POST", self._table_url(table), json={"fields": dict(fields)})
        return CreatedRecord(id=str(data["id"]))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
