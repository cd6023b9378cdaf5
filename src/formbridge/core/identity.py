"""Client identity for per-caller rate limiting."""

from __future__ import annotations

from collections.abc import Mapping

UNKNOWN_CLIENT = "unknown"

# Checked in order; the first header with a non-empty value wins.
_CLIENT_ADDRESS_HEADERS: tuple[str, ...] = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


def client_id_from_headers(headers: Mapping[str, str] | None) -> str:
    """Derive a stable client identifier from request headers.

    For X-Forwarded-For only the first (client-most) address is used.
    Header names are matched case-insensitively.

    Returns:
        The client address, or "unknown" when no header carries one.
    """
    if not headers:
        return UNKNOWN_CLIENT

    lowered = {name.lower(): value for name, value in headers.items()}
    for header in _CLIENT_ADDRESS_HEADERS:
        value = lowered.get(header)
        if not value:
            continue
        candidate = value.split(",")[0].strip() if header == "x-forwarded-for" else value.strip()
        if candidate:
            return candidate
    return UNKNOWN_CLIENT
