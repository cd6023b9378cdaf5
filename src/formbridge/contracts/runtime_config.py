"""Persisted runtime admin configuration.

Only overrides are stored. A key absent from mapping_overrides or
options_overrides means "use the compiled-in baseline".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

RUNTIME_CONFIG_VERSION = 1


@dataclass(frozen=True, slots=True)
class RuntimeAdminConfig:
    """Sparse override document.

    Timestamps are ISO-8601 UTC strings.
    """

    updated_at: str
    mapping_overrides: dict[str, str] = field(default_factory=dict)
    options_overrides: dict[str, list[str]] = field(default_factory=dict)
    last_manual_sync_at: str | None = None
    last_auto_sync_at: str | None = None
    version: int = RUNTIME_CONFIG_VERSION

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "mapping_overrides": dict(self.mapping_overrides),
            "options_overrides": {k: list(v) for k, v in self.options_overrides.items()},
            "updated_at": self.updated_at,
        }
        if self.last_manual_sync_at is not None:
            data["last_manual_sync_at"] = self.last_manual_sync_at
        if self.last_auto_sync_at is not None:
            data["last_auto_sync_at"] = self.last_auto_sync_at
        return data
