# src/formbridge/core/config.py
"""
Configuration schema and loading for formbridge.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


class RedisSettings(BaseModel):
    """Shared key-value store connection.

    When url is unset every instance keeps its state in process memory.

    Example YAML:
        redis:
          url: ${REDIS_URL:-}
          operation_timeout_ms: 800
    """

    model_config = {"frozen": True}

    url: str | None = Field(default=None, description="Redis connection URL (redis:// or rediss://)")
    operation_timeout_ms: int = Field(default=800, gt=0, description="Upper bound for any single Redis call")

    @field_validator("url")
    @classmethod
    def blank_url_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class RecordStoreSettings(BaseModel):
    """External record store (Airtable-compatible REST API).

    Example YAML:
        record_store:
          api_key: ${AIRTABLE_PAT}
          base_id: ${AIRTABLE_BASE_ID}
          primary_table: Inventory
    """

    model_config = {"frozen": True}

    api_key: str | None = Field(default=None, description="Personal access token")
    base_id: str | None = Field(default=None, description="Base identifier")
    api_url: str = Field(default="https://api.airtable.com/v0", description="Records API root")
    meta_url: str = Field(default="https://api.airtable.com/v0/meta", description="Metadata API root")
    primary_table: str = Field(default="Inventory", description="Table that receives form submissions")
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout per request")
    max_attempts: int = Field(default=3, ge=1, description="Attempts per request on 429/5xx/transport errors")
    max_records: int = Field(default=100, gt=0, le=100, description="maxRecords sent on lookup list calls")


class LookupSettings(BaseModel):
    """Linked-record lookup caching."""

    model_config = {"frozen": True}

    cache_prefix: str = Field(default="formbridge:linked-search:v1:", description="Key prefix for cached result lists")
    cache_ttl_ms: int = Field(default=45_000, gt=0, description="TTL for cached results of a non-empty query")
    empty_query_cache_ttl_ms: int = Field(default=120_000, gt=0, description="TTL for cached results of the empty query")
    snapshot_ttl_ms: int = Field(
        default=7 * 24 * 60 * 60 * 1000,
        gt=0,
        description="TTL of the last-known-good snapshot served when the store fails",
    )
    resolved_config_ttl_ms: int = Field(
        default=10 * 60 * 1000,
        gt=0,
        description="How long a lookup config resolved against the live schema is reused",
    )


class WindowLimit(BaseModel):
    """Fixed-window limit for one scope."""

    model_config = {"frozen": True}

    window_ms: int = Field(gt=0, description="Window length in milliseconds")
    max_requests: int = Field(gt=0, description="Requests allowed per window")


def _default_scopes() -> dict[str, WindowLimit]:
    return {
        "search": WindowLimit(window_ms=60_000, max_requests=120),
        "submit": WindowLimit(window_ms=60_000, max_requests=10),
    }


class RateLimitSettings(BaseModel):
    """Per-scope fixed-window limits keyed by client identity.

    Example YAML:
        rate_limit:
          enabled: true
          scopes:
            search:
              window_ms: 60000
              max_requests: 120
    """

    model_config = {"frozen": True}

    enabled: bool = Field(default=True, description="Enable rate limiting")
    key_prefix: str = Field(default="formbridge:rate-limit:", description="KV key prefix for window counters")
    scopes: dict[str, WindowLimit] = Field(default_factory=_default_scopes, description="Limits per named scope")

    def get_scope(self, scope: str) -> WindowLimit:
        """Look up a scope's limit.

        Raises:
            KeyError: If the scope is not configured
        """
        return self.scopes[scope]


class IdempotencySettings(BaseModel):
    model_config = {"frozen": True}

    key_prefix: str = Field(default="formbridge:idempotency:", description="KV key prefix for ledger entries")
    ttl_ms: int = Field(default=24 * 60 * 60 * 1000, gt=0, description="How long a stored response can be replayed")


class SyncSettings(BaseModel):
    """Schema sync behaviour and fuzzy matching thresholds."""

    model_config = {"frozen": True}

    auto_sync_enabled: bool = Field(default=True, description="Run self-throttled background sync on traffic")
    auto_sync_interval_minutes: int = Field(default=60, gt=0, description="Minimum minutes between auto syncs")
    fuzzy_min_score: float = Field(default=0.72, ge=0.0, le=1.0, description="Minimum Jaccard score for a fuzzy suggestion")
    fuzzy_min_gap: float = Field(default=0.18, ge=0.0, le=1.0, description="Required lead over the runner-up score")
    config_key: str = Field(default="formbridge:runtime-admin-config:v1", description="KV key of the override document")


class TelemetrySettings(BaseModel):
    model_config = {"frozen": True}

    enabled: bool = Field(default=True, description="Emit operational telemetry events")
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0, description="Fraction of info events emitted")


class FormBridgeSettings(BaseModel):
    """Top-level settings."""

    model_config = {"frozen": True}

    redis: RedisSettings = Field(default_factory=RedisSettings)
    record_store: RecordStoreSettings = Field(default_factory=RecordStoreSettings)
    lookup: LookupSettings = Field(default_factory=LookupSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    idempotency: IdempotencySettings = Field(default_factory=IdempotencySettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)  # None if no default specified
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (will likely cause error)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path | None = None) -> FormBridgeSettings:
    """Load settings from an optional YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (FORMBRIDGE_*) - highest priority
    2. Config file (settings.yaml), when given
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: FORMBRIDGE_REDIS__URL for nested keys.

    Args:
        config_path: Path to YAML configuration file, or None for env-only

    Returns:
        Validated FormBridgeSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="FORMBRIDGE",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; filter out its own bookkeeping
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    raw_config = _expand_env_vars(raw_config)

    return FormBridgeSettings(**raw_config)
