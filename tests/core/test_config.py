# tests/core/test_config.py
"""Tests for configuration schema and loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError


class TestSettingsModels:
    """Defaults and validation."""

    def test_defaults(self) -> None:
        from formbridge.core.config import FormBridgeSettings

        settings = FormBridgeSettings()
        assert settings.redis.url is None
        assert settings.redis.operation_timeout_ms == 800
        assert settings.record_store.primary_table == "Inventory"
        assert settings.lookup.cache_ttl_ms == 45_000
        assert settings.lookup.empty_query_cache_ttl_ms == 120_000
        assert settings.sync.auto_sync_interval_minutes == 60
        assert settings.sync.fuzzy_min_score == 0.72
        assert settings.sync.fuzzy_min_gap == 0.18
        assert settings.idempotency.ttl_ms == 24 * 60 * 60 * 1000

    def test_settings_are_frozen(self) -> None:
        from formbridge.core.config import RedisSettings

        settings = RedisSettings(url="redis://localhost")
        with pytest.raises(ValidationError):
            settings.url = "redis://other"  # type: ignore[misc]

    def test_blank_redis_url_is_none(self) -> None:
        from formbridge.core.config import RedisSettings

        assert RedisSettings(url="").url is None

    def test_fuzzy_score_bounded(self) -> None:
        from formbridge.core.config import SyncSettings

        with pytest.raises(ValidationError):
            SyncSettings(fuzzy_min_score=1.5)

    def test_max_records_capped_at_store_page_size(self) -> None:
        from formbridge.core.config import RecordStoreSettings

        with pytest.raises(ValidationError):
            RecordStoreSettings(max_records=101)

    def test_window_limit_must_be_positive(self) -> None:
        from formbridge.core.config import WindowLimit

        with pytest.raises(ValidationError):
            WindowLimit(window_ms=0, max_requests=1)


class TestExpandEnvVars:
    def test_expands_set_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from formbridge.core.config import _expand_env_vars

        monkeypatch.setenv("AIRTABLE_PAT", "patABC")
        assert _expand_env_vars({"record_store": {"api_key": "${AIRTABLE_PAT}"}}) == {
            "record_store": {"api_key": "patABC"}
        }

    def test_uses_default_when_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from formbridge.core.config import _expand_env_vars

        monkeypatch.delenv("REDIS_URL", raising=False)
        assert _expand_env_vars({"url": "${REDIS_URL:-}"}) == {"url": ""}

    def test_leaves_unresolvable_reference(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from formbridge.core.config import _expand_env_vars

        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        assert _expand_env_vars({"x": ["${NOT_SET_ANYWHERE}"]}) == {"x": ["${NOT_SET_ANYWHERE}"]}


class TestLoadSettings:
    """Dynaconf loading with environment overrides."""

    def test_load_from_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from formbridge.core.config import load_settings

        monkeypatch.setenv("TEST_BASE_ID", "appFromEnv")
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            """
record_store:
  api_key: patFile
  base_id: ${TEST_BASE_ID}
  primary_table: Listings
sync:
  auto_sync_interval_minutes: 15
rate_limit:
  scopes:
    search:
      window_ms: 1000
      max_requests: 5
"""
        )

        settings = load_settings(config_file)

        assert settings.record_store.api_key == "patFile"
        assert settings.record_store.base_id == "appFromEnv"
        assert settings.record_store.primary_table == "Listings"
        assert settings.sync.auto_sync_interval_minutes == 15
        assert settings.rate_limit.get_scope("search").max_requests == 5

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from formbridge.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("sync:\n  auto_sync_enabled: true\n")
        monkeypatch.setenv("FORMBRIDGE_SYNC__AUTO_SYNC_ENABLED", "false")

        settings = load_settings(config_file)

        assert settings.sync.auto_sync_enabled is False

    def test_env_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from formbridge.core.config import load_settings

        monkeypatch.setenv("FORMBRIDGE_RECORD_STORE__BASE_ID", "appEnvOnly")

        settings = load_settings()

        assert settings.record_store.base_id == "appEnvOnly"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        from formbridge.core.config import load_settings

        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")

    def test_invalid_value_raises_validation_error(self, tmp_path: Path) -> None:
        from formbridge.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("redis:\n  operation_timeout_ms: -5\n")

        with pytest.raises(ValidationError):
            load_settings(config_file)
