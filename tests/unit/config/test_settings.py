"""Unit tests for Settings class and get_settings function."""

from pathlib import Path

import pytest

from chronicle.config import get_settings, reload_settings
from chronicle.config.settings import Settings


@pytest.fixture
def config_env(
    mock_toml_files, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch
):
    """Point the loader at the temporary config directory."""
    monkeypatch.setenv("CHRONICLE_CONFIG_DIR", str(test_config_dir))
    monkeypatch.setenv("CHRONICLE_ENV", "test")
    return mock_toml_files


class TestSettings:
    """Tests for Settings model."""

    def test_default_values(self) -> None:
        """Settings has sensible defaults."""
        settings = Settings()
        assert settings.app_name == "chronicle"
        assert settings.debug is False

    def test_audit_defaults(self) -> None:
        """Audit section defaults stop at the first break."""
        audit = Settings().audit
        assert audit.stop_at_first_break is True
        assert audit.verify_batch_size == 500
        assert audit.max_append_retries == 3
        assert audit.default_source == "system"

    def test_storage_defaults(self) -> None:
        """Storage defaults to the in-memory backend."""
        settings = Settings()
        assert settings.storage.audit.backend == "inmemory"
        assert settings.storage.postgres.max_pool_size == 20

    def test_observability_defaults(self) -> None:
        """Observability defaults to redacted JSON logs."""
        settings = Settings()
        assert settings.observability.logging.format == "json"
        assert settings.observability.logging.redact_pii is True


class TestGetSettings:
    """Tests for get_settings function."""

    def test_reads_toml(self, config_env) -> None:
        """get_settings applies TOML values."""
        config_env({"default.toml": "[audit]\nexport_max_rows = 250"})

        settings = get_settings()

        assert isinstance(settings, Settings)
        assert settings.audit.export_max_rows == 250

    def test_settings_cached(self, config_env) -> None:
        """get_settings returns cached instance."""
        config_env({"default.toml": "app_name = 'cached'"})

        assert get_settings() is get_settings()

    def test_reload_settings_clears_cache(self, config_env, test_config_dir: Path) -> None:
        """reload_settings picks up edited files."""
        config_env({"default.toml": "[storage.audit]\nbackend = 'inmemory'"})
        assert get_settings().storage.audit.backend == "inmemory"

        (test_config_dir / "default.toml").write_text("[storage.audit]\nbackend = 'postgres'")

        assert reload_settings().storage.audit.backend == "postgres"


class TestEnvironmentVariableOverrides:
    """Tests for CHRONICLE_* overrides."""

    def test_top_level_override(self, config_env, monkeypatch: pytest.MonkeyPatch) -> None:
        """Top-level values can be overridden with env vars."""
        config_env({"default.toml": "debug = false"})
        monkeypatch.setenv("CHRONICLE_DEBUG", "true")

        assert get_settings().debug is True

    def test_nested_override(self, config_env, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested values use a double underscore."""
        config_env({"default.toml": "[audit]\nstop_at_first_break = true"})
        monkeypatch.setenv("CHRONICLE_AUDIT__STOP_AT_FIRST_BREAK", "false")

        assert get_settings().audit.stop_at_first_break is False

    def test_deeply_nested_override(
        self, config_env, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Deeply nested values can be overridden."""
        config_env({"default.toml": "[storage.audit]\nbackend = 'inmemory'"})
        monkeypatch.setenv("CHRONICLE_STORAGE__AUDIT__BACKEND", "postgres")

        assert get_settings().storage.audit.backend == "postgres"

    def test_invalid_value_rejected(self, config_env, monkeypatch: pytest.MonkeyPatch) -> None:
        """Out-of-range overrides fail validation."""
        config_env({"default.toml": ""})
        monkeypatch.setenv("CHRONICLE_AUDIT__VERIFY_BATCH_SIZE", "0")

        with pytest.raises(ValueError):
            get_settings()
