"""Shared test fixtures for the Chronicle test suite."""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from chronicle.audit.context import AuditContext
from chronicle.audit.service import AuditLogService
from chronicle.audit.stores import InMemoryAuditRecordStore
from chronicle.config import get_settings
from chronicle.config.settings import set_toml_config


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Empty config/ directory under tmp_path."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Write TOML layers into test_config_dir.

    Usage:
        mock_toml_files({
            "default.toml": "[audit]\\nverify_batch_size = 50",
            "staging.toml": "[storage.audit]\\nbackend = 'postgres'",
        })
    """

    def _write(files: dict[str, str]) -> None:
        for filename, content in files.items():
            (test_config_dir / filename).write_text(content)

    return _write


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Isolate tests from cached settings and installed TOML layers."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    set_toml_config({})


@pytest.fixture
def audit_store() -> InMemoryAuditRecordStore:
    """Create a fresh in-memory record store."""
    return InMemoryAuditRecordStore()


@pytest.fixture
def audit_service(audit_store: InMemoryAuditRecordStore) -> AuditLogService:
    """Create a service over the in-memory store."""
    return AuditLogService(audit_store)


@pytest.fixture
def admin_context() -> AuditContext:
    """Context holding every audit permission."""
    return AuditContext.admin("auditor-1")
