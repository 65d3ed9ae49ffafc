"""
Tests for environment-driven configuration and the error taxonomy.
"""
import sqlite3

import httpx
import pytest

from ghostleak.base.config import GhostleakConfig, get_config, set_config
from ghostleak.errors import ErrorCode, GhostleakError, StorageError, handle_error


class TestConfigFromEnv:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GHOSTLEAK_DATA_DIR", str(tmp_path))
        for name in ("GHOSTLEAK_PROBE_TIMEOUT", "GHOSTLEAK_VERIFY_TLS", "GHOSTLEAK_API_PORT", "GHOSTLEAK_DEBUG"):
            monkeypatch.delenv(name, raising=False)

        cfg = GhostleakConfig.from_env()

        assert cfg.storage.db_path == tmp_path / "ghostleak.db"
        assert cfg.probe.timeout_seconds == 10.0
        assert cfg.probe.verify_tls is False
        assert cfg.probe.follow_redirects is True
        assert cfg.api.port == 8766
        assert cfg.debug is False

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GHOSTLEAK_DATA_DIR", str(tmp_path / "nested"))
        monkeypatch.setenv("GHOSTLEAK_PROBE_TIMEOUT", "2.5")
        monkeypatch.setenv("GHOSTLEAK_VERIFY_TLS", "TRUE")
        monkeypatch.setenv("GHOSTLEAK_WATCH_INTERVAL", "0.2")

        cfg = GhostleakConfig.from_env()

        assert cfg.probe.timeout_seconds == 2.5
        assert cfg.probe.verify_tls is True
        assert cfg.watch.poll_interval == 0.2
        # base dir is created eagerly
        assert (tmp_path / "nested").is_dir()

    def test_set_config_replaces_singleton(self, tmp_path):
        custom = GhostleakConfig.from_env()
        set_config(custom)
        try:
            assert get_config() is custom
        finally:
            set_config(None)


class TestErrors:
    def test_to_dict_and_status(self):
        err = StorageError(ErrorCode.STORAGE_WRITE_FAILED, "disk full", details={"key": "foundItems"})
        assert err.to_dict() == {
            "code": "STORAGE_003",
            "message": "disk full",
            "details": {"key": "foundItems"},
            "http_status": 500,
        }
        assert str(err) == "[STORAGE_003] disk full"

    def test_handle_error_passes_through_own_errors(self):
        err = GhostleakError(ErrorCode.ACTION_UNKNOWN, "nope")
        assert handle_error(err) is err

    def test_handle_error_classifies_foreign_errors(self):
        assert handle_error(httpx.ReadTimeout("slow")).code == ErrorCode.PROBE_TIMEOUT
        assert handle_error(httpx.ConnectError("refused")).code == ErrorCode.PROBE_TRANSPORT_FAILED
        assert handle_error(sqlite3.OperationalError("locked")).code == ErrorCode.STORAGE_WRITE_FAILED

        wrapped = handle_error(ValueError("bad"), context="while loading")
        assert wrapped.code == ErrorCode.SYSTEM_INTERNAL_ERROR
        assert wrapped.message == "while loading: bad"


class TestInvalidConfig:
    def test_non_numeric_timeout_is_a_config_error(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GHOSTLEAK_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("GHOSTLEAK_PROBE_TIMEOUT", "soon")

        with pytest.raises(GhostleakError) as exc_info:
            GhostleakConfig.from_env()

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID
        assert exc_info.value.details == {"variable": "GHOSTLEAK_PROBE_TIMEOUT", "value": "soon"}

    def test_fractional_port_is_a_config_error(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GHOSTLEAK_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("GHOSTLEAK_API_PORT", "80.5")

        with pytest.raises(GhostleakError) as exc_info:
            GhostleakConfig.from_env()

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID
