"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

from decimal import Decimal

from nmwguard.core.config import PACKAGED_DATA_DIR, AppSettings, EngineConfig, S3Config


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.config_source.backend == "file"
    assert settings.config_source.directory == PACKAGED_DATA_DIR
    assert settings.redis.enabled is False


def test_engine_config_defaults():
    config = EngineConfig()
    assert config.amber_tolerance_pct == Decimal("2")
    assert config.default_accommodation_daily_limit == Decimal("9.99")
    assert config.batch_max_workers == 8
    assert config.config_load_timeout_seconds == 5.0


def test_engine_config_env_override(monkeypatch):
    monkeypatch.setenv("NMWGUARD_ENGINE_BATCH_MAX_WORKERS", "2")
    monkeypatch.setenv("NMWGUARD_ENGINE_DEFAULT_ACCOMMODATION_DAILY_LIMIT", "10.66")
    config = EngineConfig()
    assert config.batch_max_workers == 2
    assert config.default_accommodation_daily_limit == Decimal("10.66")


def test_s3_config_env_override(monkeypatch):
    monkeypatch.setenv("NMWGUARD_S3_BUCKET", "payroll-config")
    monkeypatch.setenv("NMWGUARD_S3_ENDPOINT_URL", "http://localhost:4566")
    config = S3Config()
    assert config.bucket == "payroll-config"
    assert config.endpoint_url == "http://localhost:4566"


def test_packaged_tables_present():
    assert (PACKAGED_DATA_DIR / "rates.json").is_file()
    assert (PACKAGED_DATA_DIR / "nmw_components.json").is_file()
