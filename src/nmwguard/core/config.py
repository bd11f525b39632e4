"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

PACKAGED_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class EngineConfig(BaseSettings):
    """Calculation thresholds and execution limits."""

    model_config = {"env_prefix": "NMWGUARD_ENGINE_"}

    amber_tolerance_pct: Decimal = Decimal("2")
    default_accommodation_daily_limit: Decimal = Decimal("9.99")
    high_allowance_threshold: Decimal = Decimal("1000")
    batch_max_workers: int = 8
    config_load_timeout_seconds: float = 5.0


class ConfigSourceConfig(BaseSettings):
    """Where the rate table and classification rule table are read from."""

    model_config = {"env_prefix": "NMWGUARD_CONFIG_"}

    backend: Literal["file", "s3"] = "file"
    directory: Path = PACKAGED_DATA_DIR
    rate_table_name: str = "rates.json"
    rule_table_name: str = "nmw_components.json"


class S3Config(BaseSettings):
    """S3 configuration resource storage."""

    model_config = {"env_prefix": "NMWGUARD_S3_"}

    bucket: str = "nmwguard-config"
    prefix: str = "config/"
    region: str = "eu-west-2"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "NMWGUARD_REDIS_"}

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "NMWGUARD_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    engine: EngineConfig = EngineConfig()
    config_source: ConfigSourceConfig = ConfigSourceConfig()
    s3: S3Config = S3Config()
    redis: RedisConfig = RedisConfig()
