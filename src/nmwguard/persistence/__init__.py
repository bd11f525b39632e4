"""Pluggable configuration backends behind Protocol interfaces."""

from __future__ import annotations

from nmwguard.core.config import AppSettings
from nmwguard.core.protocols import ICacheBackend, IConfigStore
from nmwguard.persistence.file_backend import FileConfigStore
from nmwguard.persistence.redis_backend import RedisCacheBackend
from nmwguard.persistence.repository import ConfigRepository, StaticSnapshotSource
from nmwguard.persistence.s3_backend import S3ConfigStore

__all__ = ["ConfigRepository", "StaticSnapshotSource", "create_persistence"]


def create_persistence(settings: AppSettings | None = None):
    """Create a wired-up config repository from application settings.

    Returns:
        Tuple of (repository, cache). ``cache`` is None unless Redis is enabled.
    """
    if settings is None:
        settings = AppSettings()

    cache: ICacheBackend | None = None
    if settings.redis.enabled:
        cache = RedisCacheBackend(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
        )

    store: IConfigStore
    if settings.config_source.backend == "s3":
        store = S3ConfigStore(
            bucket=settings.s3.bucket,
            prefix=settings.s3.prefix,
            region=settings.s3.region,
            endpoint_url=settings.s3.endpoint_url,
        )
    else:
        store = FileConfigStore(settings.config_source.directory)

    repository = ConfigRepository(
        store,
        rate_table_name=settings.config_source.rate_table_name,
        rule_table_name=settings.config_source.rule_table_name,
        cache=cache,
    )
    return repository, cache
