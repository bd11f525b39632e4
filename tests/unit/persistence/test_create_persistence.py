"""Tests for wiring the config repository from settings."""

from __future__ import annotations

from unittest.mock import patch

import fakeredis

from nmwguard.core.config import AppSettings, ConfigSourceConfig, RedisConfig
from nmwguard.persistence import create_persistence
from nmwguard.persistence.redis_backend import RedisCacheBackend


def test_defaults_to_packaged_files_without_cache():
    repository, cache = create_persistence(AppSettings(redis=RedisConfig(enabled=False)))
    assert cache is None
    assert repository.rate_table().records
    assert repository.rule_table().rules


def test_redis_cache_when_enabled():
    with patch("redis.Redis", return_value=fakeredis.FakeRedis(decode_responses=True)):
        repository, cache = create_persistence(
            AppSettings(config_source=ConfigSourceConfig(backend="file"), redis=RedisConfig(enabled=True))
        )
    assert isinstance(cache, RedisCacheBackend)
    repository.rate_table()


def test_s3_backend_selected():
    with patch("nmwguard.persistence.S3ConfigStore", autospec=True) as store_cls:
        create_persistence(AppSettings(config_source=ConfigSourceConfig(backend="s3")))
    kwargs = store_cls.call_args.kwargs
    assert kwargs["prefix"] == "config/"
    assert kwargs["region"] == "eu-west-2"
    store_cls.assert_called_once()
