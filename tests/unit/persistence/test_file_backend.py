"""Tests for the directory-backed config store."""

from __future__ import annotations

import os

import pytest

from nmwguard.core.exceptions import ConfigurationError
from nmwguard.persistence.file_backend import FileConfigStore


@pytest.fixture
def store(tmp_path):
    (tmp_path / "rates.json").write_text('{"rates": []}')
    return FileConfigStore(tmp_path)


def test_read_returns_bytes(store):
    assert store.read("rates.json") == b'{"rates": []}'


def test_version_tracks_modification_time(store, tmp_path):
    before = store.version("rates.json")
    stat = (tmp_path / "rates.json").stat()
    os.utime(tmp_path / "rates.json", ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000))
    assert store.version("rates.json") != before


def test_missing_file_raises_configuration_error(store):
    with pytest.raises(ConfigurationError) as exc_info:
        store.read("missing.json")
    assert exc_info.value.resource == "missing.json"
    with pytest.raises(ConfigurationError, match="stat failed"):
        store.version("missing.json")
