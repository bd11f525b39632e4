"""In-memory backends for unit tests: dict-backed fakes."""

from __future__ import annotations

import json
from typing import Any

from nmwguard.core.exceptions import ConfigurationError


class MemoryConfigStore:
    """Dict-backed IConfigStore for unit tests.

    Every ``put`` bumps the resource's version so repositories reload it.
    """

    def __init__(self, resources: dict[str, Any] | None = None) -> None:
        self._data: dict[str, bytes] = {}
        self._versions: dict[str, int] = {}
        self.reads: dict[str, int] = {}
        for name, document in (resources or {}).items():
            self.put(name, document)

    def put(self, name: str, document: Any) -> None:
        if isinstance(document, bytes):
            payload = document
        elif isinstance(document, str):
            payload = document.encode()
        else:
            payload = json.dumps(document, default=str).encode()
        self._data[name] = payload
        self._versions[name] = self._versions.get(name, 0) + 1

    def read(self, name: str) -> bytes:
        if name not in self._data:
            raise ConfigurationError(name, "not found in memory store")
        self.reads[name] = self.reads.get(name, 0) + 1
        return self._data[name]

    def version(self, name: str) -> str:
        if name not in self._versions:
            raise ConfigurationError(name, "not found in memory store")
        return str(self._versions[name])


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)
