"""Shared test doubles: re-export memory backends."""

from __future__ import annotations

from nmwguard.persistence.memory_backend import MemoryCacheBackend, MemoryConfigStore

__all__ = ["MemoryCacheBackend", "MemoryConfigStore"]
