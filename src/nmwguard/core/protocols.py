"""Protocol interfaces for NMW Guard collaborators.

Structural typing, no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from nmwguard.models.rates import RateTableSnapshot
    from nmwguard.models.rules import RuleTableSnapshot


# ---------------------------------------------------------------------------
# Persistence: Configuration Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IConfigStore(Protocol):
    """Read-only source of versioned configuration resources."""

    def read(self, name: str) -> bytes: ...

    def version(self, name: str) -> str: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# Snapshot Source
# ---------------------------------------------------------------------------

@runtime_checkable
class ISnapshotSource(Protocol):
    """Provides the current immutable rate and rule table snapshots."""

    def rate_table(self) -> RateTableSnapshot: ...

    def rule_table(self) -> RuleTableSnapshot: ...
