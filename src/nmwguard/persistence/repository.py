"""Versioned snapshot loading for the rate table and classification rule table."""

from __future__ import annotations

import json
import logging
import threading
from decimal import Decimal
from typing import Any, Callable, TypeVar

from nmwguard.core.exceptions import CacheError, ConfigurationError
from nmwguard.core.protocols import ICacheBackend, IConfigStore
from nmwguard.core.types import JsonDict
from nmwguard.models.rates import RateTableSnapshot
from nmwguard.models.rules import RuleTableSnapshot
from nmwguard.persistence.validation import validate_rate_table, validate_rule_table

logger = logging.getLogger(__name__)

S = TypeVar("S", RateTableSnapshot, RuleTableSnapshot)


class ConfigRepository:
    """ISnapshotSource that re-parses a resource only when its version changes.

    Published snapshots are immutable. The name-to-snapshot map is replaced
    wholesale under a single-writer lock, so concurrent readers always see
    either the previous or the new table, never a partial one.
    """

    CACHE_TTL = 300  # 5 minutes

    def __init__(
        self,
        store: IConfigStore,
        *,
        rate_table_name: str = "rates.json",
        rule_table_name: str = "nmw_components.json",
        cache: ICacheBackend | None = None,
    ) -> None:
        self._store = store
        self._rate_table_name = rate_table_name
        self._rule_table_name = rule_table_name
        self._cache = cache
        self._snapshots: dict[str, Any] = {}
        self._write_lock = threading.Lock()

    def rate_table(self) -> RateTableSnapshot:
        return self._load(self._rate_table_name, _build_rate_table)

    def rule_table(self) -> RuleTableSnapshot:
        return self._load(self._rule_table_name, _build_rule_table)

    def invalidate(self) -> None:
        with self._write_lock:
            self._snapshots = {}

    def _load(self, name: str, build: Callable[[str, JsonDict, str], S]) -> S:
        version = self._store.version(name)
        current = self._snapshots.get(name)
        if current is not None and current.version == version:
            return current

        with self._write_lock:
            current = self._snapshots.get(name)
            if current is not None and current.version == version:
                return current
            snapshot = build(name, self._fetch(name, version), version)
            snapshots = dict(self._snapshots)
            snapshots[name] = snapshot
            self._snapshots = snapshots

        logger.info("Loaded configuration snapshot", extra={"resource": name, "version": version})
        return snapshot

    def _fetch(self, name: str, version: str) -> JsonDict:
        cache_key = f"config:{name}:{version}"

        raw = self._cached(cache_key)
        if raw is None:
            try:
                raw = self._store.read(name).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ConfigurationError(name, f"not valid UTF-8: {exc}") from exc
            self._remember(cache_key, raw)

        try:
            document = json.loads(raw, parse_float=Decimal)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(name, f"invalid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise ConfigurationError(name, "top-level JSON value must be an object")
        return document

    def _cached(self, key: str) -> str | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(key)
        except CacheError as exc:
            logger.warning("Config cache read failed", extra={"cache_key": key, "error": str(exc)})
            return None

    def _remember(self, key: str, raw: str) -> None:
        if self._cache is None:
            return
        try:
            self._cache.setex(key, self.CACHE_TTL, raw)
        except CacheError as exc:
            logger.warning("Config cache write failed", extra={"cache_key": key, "error": str(exc)})


def _build_rate_table(name: str, document: JsonDict, version: str) -> RateTableSnapshot:
    try:
        snapshot = RateTableSnapshot.from_document(document, version=version)
    except (ValueError, TypeError, AttributeError) as exc:
        raise ConfigurationError(name, f"malformed rate table: {exc}") from exc
    errors, warnings = validate_rate_table(snapshot)
    if errors:
        raise ConfigurationError(name, "; ".join(errors))
    for warning in warnings:
        logger.warning("Rate table warning", extra={"resource": name, "detail": warning})
    return snapshot


def _build_rule_table(name: str, document: JsonDict, version: str) -> RuleTableSnapshot:
    try:
        snapshot = RuleTableSnapshot.from_document(document, version=version)
    except (ValueError, TypeError, AttributeError) as exc:
        raise ConfigurationError(name, f"malformed rule table: {exc}") from exc
    errors, warnings = validate_rule_table(snapshot)
    if errors:
        raise ConfigurationError(name, "; ".join(errors))
    for warning in warnings:
        logger.warning("Rule table warning", extra={"resource": name, "detail": warning})
    return snapshot


class StaticSnapshotSource:
    """ISnapshotSource over snapshots that were loaded elsewhere."""

    def __init__(self, rate_table: RateTableSnapshot, rule_table: RuleTableSnapshot) -> None:
        self._rate_table = rate_table
        self._rule_table = rule_table

    def rate_table(self) -> RateTableSnapshot:
        return self._rate_table

    def rule_table(self) -> RuleTableSnapshot:
        return self._rule_table
