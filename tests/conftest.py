"""Shared fixtures: snapshots of the packaged rate and rule tables."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from nmwguard.calculators.classifier import ComponentClassifier
from nmwguard.calculators.rate_resolver import RateResolver
from nmwguard.core.config import PACKAGED_DATA_DIR
from nmwguard.models.worker import PayPeriod, Worker
from nmwguard.persistence.file_backend import FileConfigStore
from nmwguard.persistence.repository import ConfigRepository, StaticSnapshotSource


@pytest.fixture(scope="session")
def packaged_repository():
    return ConfigRepository(FileConfigStore(PACKAGED_DATA_DIR))


@pytest.fixture(scope="session")
def rate_table(packaged_repository):
    return packaged_repository.rate_table()


@pytest.fixture(scope="session")
def rule_table(packaged_repository):
    return packaged_repository.rule_table()


@pytest.fixture
def snapshots(rate_table, rule_table):
    return StaticSnapshotSource(rate_table, rule_table)


@pytest.fixture
def resolver(rate_table):
    return RateResolver(rate_table)


@pytest.fixture
def classifier(rule_table):
    return ComponentClassifier(rule_table)


@pytest.fixture
def worker():
    return Worker(worker_id="W001", worker_name="Alex Smith", age=25)


@pytest.fixture
def pay_period():
    return PayPeriod(
        pay_period_id="PP-2024-05",
        start_date=date(2024, 5, 1),
        end_date=date(2024, 5, 31),
        hours_worked=Decimal("40"),
        total_pay=Decimal("500"),
    )
