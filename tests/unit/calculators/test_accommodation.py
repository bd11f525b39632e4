"""Tests for the accommodation offset calculator."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from nmwguard.calculators.accommodation import AccommodationOffsetCalculator, compute_offset, working_days
from nmwguard.core.exceptions import ValidationError
from nmwguard.models.outputs import RAGStatus
from nmwguard.models.worker import PayPeriod, Worker

LIMIT = Decimal("9.99")


@pytest.fixture
def calculator():
    return AccommodationOffsetCalculator(LIMIT)


class TestComputeOffset:
    def test_charge_over_limit_for_a_month(self):
        figures = compute_offset(Decimal("400"), 31, LIMIT)
        assert figures.daily_charge == Decimal("12.90")
        assert figures.total_offset == Decimal("309.69")
        assert figures.total_excess == Decimal("90.31")
        assert figures.daily_excess == Decimal("2.91")
        assert figures.status == RAGStatus.AMBER
        assert figures.compliant_days == 31

    def test_charge_within_limit(self):
        figures = compute_offset(Decimal("200"), 31, LIMIT)
        assert figures.status == RAGStatus.GREEN
        assert figures.total_offset == Decimal("200.00")
        assert figures.total_excess == Decimal("0")
        assert figures.score == 100

    def test_zero_limit_is_red(self):
        figures = compute_offset(Decimal("50"), 7, Decimal("0"))
        assert figures.status == RAGStatus.RED
        assert figures.compliant_days == 0
        assert figures.non_compliant_days == 7
        assert figures.score == 0

    @pytest.mark.parametrize("charge", ["0", "0.01", "123.45", "309.69", "400", "1000.99"])
    @pytest.mark.parametrize("days", [7, 30, 31])
    def test_offset_plus_excess_equals_charge(self, charge, days):
        figures = compute_offset(Decimal(charge), days, LIMIT)
        assert figures.total_offset + figures.total_excess == Decimal(charge)

    def test_requires_positive_days(self):
        with pytest.raises(ValidationError):
            compute_offset(Decimal("10"), 0, LIMIT)


def test_working_days_excludes_weekends():
    assert working_days(date(2024, 5, 1), date(2024, 5, 31)) == 23
    assert working_days(date(2024, 5, 4), date(2024, 5, 5)) == 0


class TestCalculate:
    def test_month_breakdown(self, calculator, worker, pay_period):
        result = calculator.calculate(worker, pay_period, "400")
        assert result.period.total_days == 31
        assert result.period.working_days == 23
        assert result.period_limit == Decimal("309.69")
        assert result.total_offset == Decimal("309.69")
        assert result.total_excess == Decimal("90.31")
        assert result.compliance_status == RAGStatus.AMBER
        assert result.has_excess is True

    def test_override_daily_limit(self, calculator, worker, pay_period):
        result = calculator.calculate(worker, pay_period, 400, daily_limit=Decimal("13"))
        assert result.compliance_status == RAGStatus.GREEN
        assert result.daily_limit == Decimal("13")

    def test_negative_charge_rejected(self, calculator, worker, pay_period):
        with pytest.raises(ValidationError, match="cannot be negative"):
            calculator.calculate(worker, pay_period, -1)

    def test_non_numeric_charge_rejected(self, calculator, worker, pay_period):
        with pytest.raises(ValidationError, match="must be numeric"):
            calculator.calculate(worker, pay_period, "lots")

    def test_out_of_range_charge_rejected(self, calculator, worker, pay_period):
        with pytest.raises(ValidationError, match="out of range"):
            calculator.calculate(worker, pay_period, Decimal("1e30"))

    def test_missing_dates_rejected(self, calculator, worker):
        with pytest.raises(ValidationError) as excinfo:
            calculator.calculate(worker, PayPeriod(pay_period_id="PP"), 100)
        assert excinfo.value.worker_id == "W001"

    def test_missing_worker_rejected(self, calculator, pay_period):
        with pytest.raises(ValidationError, match="Worker ID is required"):
            calculator.calculate(Worker(), pay_period, 100)


def test_summarize(calculator, worker, pay_period):
    results = [
        calculator.calculate(worker, pay_period, 400),
        calculator.calculate(worker, pay_period, 100),
    ]
    summary = AccommodationOffsetCalculator.summarize(results)
    assert summary.total_workers == 2
    assert summary.amber == 1
    assert summary.green == 1
    assert summary.total_charges == Decimal("500.00")
    assert summary.total_excess == Decimal("90.31")
