"""Tests for the canonical RAG status resolver."""

from __future__ import annotations

from decimal import Decimal

import pytest

from nmwguard.models.outputs import AmberFlag, IssueCode, RAGStatus, Severity
from nmwguard.orchestration.rag_status import (
    RAGStatusResolver,
    deduction_ratio,
    integration_score,
    integration_status,
    red_severity,
)

REQUIRED = Decimal("11.44")


@pytest.fixture
def rag():
    return RAGStatusResolver()


def _resolve(rag, effective, *, hours="40", pay="500", **kwargs):
    return rag.resolve(
        effective_rate=Decimal(effective) if effective is not None else None,
        required_rate=kwargs.pop("required", REQUIRED),
        hours_worked=Decimal(hours),
        total_pay=Decimal(pay),
        **kwargs,
    )


class TestRateComparison:
    def test_meets_required_rate(self, rag):
        result = _resolve(rag, "12.50")
        assert result.rag_status == RAGStatus.GREEN
        assert result.severity is None
        assert result.reason == "Effective rate (£12.50) meets or exceeds required rate (£11.44)"
        assert result.reason_code == IssueCode.COMPLIANT

    def test_exactly_required_is_green(self, rag):
        assert _resolve(rag, "11.44").rag_status == RAGStatus.GREEN

    def test_below_required_rate(self, rag):
        result = _resolve(rag, "10.00", pay="400")
        assert result.rag_status == RAGStatus.RED
        assert result.severity == Severity.HIGH
        assert result.reason == "Effective rate (£10.00) is below required rate (£11.44)"
        assert result.reason_code == IssueCode.RATE_BELOW_MINIMUM
        assert result.rate_comparison.shortfall_percentage == Decimal("12.59")

    @pytest.mark.parametrize(
        "pct, severity",
        [("20.01", Severity.CRITICAL), ("20", Severity.HIGH), ("10.5", Severity.HIGH),
         ("5.01", Severity.MEDIUM), ("5", Severity.LOW), ("0.1", Severity.LOW)],
    )
    def test_severity_bands(self, pct, severity):
        assert red_severity(Decimal(pct)) == severity


class TestAmberFlags:
    def test_missing_age_with_zero_hours(self, rag):
        result = _resolve(rag, "0", hours="0", pay="100", required=None, has_age_data=False)
        assert result.rag_status == RAGStatus.AMBER
        assert result.amber_flags == [AmberFlag.ZERO_HOURS_WITH_PAY, AmberFlag.MISSING_AGE_DATA]
        assert result.reason_code == IssueCode.ZERO_HOURS_WITH_PAY
        assert "Missing worker age" in result.reason

    def test_flag_skips_rate_comparison(self, rag):
        result = _resolve(rag, "5.00", deduction_ratio=Decimal("0.6"))
        assert result.rag_status == RAGStatus.AMBER
        assert result.amber_flags == [AmberFlag.EXCESSIVE_DEDUCTIONS]
        assert result.rate_comparison is None

    def test_negative_effective_rate(self, rag):
        result = _resolve(rag, "-2.50")
        assert result.amber_flags == [AmberFlag.NEGATIVE_EFFECTIVE_RATE]
        assert result.reason == "Negative effective hourly rate indicates data quality issues"

    def test_accommodation_violation_flags(self, rag):
        result = _resolve(rag, "12.50", accommodation_flags=["accommodation_excess"])
        assert result.amber_flags == [AmberFlag.ACCOMMODATION_OFFSET_VIOLATIONS]
        assert result.reason_code == IssueCode.ACCOMMODATION_OFFSET_EXCEEDED

    def test_unrelated_accommodation_flag_ignored(self, rag):
        assert _resolve(rag, "12.50", accommodation_flags=["checked"]).rag_status == RAGStatus.GREEN

    def test_half_deductions_not_excessive(self, rag):
        assert _resolve(rag, "12.50", deduction_ratio=Decimal("0.5")).rag_status == RAGStatus.GREEN

    def test_unresolved_required_rate(self, rag):
        result = _resolve(rag, "12.50", required=None)
        assert result.rag_status == RAGStatus.AMBER
        assert result.reason_code == IssueCode.RATE_UNRESOLVED


def test_more_pay_never_leaves_green(rag):
    hours = Decimal("40")
    deductions = Decimal("50")
    seen_green = False
    for pay in range(300, 900, 10):
        total_pay = Decimal(pay)
        result = rag.resolve(
            effective_rate=((total_pay - deductions) / hours).quantize(Decimal("0.01")),
            required_rate=REQUIRED,
            hours_worked=hours,
            total_pay=total_pay,
            deduction_ratio=deduction_ratio(deductions, total_pay),
        )
        if seen_green:
            assert result.rag_status == RAGStatus.GREEN
        seen_green = seen_green or result.rag_status == RAGStatus.GREEN
    assert seen_green


def test_deduction_ratio_zero_pay():
    assert deduction_ratio(Decimal("10"), Decimal("0")) == Decimal("0")


class TestIntegrationFigures:
    def test_any_shortfall_is_red(self):
        status = integration_status(Decimal("11.43"), REQUIRED, accommodation_excess=False, deduction_excess=False)
        assert status == RAGStatus.RED

    def test_excess_without_shortfall_is_amber(self):
        status = integration_status(Decimal("12.00"), REQUIRED, accommodation_excess=True, deduction_excess=False)
        assert status == RAGStatus.AMBER

    def test_score_penalties(self):
        score = integration_score(
            Decimal("10.00"),
            REQUIRED,
            accommodation_excess=Decimal("90.31"),
            accommodation_charge=Decimal("400"),
            deduction_excess=Decimal("0"),
            total_deductions=Decimal("0"),
        )
        assert score == 83

    def test_score_floor(self):
        score = integration_score(
            Decimal("0"),
            REQUIRED,
            accommodation_excess=Decimal("100"),
            accommodation_charge=Decimal("100"),
            deduction_excess=Decimal("50"),
            total_deductions=Decimal("50"),
        )
        assert score == 0


def test_summarize(rag):
    results = [_resolve(rag, "12.50"), _resolve(rag, "10.00"), _resolve(rag, "8.00"), _resolve(rag, "12.00", required=None)]
    summary = RAGStatusResolver.summarize(results)
    assert (summary.green, summary.amber, summary.red) == (1, 1, 2)
    assert summary.compliance_rate == Decimal("25.00")
    assert summary.critical_underpayments == 1
    assert summary.total_hourly_shortfall == Decimal("4.88")
    assert summary.average_required_rate == Decimal("11.44")
