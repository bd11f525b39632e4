"""Tests for the deduction evaluator."""

from __future__ import annotations

from decimal import Decimal

import pytest

from nmwguard.calculators.deductions import DeductionEvaluator
from nmwguard.core.exceptions import ValidationError
from nmwguard.models.inputs import DeductionData
from nmwguard.models.outputs import IssueCode, RAGStatus, Severity
from nmwguard.models.worker import Worker


class TestEvaluate:
    def test_no_deductions_is_green(self, worker, pay_period):
        result = DeductionEvaluator().evaluate(worker, pay_period, DeductionData())
        assert result.compliance_status == RAGStatus.GREEN
        assert result.compliance_rate == Decimal("100")
        assert result.compliance_score == 100
        assert result.issues == []

    def test_disallowed_uniform_deduction(self, worker, pay_period):
        result = DeductionEvaluator().evaluate(worker, pay_period, DeductionData(uniform_deduction=Decimal("20")))
        line = result.lines["uniform"]
        assert line.excess == Decimal("20")
        assert line.is_compliant is False
        assert line.rule == "Uniform costs cannot reduce pay below NMW"
        assert result.compliance_status == RAGStatus.RED
        assert result.compliance_score == 0
        issue = result.issues[0]
        assert issue.code == IssueCode.DEDUCTION_LIMIT_EXCEEDED
        assert issue.severity == Severity.HIGH
        assert result.recommendations[0].message == "Reduce uniform deduction from £20.00 to £0.00"

    def test_mostly_compliant_is_amber(self, worker, pay_period):
        evaluator = DeductionEvaluator({"uniform": Decimal("50")})
        data = DeductionData(uniform_deduction=Decimal("40"), training_deduction=Decimal("5"))
        result = evaluator.evaluate(worker, pay_period, data)
        assert result.total_deductions == Decimal("45")
        assert result.compliant_deductions == Decimal("40")
        assert result.non_compliant_deductions == Decimal("5")
        assert result.compliance_rate == Decimal("88.89")
        assert result.compliance_status == RAGStatus.AMBER
        assert result.compliance_score == 89

    def test_small_excess_is_medium(self, worker, pay_period):
        evaluator = DeductionEvaluator({"tools": Decimal("10")})
        result = evaluator.evaluate(worker, pay_period, DeductionData(tools_deduction=Decimal("15")))
        assert result.lines["tools"].excess == Decimal("5")
        assert result.issues[0].severity == Severity.MEDIUM
        assert result.recommendations[0].priority == Severity.MEDIUM

    def test_negative_amount_rejected(self, worker, pay_period):
        with pytest.raises(ValidationError, match="cannot be negative"):
            DeductionEvaluator().evaluate(worker, pay_period, DeductionData(other_deductions=Decimal("-1")))

    def test_missing_worker_rejected(self, pay_period):
        with pytest.raises(ValidationError):
            DeductionEvaluator().evaluate(Worker(), pay_period, DeductionData())

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            DeductionEvaluator({"parking": Decimal("1")})


def test_summarize(worker, pay_period):
    evaluator = DeductionEvaluator()
    results = [
        evaluator.evaluate(worker, pay_period, DeductionData()),
        evaluator.evaluate(worker, pay_period, DeductionData(tools_deduction=Decimal("12"))),
    ]
    summary = DeductionEvaluator.summarize(results)
    assert summary.green == 1
    assert summary.red == 1
    assert summary.total_excess == Decimal("12")
