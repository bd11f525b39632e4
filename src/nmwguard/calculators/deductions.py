"""DeductionEvaluator: uniform, tools, training and other deductions against permitted maxima."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from nmwguard.core.exceptions import ValidationError
from nmwguard.core.money import HUNDRED, ZERO, format_gbp, quantize, round_int
from nmwguard.models.inputs import DeductionData
from nmwguard.models.outputs import Issue, IssueCode, RAGStatus, Recommendation, Severity
from nmwguard.models.results import DeductionLine, DeductionResult
from nmwguard.models.worker import PayPeriod, Worker

logger = logging.getLogger(__name__)

AMBER_COMPLIANCE_RATE = Decimal("80")

# category -> (DeductionData field, description, rule)
DEDUCTION_CATEGORIES: dict[str, tuple[str, str, str]] = {
    "uniform": ("uniform_deduction", "Uniform deduction", "Uniform costs cannot reduce pay below NMW"),
    "tools": ("tools_deduction", "Tools deduction", "Tools costs cannot reduce pay below NMW"),
    "training": ("training_deduction", "Training deduction", "Training costs cannot reduce pay below NMW"),
    "other": ("other_deductions", "Other deductions", "Other deductions cannot reduce pay below NMW"),
}


class DeductionSummary(BaseModel):
    total_workers: int = 0
    total_deductions: Decimal = ZERO
    total_excess: Decimal = ZERO
    green: int = 0
    amber: int = 0
    red: int = 0


class DeductionEvaluator:
    """Evaluates each deduction category independently against its maximum.

    Every category defaults to a maximum of zero: the cost may be deducted
    but none of it may count against NMW pay.
    """

    def __init__(self, max_allowed: Optional[Mapping[str, Decimal]] = None) -> None:
        unknown = set(max_allowed or {}) - set(DEDUCTION_CATEGORIES)
        if unknown:
            raise ValueError(f"Unknown deduction categories: {sorted(unknown)}")
        self._max_allowed = {c: ZERO for c in DEDUCTION_CATEGORIES}
        self._max_allowed.update(max_allowed or {})

    def evaluate(self, worker: Worker, pay_period: PayPeriod, deductions: DeductionData) -> DeductionResult:
        if not worker.worker_id:
            raise ValidationError("Worker ID is required", pay_period_id=pay_period.pay_period_id)
        negatives = [
            f"{description} cannot be negative"
            for field, description, _ in DEDUCTION_CATEGORIES.values()
            if getattr(deductions, field) < 0
        ]
        if negatives:
            raise ValidationError(negatives, worker_id=worker.worker_id, pay_period_id=pay_period.pay_period_id)

        lines: dict[str, DeductionLine] = {}
        for category, (field, description, rule) in DEDUCTION_CATEGORIES.items():
            amount = getattr(deductions, field)
            max_allowed = self._max_allowed[category]
            excess = max(ZERO, amount - max_allowed)
            lines[category] = DeductionLine(
                category=category,
                amount=amount,
                max_allowed=max_allowed,
                excess=excess,
                is_compliant=excess == 0,
                description=description,
                rule=rule,
            )

        total = sum((line.amount for line in lines.values()), ZERO)
        compliant = sum((line.amount for line in lines.values() if line.is_compliant), ZERO)
        total_excess = sum((line.excess for line in lines.values()), ZERO)
        rate = quantize(compliant / total * HUNDRED) if total > 0 else HUNDRED

        if total_excess == 0:
            status = RAGStatus.GREEN
        elif rate >= AMBER_COMPLIANCE_RATE:
            status = RAGStatus.AMBER
        else:
            status = RAGStatus.RED

        issues, recommendations = self._findings(lines)
        if issues:
            logger.info(
                "Deductions exceed permitted maximum",
                extra={"worker_id": worker.worker_id, "total_excess": str(total_excess)},
            )
        return DeductionResult(
            worker_id=worker.worker_id,
            pay_period_id=pay_period.pay_period_id,
            lines=lines,
            total_deductions=total,
            compliant_deductions=compliant,
            non_compliant_deductions=total - compliant,
            total_excess=total_excess,
            compliance_rate=rate,
            compliance_status=status,
            compliance_score=round_int(rate),
            issues=issues,
            recommendations=recommendations,
        )

    @staticmethod
    def _findings(lines: Mapping[str, DeductionLine]) -> tuple[list[Issue], list[Recommendation]]:
        issues = []
        recommendations = []
        for category, line in lines.items():
            if line.is_compliant:
                continue
            severity = Severity.HIGH if line.excess > line.max_allowed else Severity.MEDIUM
            issues.append(
                Issue(
                    type=f"{category}_deduction",
                    code=IssueCode.DEDUCTION_LIMIT_EXCEEDED,
                    severity=severity,
                    message=(
                        f"{line.description} of {format_gbp(line.amount)} exceeds the permitted "
                        f"{format_gbp(line.max_allowed)} by {format_gbp(line.excess)}"
                    ),
                    details={"category": category, "amount": line.amount, "excess": line.excess, "rule": line.rule},
                )
            )
            recommendations.append(
                Recommendation(
                    type=f"reduce_{category}_deduction",
                    priority=severity,
                    message=(
                        f"Reduce {category} deduction from {format_gbp(line.amount)} "
                        f"to {format_gbp(line.max_allowed)}"
                    ),
                    details={"category": category, "current": line.amount, "max_allowed": line.max_allowed},
                )
            )
        return issues, recommendations

    @staticmethod
    def summarize(results: Sequence[DeductionResult]) -> DeductionSummary:
        summary = DeductionSummary(total_workers=len(results))
        for result in results:
            summary.total_deductions += result.total_deductions
            summary.total_excess += result.total_excess
            if result.compliance_status == RAGStatus.GREEN:
                summary.green += 1
            elif result.compliance_status == RAGStatus.AMBER:
                summary.amber += 1
            else:
                summary.red += 1
        return summary
