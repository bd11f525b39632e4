"""RAGStatusResolver: the single canonical RED/AMBER/GREEN classification.

Every user-facing status is decided here. Amber flags are checked before any
rate comparison; a flagged worker goes to manual review rather than being
judged on figures that are known to be unreliable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from nmwguard.core.money import HUNDRED, ZERO, format_gbp, percentage, quantize, round_int
from nmwguard.models.outputs import AmberFlag, IssueCode, RAGResult, RAGStatus, RateComparison, Severity

logger = logging.getLogger(__name__)

EXCESSIVE_DEDUCTION_RATIO = Decimal("0.5")

AMBER_FLAG_REASONS: dict[AmberFlag, tuple[IssueCode, str]] = {
    AmberFlag.ZERO_HOURS_WITH_PAY: (
        IssueCode.ZERO_HOURS_WITH_PAY,
        "Zero hours worked with non-zero pay prevents definitive rate calculation",
    ),
    AmberFlag.MISSING_AGE_DATA: (
        IssueCode.MISSING_AGE_DATA,
        "Missing worker age or date of birth prevents rate determination",
    ),
    AmberFlag.NEGATIVE_EFFECTIVE_RATE: (
        IssueCode.NEGATIVE_EFFECTIVE_RATE,
        "Negative effective hourly rate indicates data quality issues",
    ),
    AmberFlag.EXCESSIVE_DEDUCTIONS: (
        IssueCode.EXCESSIVE_DEDUCTIONS,
        "Excessive deductions may indicate complex compliance scenario",
    ),
    AmberFlag.ACCOMMODATION_OFFSET_VIOLATIONS: (
        IssueCode.ACCOMMODATION_OFFSET_EXCEEDED,
        "Accommodation offset violations require manual review",
    ),
}

# Shortfall percentage thresholds for RED severity, checked highest first.
RED_SEVERITY_BANDS: tuple[tuple[Decimal, Severity], ...] = (
    (Decimal("20"), Severity.CRITICAL),
    (Decimal("10"), Severity.HIGH),
    (Decimal("5"), Severity.MEDIUM),
)

INTEGRATION_RATE_PENALTY_CAP = Decimal("60")
INTEGRATION_EXCESS_PENALTY_CAP = Decimal("20")


def red_severity(shortfall_pct: Decimal) -> Severity:
    for threshold, severity in RED_SEVERITY_BANDS:
        if shortfall_pct > threshold:
            return severity
    return Severity.LOW


def deduction_ratio(total_deductions: Decimal, total_pay: Decimal) -> Decimal:
    if total_pay <= 0:
        return ZERO
    return total_deductions / total_pay


def compare_rates(effective: Decimal, required: Decimal) -> RateComparison:
    return RateComparison(
        effective=effective,
        required=required,
        difference=effective - required,
        percentage_of_required=percentage(effective, required),
        shortfall_percentage=percentage(max(ZERO, required - effective), required),
    )


def detect_amber_flags(
    *,
    effective_rate: Optional[Decimal],
    hours_worked: Decimal,
    total_pay: Decimal,
    has_age_data: bool,
    deduction_ratio: Decimal = ZERO,
    accommodation_flags: Iterable[str] = (),
) -> list[AmberFlag]:
    """Preconditions that make a rate comparison untrustworthy, in precedence order."""
    flags = []
    if hours_worked == 0 and total_pay != 0:
        flags.append(AmberFlag.ZERO_HOURS_WITH_PAY)
    if not has_age_data:
        flags.append(AmberFlag.MISSING_AGE_DATA)
    if effective_rate is not None and effective_rate < 0:
        flags.append(AmberFlag.NEGATIVE_EFFECTIVE_RATE)
    if deduction_ratio > EXCESSIVE_DEDUCTION_RATIO:
        flags.append(AmberFlag.EXCESSIVE_DEDUCTIONS)
    if any("excess" in flag or "violation" in flag for flag in accommodation_flags):
        flags.append(AmberFlag.ACCOMMODATION_OFFSET_VIOLATIONS)
    return flags


class RAGSummary(BaseModel):
    total: int = 0
    green: int = 0
    amber: int = 0
    red: int = 0
    compliance_rate: Decimal = ZERO
    average_effective_rate: Decimal = ZERO
    average_required_rate: Decimal = ZERO
    total_hourly_shortfall: Decimal = ZERO
    critical_underpayments: int = 0


class RAGStatusResolver:
    """Classifies one worker's figures into a RAG verdict with severity and reason."""

    def resolve(
        self,
        *,
        effective_rate: Optional[Decimal],
        required_rate: Optional[Decimal],
        hours_worked: Decimal,
        total_pay: Decimal,
        has_age_data: bool = True,
        deduction_ratio: Decimal = ZERO,
        accommodation_flags: Iterable[str] = (),
        unresolved_code: IssueCode = IssueCode.RATE_UNRESOLVED,
        unresolved_reason: str = "Required hourly rate could not be determined",
    ) -> RAGResult:
        flags = detect_amber_flags(
            effective_rate=effective_rate,
            hours_worked=hours_worked,
            total_pay=total_pay,
            has_age_data=has_age_data,
            deduction_ratio=deduction_ratio,
            accommodation_flags=accommodation_flags,
        )
        if flags:
            code, _ = AMBER_FLAG_REASONS[flags[0]]
            return RAGResult(
                rag_status=RAGStatus.AMBER,
                reason="; ".join(AMBER_FLAG_REASONS[flag][1] for flag in flags),
                reason_code=code,
                amber_flags=flags,
                effective_hourly_rate=effective_rate,
                required_hourly_rate=required_rate,
            )

        if effective_rate is None or required_rate is None:
            return RAGResult(
                rag_status=RAGStatus.AMBER,
                reason=unresolved_reason,
                reason_code=unresolved_code,
                effective_hourly_rate=effective_rate,
                required_hourly_rate=required_rate,
            )

        comparison = compare_rates(effective_rate, required_rate)
        if effective_rate >= required_rate:
            return RAGResult(
                rag_status=RAGStatus.GREEN,
                reason=(
                    f"Effective rate ({format_gbp(effective_rate)}) meets or exceeds "
                    f"required rate ({format_gbp(required_rate)})"
                ),
                reason_code=IssueCode.COMPLIANT,
                effective_hourly_rate=effective_rate,
                required_hourly_rate=required_rate,
                rate_comparison=comparison,
            )
        return RAGResult(
            rag_status=RAGStatus.RED,
            severity=red_severity(comparison.shortfall_percentage),
            reason=(
                f"Effective rate ({format_gbp(effective_rate)}) is below "
                f"required rate ({format_gbp(required_rate)})"
            ),
            reason_code=IssueCode.RATE_BELOW_MINIMUM,
            effective_hourly_rate=effective_rate,
            required_hourly_rate=required_rate,
            rate_comparison=comparison,
        )

    @staticmethod
    def summarize(results: Sequence[RAGResult]) -> RAGSummary:
        summary = RAGSummary(total=len(results))
        effective = []
        required = []
        for result in results:
            if result.rag_status == RAGStatus.GREEN:
                summary.green += 1
            elif result.rag_status == RAGStatus.AMBER:
                summary.amber += 1
            else:
                summary.red += 1
                if result.severity == Severity.CRITICAL:
                    summary.critical_underpayments += 1
                if result.rate_comparison is not None:
                    summary.total_hourly_shortfall -= result.rate_comparison.difference
            if result.effective_hourly_rate is not None:
                effective.append(result.effective_hourly_rate)
            if result.required_hourly_rate is not None:
                required.append(result.required_hourly_rate)
        if results:
            summary.compliance_rate = quantize(Decimal(summary.green) / len(results) * HUNDRED)
        if effective:
            summary.average_effective_rate = quantize(sum(effective, ZERO) / len(effective))
        if required:
            summary.average_required_rate = quantize(sum(required, ZERO) / len(required))
        return summary


# ---------------------------------------------------------------------------
# Integration figures
# ---------------------------------------------------------------------------

def integration_status(
    effective_rate: Decimal,
    required_rate: Optional[Decimal],
    *,
    accommodation_excess: bool,
    deduction_excess: bool,
) -> RAGStatus:
    """Threshold status reported in the integration breakdown.

    Any shortfall is RED; otherwise an accommodation or deduction excess is
    AMBER. This figure is informational; ``RAGStatusResolver`` decides the
    worker's status.
    """
    if required_rate is not None and effective_rate < required_rate:
        return RAGStatus.RED
    if accommodation_excess or deduction_excess:
        return RAGStatus.AMBER
    return RAGStatus.GREEN


def integration_score(
    effective_rate: Decimal,
    required_rate: Optional[Decimal],
    *,
    accommodation_excess: Decimal,
    accommodation_charge: Decimal,
    deduction_excess: Decimal,
    total_deductions: Decimal,
) -> int:
    score = HUNDRED
    if required_rate is not None and required_rate > 0 and effective_rate < required_rate:
        deficit = (required_rate - effective_rate) / required_rate
        score -= min(INTEGRATION_RATE_PENALTY_CAP, deficit * HUNDRED)
    if accommodation_excess > 0:
        ratio = accommodation_excess / (accommodation_charge or Decimal("1"))
        score -= min(INTEGRATION_EXCESS_PENALTY_CAP, ratio * 20)
    if deduction_excess > 0:
        ratio = deduction_excess / (total_deductions or Decimal("1"))
        score -= min(INTEGRATION_EXCESS_PENALTY_CAP, ratio * 20)
    return max(0, round_int(score))
