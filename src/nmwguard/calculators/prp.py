"""PRPCalculator: base effective hourly rate and verdict for one pay reference period."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from nmwguard.calculators.rate_resolver import RateResolver
from nmwguard.core.exceptions import NMWGuardError, ValidationError
from nmwguard.core.money import HUNDRED, ZERO, format_gbp, quantize, round_int
from nmwguard.core.result import Err, Ok, Result
from nmwguard.models.inputs import AllowanceCategory, AllowanceItem, OffsetCategory, OffsetItem
from nmwguard.models.outputs import Issue, IssueCode, RAGStatus, Recommendation, Severity
from nmwguard.models.rates import ResolvedRate
from nmwguard.models.results import AllowanceSummary, OffsetSummary, PRPResult
from nmwguard.models.worker import PayPeriod, Worker

logger = logging.getLogger(__name__)

OFFSET_KEYWORDS: tuple[tuple[OffsetCategory, tuple[str, ...]], ...] = (
    (OffsetCategory.ACCOMMODATION, ("accommodation", "housing")),
    (OffsetCategory.UNIFORM, ("uniform", "clothing")),
    (OffsetCategory.MEALS, ("meal", "food")),
)

ALLOWANCE_KEYWORDS: tuple[tuple[AllowanceCategory, tuple[str, ...]], ...] = (
    (AllowanceCategory.TRONC, ("tronc", "service charge")),
    (AllowanceCategory.PREMIUM, ("premium", "overtime")),
    (AllowanceCategory.BONUS, ("bonus", "incentive")),
)

STANDARD_WEEKLY_HOURS = Decimal("40")
WEEKS_PER_MONTH = Decimal("4.33")

RATE_PENALTY_CAP = Decimal("60")
RATE_PENALTY_WEIGHT = Decimal("1.5")
OFFSET_PENALTY_EACH = Decimal("10")
OFFSET_PENALTY_CAP = Decimal("25")
ALLOWANCE_PENALTY_EACH = Decimal("5")
ALLOWANCE_PENALTY_CAP = Decimal("15")


def categorize_offset(item: OffsetItem) -> OffsetCategory:
    if item.category is not None:
        return item.category
    description = item.description.lower()
    for category, keywords in OFFSET_KEYWORDS:
        if any(k in description for k in keywords):
            return category
    return OffsetCategory.DEDUCTIONS


def categorize_allowance(item: AllowanceItem) -> AllowanceCategory:
    if item.category is not None:
        return item.category
    description = item.description.lower()
    for category, keywords in ALLOWANCE_KEYWORDS:
        if any(k in description for k in keywords):
            return category
    return AllowanceCategory.BONUS


def effective_hourly_rate(total_pay: Decimal, hours: Decimal, offsets: Decimal, allowances: Decimal) -> Decimal:
    if hours <= 0:
        return ZERO
    return quantize((total_pay - offsets + allowances) / hours)


def status_with_tolerance(effective: Decimal, required: Decimal, tolerance_pct: Decimal) -> RAGStatus:
    """GREEN at or above required, AMBER within the tolerance band below it, else RED."""
    if effective >= required:
        return RAGStatus.GREEN
    if effective >= required - required * tolerance_pct / HUNDRED:
        return RAGStatus.AMBER
    return RAGStatus.RED


class PRPBatchItem(BaseModel):
    worker: Worker
    pay_period: PayPeriod
    offsets: list[OffsetItem] = Field(default_factory=list)
    allowances: list[AllowanceItem] = Field(default_factory=list)


@dataclass
class PRPBatchResult:
    results: list[Result[PRPResult]]
    total_workers: int
    compliant_workers: int = 0
    non_compliant_workers: int = 0
    failed_workers: int = 0
    average_compliance_score: int = 0


def validate_period_inputs(worker: Worker, pay_period: PayPeriod) -> None:
    """Raise one ValidationError listing every boundary problem found."""
    errors = []
    if not worker.worker_id:
        errors.append("Worker ID is required")
    if pay_period.start_date is None:
        errors.append("Pay period start date is required")
    if pay_period.end_date is None:
        errors.append("Pay period end date is required")
    if (
        pay_period.start_date is not None
        and pay_period.end_date is not None
        and pay_period.start_date >= pay_period.end_date
    ):
        errors.append("Pay period start date must be before end date")
    if pay_period.hours_worked < 0:
        errors.append("Hours worked cannot be negative")
    if pay_period.total_pay < 0:
        errors.append("Total pay cannot be negative")
    if errors:
        raise ValidationError(errors, worker_id=worker.worker_id, pay_period_id=pay_period.pay_period_id)


class PRPCalculator:
    """Computes the base effective rate for a PRP and its own tolerance-banded verdict."""

    def __init__(
        self,
        resolver: RateResolver,
        *,
        accommodation_daily_limit: Decimal = Decimal("9.99"),
        amber_tolerance_pct: Decimal = Decimal("2"),
        high_allowance_threshold: Decimal = Decimal("1000"),
    ) -> None:
        self._resolver = resolver
        self._accommodation_daily_limit = accommodation_daily_limit
        self._amber_tolerance_pct = amber_tolerance_pct
        self._high_allowance_threshold = high_allowance_threshold

    def offset_limits(self, rate: Optional[ResolvedRate] = None) -> dict[OffsetCategory, Optional[Decimal]]:
        accommodation = self._accommodation_daily_limit
        if rate is not None and rate.accommodation_daily_limit is not None:
            accommodation = rate.accommodation_daily_limit
        return {
            OffsetCategory.ACCOMMODATION: accommodation,
            OffsetCategory.UNIFORM: ZERO,
            OffsetCategory.MEALS: ZERO,
            OffsetCategory.DEDUCTIONS: None,
        }

    def calculate(
        self,
        worker: Worker,
        pay_period: PayPeriod,
        offsets: Sequence[OffsetItem] = (),
        allowances: Sequence[AllowanceItem] = (),
        *,
        required_rate: Optional[ResolvedRate] = None,
    ) -> PRPResult:
        validate_period_inputs(worker, pay_period)
        if required_rate is None:
            try:
                required_rate = self._resolver.resolve_for(worker, pay_period.start_date)
            except ValidationError as exc:
                raise ValidationError(
                    exc.errors, worker_id=worker.worker_id, pay_period_id=pay_period.pay_period_id
                ) from exc

        limits = self.offset_limits(required_rate)
        offset_summary = self._process_offsets(offsets, limits)
        allowance_summary, allowance_issues = self._process_allowances(allowances)

        hours = pay_period.hours_worked
        total_offsets = sum((s.total for s in offset_summary.values()), ZERO)
        total_allowances = sum((s.total for s in allowance_summary.values()), ZERO)
        effective = effective_hourly_rate(pay_period.total_pay, hours, total_offsets, total_allowances)
        required = required_rate.hourly_rate

        status = status_with_tolerance(effective, required, self._amber_tolerance_pct)
        issues = self._rate_issues(effective, required) + self._offset_issues(offset_summary) + allowance_issues
        suggestions = self._suggestions(effective, required, hours, total_offsets, offset_summary)
        score = self._score(effective, required, offset_summary, allowance_issues)

        logger.debug(
            "PRP calculated",
            extra={"worker_id": worker.worker_id, "status": str(status), "effective_rate": str(effective)},
        )
        return PRPResult(
            worker_id=worker.worker_id,
            pay_period_id=pay_period.pay_period_id,
            prp=pay_period.window,
            total_hours=hours,
            total_pay=pay_period.total_pay,
            offsets=offset_summary,
            total_offsets=total_offsets,
            allowances=allowance_summary,
            total_allowances=total_allowances,
            effective_hourly_rate=effective,
            required_hourly_rate=required,
            required_rate=required_rate,
            compliance_status=status,
            compliance_score=score,
            issues=issues,
            suggestions=suggestions,
        )

    def _process_offsets(
        self, offsets: Sequence[OffsetItem], limits: dict[OffsetCategory, Optional[Decimal]]
    ) -> dict[OffsetCategory, OffsetSummary]:
        summary = {c: OffsetSummary(max_daily=limits[c]) for c in OffsetCategory}
        for item in offsets:
            category = categorize_offset(item)
            entry = summary[category]
            entry.total += item.amount
            entry.daily += item.daily_rate
            entry.days += item.days_applied or 1
            limit = limits[category]
            if limit is not None and item.daily_rate > limit:
                entry.compliant = False
        return summary

    def _process_allowances(
        self, allowances: Sequence[AllowanceItem]
    ) -> tuple[dict[AllowanceCategory, AllowanceSummary], list[Issue]]:
        summary = {c: AllowanceSummary() for c in AllowanceCategory}
        issues = []
        for item in allowances:
            category = categorize_allowance(item)
            summary[category].total += item.amount
            if item.amount > self._high_allowance_threshold:
                summary[category].flagged += 1
                issues.append(
                    Issue(
                        type=f"{category}_allowance",
                        code=IssueCode.HIGH_ALLOWANCE,
                        severity=Severity.LOW,
                        message=f"{category} allowance {format_gbp(item.amount)} is unusually high",
                        details={"allowance_type": str(category), "amount": item.amount},
                    )
                )
        return summary, issues

    def _rate_issues(self, effective: Decimal, required: Decimal) -> list[Issue]:
        if effective >= required:
            return []
        return [
            Issue(
                type="hourly_rate",
                code=IssueCode.RATE_BELOW_MINIMUM,
                severity=Severity.HIGH,
                message=(
                    f"Effective hourly rate {format_gbp(effective)} is below "
                    f"required rate {format_gbp(required)}"
                ),
                details={"shortfall": required - effective, "current_rate": effective, "required_rate": required},
            )
        ]

    def _offset_issues(self, summary: dict[OffsetCategory, OffsetSummary]) -> list[Issue]:
        issues = []
        for category, entry in summary.items():
            if entry.compliant:
                continue
            code = (
                IssueCode.ACCOMMODATION_OFFSET_EXCEEDED
                if category == OffsetCategory.ACCOMMODATION
                else IssueCode.OFFSET_LIMIT_EXCEEDED
            )
            issues.append(
                Issue(
                    type=f"{category}_offset",
                    code=code,
                    severity=Severity.MEDIUM,
                    message=(
                        f"{category} offset {format_gbp(entry.daily)} per day exceeds "
                        f"limit {format_gbp(entry.max_daily or ZERO)}"
                    ),
                    details={"offset_type": str(category), "daily_rate": entry.daily, "limit": entry.max_daily},
                )
            )
        return issues

    def _suggestions(
        self,
        effective: Decimal,
        required: Decimal,
        hours: Decimal,
        total_offsets: Decimal,
        summary: dict[OffsetCategory, OffsetSummary],
    ) -> list[Recommendation]:
        suggestions = []
        if effective < required:
            shortfall = required - effective
            weekly = quantize(shortfall * STANDARD_WEEKLY_HOURS)
            suggestions.append(
                Recommendation(
                    type="increase_pay",
                    priority=Severity.HIGH,
                    message=f"Increase hourly rate by {format_gbp(shortfall)} to meet minimum wage requirements",
                    details={
                        "shortfall_per_hour": shortfall,
                        "weekly_impact": weekly,
                        "monthly_impact": quantize(weekly * WEEKS_PER_MONTH),
                    },
                )
            )
            if total_offsets > 0:
                reduction = quantize(shortfall * hours)
                suggestions.append(
                    Recommendation(
                        type="reduce_offsets",
                        priority=Severity.MEDIUM,
                        message=f"Reduce total offsets by {format_gbp(reduction)} to meet minimum wage",
                        details={"required_reduction": reduction, "current_offsets": total_offsets},
                    )
                )
        for category, entry in summary.items():
            if entry.compliant or entry.max_daily is None:
                continue
            suggestions.append(
                Recommendation(
                    type=f"fix_{category}_offset",
                    priority=Severity.MEDIUM,
                    message=f"Reduce {category} offset to maximum {format_gbp(entry.max_daily)} per day",
                    details={"offset_type": str(category), "current_daily": entry.daily, "max_daily": entry.max_daily},
                )
            )
        return suggestions

    def _score(
        self,
        effective: Decimal,
        required: Decimal,
        summary: dict[OffsetCategory, OffsetSummary],
        allowance_issues: list[Issue],
    ) -> int:
        score = HUNDRED
        if effective < required and required > 0:
            shortfall_pct = (required - effective) / required * HUNDRED
            score -= min(RATE_PENALTY_CAP, shortfall_pct * RATE_PENALTY_WEIGHT)
        non_compliant = sum(1 for entry in summary.values() if not entry.compliant)
        score -= min(OFFSET_PENALTY_CAP, OFFSET_PENALTY_EACH * non_compliant)
        score -= min(ALLOWANCE_PENALTY_CAP, ALLOWANCE_PENALTY_EACH * len(allowance_issues))
        return max(0, round_int(score))

    def batch_calculate(self, items: Sequence[PRPBatchItem]) -> PRPBatchResult:
        results: list[Result[PRPResult]] = []
        compliant = non_compliant = failed = 0
        scores = []
        for item in items:
            try:
                prp = self.calculate(item.worker, item.pay_period, item.offsets, item.allowances)
            except NMWGuardError as exc:
                failed += 1
                results.append(
                    Err.from_error(exc, worker_id=item.worker.worker_id, pay_period_id=item.pay_period.pay_period_id)
                )
                continue
            results.append(Ok(prp))
            scores.append(prp.compliance_score)
            if prp.compliance_status == RAGStatus.GREEN:
                compliant += 1
            else:
                non_compliant += 1
        return PRPBatchResult(
            results=results,
            total_workers=len(items),
            compliant_workers=compliant,
            non_compliant_workers=non_compliant,
            failed_workers=failed,
            average_compliance_score=round_int(Decimal(sum(scores)) / len(scores)) if scores else 0,
        )
