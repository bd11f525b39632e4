"""AllowancePremiumProcessor: eligible allowances and basic-rate portions of premiums."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from nmwguard.calculators.classifier import ComponentClassifier
from nmwguard.core.exceptions import ValidationError
from nmwguard.core.money import ZERO, quantize
from nmwguard.core.types import PayComponents, PayPeriodId, WorkerId
from nmwguard.models.outputs import ComplianceWarning, IssueCode, Severity, WarningSource
from nmwguard.models.results import (
    AllowanceLine,
    AllowancePremiumResult,
    AllowancePremiumTotals,
    PremiumSplit,
)
from nmwguard.models.rules import ClassificationResult, Confidence, Treatment

logger = logging.getLogger(__name__)

ALLOWANCE_PREFIX = "allowances."
PREMIUM_PREFIX = "premiums."

# Checked in order against the matched keyword; the first fragment found wins.
PREMIUM_BASIC_RATIOS: tuple[tuple[str, Decimal], ...] = (
    ("time_and_half", Decimal("0.67")),
    ("time_and_a_half", Decimal("0.67")),
    ("double_time", Decimal("0.50")),
    ("shift", Decimal("0.80")),
    ("weekend", Decimal("0.75")),
)
DEFAULT_BASIC_RATIO = Decimal("0.67")


def basic_ratio(keyword: Optional[str]) -> Decimal:
    if keyword:
        for fragment, ratio in PREMIUM_BASIC_RATIOS:
            if fragment in keyword:
                return ratio
    return DEFAULT_BASIC_RATIO


def split_premium(result: ClassificationResult, value: Decimal) -> PremiumSplit:
    """Estimate the basic-rate portion of an uplifted payment from its keyword."""
    ratio = basic_ratio(result.matched_keyword)
    basic = quantize(value * ratio)
    return PremiumSplit(
        name=result.component_name,
        total_value=value,
        basic_rate_portion=basic,
        premium_portion=value - basic,
        ratio=ratio,
        matched_keyword=result.matched_keyword,
        category_path=result.category_path,
    )


class AllowancePremiumSummary(BaseModel):
    total_workers: int = 0
    total_allowances_included: Decimal = ZERO
    total_allowances_excluded: Decimal = ZERO
    total_premiums_basic_rate: Decimal = ZERO
    total_nmw_eligible: Decimal = ZERO
    workers_with_unclassified: int = 0
    workers_requiring_verification: int = 0


class AllowancePremiumProcessor:
    def __init__(self, classifier: ComponentClassifier) -> None:
        self._classifier = classifier

    def process(
        self, worker_id: WorkerId, pay_period_id: PayPeriodId, components: PayComponents
    ) -> AllowancePremiumResult:
        errors = []
        if not worker_id:
            errors.append("Worker ID is required")
        if not pay_period_id:
            errors.append("Pay period ID is required")
        if not components:
            errors.append("Pay components are required")
        if errors:
            raise ValidationError(errors, worker_id=worker_id or None, pay_period_id=pay_period_id or None)

        try:
            classified = self._classifier.classify_components(components)
        except ValidationError as exc:
            raise ValidationError(exc.errors, worker_id=worker_id, pay_period_id=pay_period_id) from exc

        result = AllowancePremiumResult(worker_id=worker_id, pay_period_id=pay_period_id)
        totals = AllowancePremiumTotals()
        for classification, value in classified:
            result.classifications.append(classification)
            path = classification.category_path
            if classification.is_unclassified:
                result.unclassified.append(
                    AllowanceLine(name=classification.component_name, value=value, category_path=path,
                                  reason=classification.description)
                )
            elif path.startswith(ALLOWANCE_PREFIX):
                line = AllowanceLine(
                    name=classification.component_name,
                    value=value,
                    category_path=path,
                    reason=classification.description,
                )
                if classification.treatment == Treatment.FULL_INCLUSION:
                    result.allowances_included.append(line)
                    totals.total_allowances_included += value
                elif classification.treatment == Treatment.FULL_EXCLUSION:
                    result.allowances_excluded.append(line)
                    totals.total_allowances_excluded += value
            elif path.startswith(PREMIUM_PREFIX) and classification.treatment == Treatment.BASIC_RATE_ONLY:
                split = split_premium(classification, value)
                result.premiums.append(split)
                totals.total_premiums_basic_rate += split.basic_rate_portion
                totals.total_premiums_excluded += split.premium_portion

        totals.total_nmw_eligible = totals.total_allowances_included + totals.total_premiums_basic_rate
        result.totals = totals
        result.warnings = self._warnings(result)
        result.metadata = {
            "total_components_processed": len(classified),
            "classified_components": len(classified) - len(result.unclassified),
            "unclassified_components": len(result.unclassified),
        }
        logger.debug(
            "Allowances and premiums processed",
            extra={"worker_id": worker_id, "nmw_eligible": str(totals.total_nmw_eligible)},
        )
        return result

    @staticmethod
    def _warnings(result: AllowancePremiumResult) -> list[ComplianceWarning]:
        warnings = []
        if result.unclassified:
            names = [line.name for line in result.unclassified]
            warnings.append(
                ComplianceWarning(
                    source=WarningSource.ALLOWANCES_PREMIUMS,
                    code=IssueCode.UNCLASSIFIED_COMPONENT,
                    type="unclassified_components",
                    severity=Severity.MEDIUM,
                    message=f"{len(names)} pay component(s) could not be classified: {', '.join(names)}",
                    details={"components": names},
                )
            )
        low = [c.component_name for c in result.classifications if c.confidence == Confidence.LOW]
        if low:
            warnings.append(
                ComplianceWarning(
                    source=WarningSource.ALLOWANCES_PREMIUMS,
                    code=IssueCode.LOW_CONFIDENCE_CLASSIFICATION,
                    type="low_confidence",
                    severity=Severity.MEDIUM,
                    message=f"Low confidence classification for: {', '.join(low)}",
                    details={"components": low},
                )
            )
        estimated = [p.name for p in result.premiums if p.method == "estimated"]
        if estimated:
            warnings.append(
                ComplianceWarning(
                    source=WarningSource.ALLOWANCES_PREMIUMS,
                    code=IssueCode.ESTIMATED_PREMIUM_SPLIT,
                    type="estimated_premiums",
                    severity=Severity.MEDIUM,
                    message=(
                        "Premium basic rate portions are estimated from keyword ratios, not the "
                        "contracted basic rate. Manual verification is advised."
                    ),
                    details={"components": estimated},
                )
            )
        return warnings

    @staticmethod
    def summarize(results: Sequence[AllowancePremiumResult]) -> AllowancePremiumSummary:
        summary = AllowancePremiumSummary(total_workers=len(results))
        for result in results:
            summary.total_allowances_included += result.totals.total_allowances_included
            summary.total_allowances_excluded += result.totals.total_allowances_excluded
            summary.total_premiums_basic_rate += result.totals.total_premiums_basic_rate
            summary.total_nmw_eligible += result.totals.total_nmw_eligible
            if result.unclassified:
                summary.workers_with_unclassified += 1
            if result.requires_manual_verification:
                summary.workers_requiring_verification += 1
        return summary
