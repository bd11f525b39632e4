"""TroncExclusionProcessor: removes tips, gratuities and tronc from NMW-eligible pay.

Only rule-based, high-confidence tip classifications are subtracted. Anything
else that looks like a tip is flagged for review and left in pay.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from nmwguard.calculators.classifier import ComponentClassifier, RESERVED_COMPONENT_KEYS
from nmwguard.core.exceptions import ValidationError
from nmwguard.core.money import ZERO, format_gbp, percentage, quantize, to_decimal
from nmwguard.core.types import PayComponents, PayPeriodId, WorkerId
from nmwguard.models.outputs import ComplianceWarning, IssueCode, Severity, WarningSource
from nmwguard.models.results import ExclusionImpact, TroncItem, TroncResult
from nmwguard.models.rules import ClassificationResult, Confidence

logger = logging.getLogger(__name__)

TIPS_PREFIX = "tips."

TRONC_KEYWORDS = frozenset({
    "tronc", "tips", "gratuities", "service_charge", "cover_charge", "customer_tips",
    "tip_share", "pooled_tips", "gratuity", "service_fee", "tip_pool",
})

RULE_HIGH = "rule_based_high_confidence"
RULE_MEDIUM = "rule_based_medium_confidence"
KEYWORD = "keyword_detection"
REVIEW_REASON = "Lower confidence detection - manual verification recommended"

_IMPACT_BANDS: tuple[tuple[Decimal, ExclusionImpact], ...] = (
    (Decimal("5"), ExclusionImpact.MINIMAL),
    (Decimal("20"), ExclusionImpact.MODERATE),
    (Decimal("30"), ExclusionImpact.SIGNIFICANT),
)


def impact_category(exclusion_pct: Decimal) -> ExclusionImpact:
    if exclusion_pct <= 0:
        return ExclusionImpact.NONE
    for upper, impact in _IMPACT_BANDS:
        if exclusion_pct < upper:
            return impact
    return ExclusionImpact.CRITICAL


def keyword_hit(name: str) -> Optional[str]:
    for keyword in sorted(TRONC_KEYWORDS):
        if keyword in name:
            return keyword
    return None


class TroncSummary(BaseModel):
    total_workers: int = 0
    workers_with_exclusions: int = 0
    workers_with_flags: int = 0
    total_excluded: Decimal = ZERO
    total_flagged: Decimal = ZERO
    total_gross_pay: Decimal = ZERO
    average_exclusion_percentage: Decimal = ZERO
    impact_distribution: dict[ExclusionImpact, int] = Field(default_factory=dict)


class TroncExclusionProcessor:
    def __init__(self, classifier: ComponentClassifier, review_threshold_pct: Decimal = Decimal("15")) -> None:
        self._classifier = classifier
        self._review_threshold_pct = review_threshold_pct

    def process(
        self,
        worker_id: WorkerId,
        pay_period_id: PayPeriodId,
        components: PayComponents,
        *,
        gross_pay: Optional[Decimal] = None,
    ) -> TroncResult:
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
            gross = self._gross(components, classified, gross_pay)
        except ValidationError as exc:
            raise ValidationError(exc.errors, worker_id=worker_id, pay_period_id=pay_period_id) from exc

        result = TroncResult(worker_id=worker_id, pay_period_id=pay_period_id, gross_pay=gross)
        for classification, value in classified:
            item = self._detect(classification, value)
            if item is None:
                continue
            if item.detection_method == RULE_HIGH:
                result.excluded_components.append(item)
                result.total_excluded += value
            else:
                result.flagged_components.append(item)
                result.total_flagged += value

        result.adjusted_pay = gross - result.total_excluded
        result.exclusion_percentage = percentage(result.total_excluded, gross)
        result.impact_category = impact_category(result.exclusion_percentage)
        result.warnings = self._warnings(result)
        if result.total_excluded > 0:
            logger.info(
                "Tronc components excluded",
                extra={
                    "worker_id": worker_id,
                    "total_excluded": str(result.total_excluded),
                    "impact": str(result.impact_category),
                },
            )
        return result

    @staticmethod
    def _gross(
        components: PayComponents,
        classified: Sequence[tuple[ClassificationResult, Decimal]],
        gross_pay: Optional[Decimal],
    ) -> Decimal:
        if gross_pay is not None:
            return gross_pay
        for key in sorted(RESERVED_COMPONENT_KEYS):
            if components.get(key) not in (None, ""):
                return to_decimal(components[key], field=key)
        return sum((value for _, value in classified), ZERO)

    @staticmethod
    def _detect(classification: ClassificationResult, value: Decimal) -> Optional[TroncItem]:
        if classification.category_path.startswith(TIPS_PREFIX):
            if classification.confidence == Confidence.HIGH:
                return TroncItem(
                    name=classification.component_name,
                    value=value,
                    category_path=classification.category_path,
                    confidence=str(classification.confidence),
                    detection_method=RULE_HIGH,
                    reason=classification.description or "Tips and gratuities are excluded from NMW pay",
                )
            return TroncItem(
                name=classification.component_name,
                value=value,
                category_path=classification.category_path,
                confidence=str(classification.confidence),
                detection_method=RULE_MEDIUM,
                reason=REVIEW_REASON,
            )
        keyword = keyword_hit(classification.normalized_name)
        if keyword is None:
            return None
        return TroncItem(
            name=classification.component_name,
            value=value,
            category_path=classification.category_path,
            confidence="requires_manual_review",
            detection_method=KEYWORD,
            reason=f"{REVIEW_REASON} (matched {keyword!r})",
        )

    def _warnings(self, result: TroncResult) -> list[ComplianceWarning]:
        warnings = []
        if result.total_excluded > 0:
            warnings.append(
                ComplianceWarning(
                    source=WarningSource.TRONC_EXCLUSIONS,
                    code=IssueCode.TRONC_EXCLUDED,
                    type="tronc_exclusion",
                    severity=Severity.CRITICAL,
                    message=(
                        f"{format_gbp(result.total_excluded)} of tips, gratuities or tronc excluded "
                        f"from NMW pay ({result.exclusion_percentage}% of gross)"
                    ),
                    details={
                        "components": [item.name for item in result.excluded_components],
                        "total_excluded": result.total_excluded,
                    },
                )
            )
        if result.exclusion_percentage >= self._review_threshold_pct:
            warnings.append(
                ComplianceWarning(
                    source=WarningSource.TRONC_EXCLUSIONS,
                    code=IssueCode.SIGNIFICANT_TIP_PROPORTION,
                    type="significant_tip_proportion",
                    severity=Severity.HIGH,
                    message=(
                        f"Tips make up {result.exclusion_percentage}% of gross pay. "
                        "Review whether base pay meets minimum wage on its own."
                    ),
                    details={"exclusion_percentage": result.exclusion_percentage},
                )
            )
        if result.flagged_components:
            names = [item.name for item in result.flagged_components]
            warnings.append(
                ComplianceWarning(
                    source=WarningSource.TRONC_EXCLUSIONS,
                    code=IssueCode.TRONC_REVIEW_REQUIRED,
                    type="tronc_review_required",
                    severity=Severity.MEDIUM,
                    message=(
                        f"{len(names)} possible tip component(s) not excluded pending review: "
                        f"{', '.join(names)}"
                    ),
                    details={"components": names, "total_flagged": result.total_flagged},
                )
            )
        return warnings

    @staticmethod
    def summarize(results: Sequence[TroncResult]) -> TroncSummary:
        summary = TroncSummary(
            total_workers=len(results),
            impact_distribution={impact: 0 for impact in ExclusionImpact},
        )
        for result in results:
            summary.total_excluded += result.total_excluded
            summary.total_flagged += result.total_flagged
            summary.total_gross_pay += result.gross_pay
            summary.impact_distribution[result.impact_category] += 1
            if result.excluded_components:
                summary.workers_with_exclusions += 1
            if result.flagged_components:
                summary.workers_with_flags += 1
        if results:
            summary.average_exclusion_percentage = quantize(
                sum((r.exclusion_percentage for r in results), ZERO) / len(results)
            )
        return summary
