"""ComponentClassifier: one shared keyword classifier for pay component labels.

Both the allowance/premium processor and the tronc processor classify through
this module, so a label is never judged differently by the two.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import Decimal

from nmwguard.core.money import to_decimal
from nmwguard.core.types import PayComponents
from nmwguard.models.rules import (
    ClassificationReport,
    ClassificationResult,
    ClassificationRule,
    Confidence,
    RuleTableSnapshot,
    Treatment,
)

_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Period totals supplied alongside components; never classified themselves.
RESERVED_COMPONENT_KEYS = frozenset({"total_pay", "gross_pay"})


def normalize(label: str) -> str:
    return _NON_ALNUM.sub("_", label.lower())


def match_confidence(keyword: str, name: str) -> Confidence:
    if keyword == name:
        return Confidence.HIGH
    if keyword in name and len(keyword) > 4:
        return Confidence.HIGH
    return Confidence.MEDIUM


def eligible_components(components: PayComponents) -> list[tuple[str, Decimal]]:
    """Non-zero components in input order, with amounts as Decimal."""
    eligible = []
    for name, value in components.items():
        if name in RESERVED_COMPONENT_KEYS:
            continue
        amount = to_decimal(value, field=f"Pay component {name!r}")
        if amount == 0:
            continue
        eligible.append((name, amount))
    return eligible


class ComponentClassifier:
    """Classifies labels against an ordered rule table.

    The first rule matching at high confidence wins; failing that, the first
    rule that matches at all. A specific keyword later in the table (``pooled_tips``)
    therefore beats a generic substring hit earlier on (``tips``).
    """

    def __init__(self, table: RuleTableSnapshot) -> None:
        self._table = table

    @property
    def table(self) -> RuleTableSnapshot:
        return self._table

    def classify(self, label: str) -> ClassificationResult:
        name = normalize(label)
        fallback: ClassificationResult | None = None
        for rule in self._table.rules:
            keyword = _first_match(rule, name)
            if keyword is None:
                continue
            confidence = match_confidence(keyword, name)
            if rule.confidence.rank < confidence.rank:
                confidence = rule.confidence
            result = ClassificationResult(
                component_name=label,
                normalized_name=name,
                category_path=rule.category_path,
                category=rule.category,
                treatment=rule.treatment,
                confidence=confidence,
                matched_keyword=keyword,
                description=rule.description,
            )
            if confidence == Confidence.HIGH:
                return result
            if fallback is None:
                fallback = result
        if fallback is not None:
            return fallback
        return ClassificationResult(
            component_name=label,
            normalized_name=name,
            treatment=Treatment.REQUIRES_MANUAL_REVIEW,
            confidence=Confidence.NONE,
            description=f"Component {label!r} requires manual classification",
        )

    def classify_components(
        self, components: PayComponents
    ) -> list[tuple[ClassificationResult, Decimal]]:
        return [(self.classify(name), amount) for name, amount in eligible_components(components)]


def _first_match(rule: ClassificationRule, name: str) -> str | None:
    if not name:
        return None
    for keyword in rule.keywords:
        if keyword in name or name in keyword:
            return keyword
    return None


def validate_classifications(results: Iterable[ClassificationResult]) -> ClassificationReport:
    """Collect unclassified labels and review warnings for a set of classifications."""
    warnings: list[str] = []
    unclassified: list[str] = []
    classified = 0
    for result in results:
        if result.is_unclassified:
            unclassified.append(result.component_name)
        else:
            classified += 1
        if result.confidence == Confidence.LOW:
            warnings.append(f"Low confidence classification for {result.component_name!r}")
        if result.treatment == Treatment.REQUIRES_MANUAL_REVIEW:
            warnings.append(f"Manual review required for {result.component_name!r}")
    return ClassificationReport(
        is_valid=not unclassified,
        warnings=warnings,
        unclassified=unclassified,
        total_classified=classified,
        total_unclassified=len(unclassified),
    )
