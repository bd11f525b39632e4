"""Tests for tips, gratuities and tronc exclusion."""

from __future__ import annotations

from decimal import Decimal

import pytest

from nmwguard.calculators.tronc import (
    KEYWORD,
    RULE_HIGH,
    RULE_MEDIUM,
    TroncExclusionProcessor,
    impact_category,
)
from nmwguard.core.exceptions import ValidationError
from nmwguard.models.outputs import IssueCode, Severity
from nmwguard.models.results import ExclusionImpact

COMPONENTS = {
    "Basic Pay": 400,
    "Tronc": 60,
    "Card Tips": 20,
    "Service Fee": 10,
    "Overtime": 10,
}


@pytest.fixture
def processor(classifier):
    return TroncExclusionProcessor(classifier)


class TestImpactCategory:
    @pytest.mark.parametrize(
        "pct, impact",
        [
            ("0", ExclusionImpact.NONE),
            ("4.99", ExclusionImpact.MINIMAL),
            ("5", ExclusionImpact.MODERATE),
            ("19.99", ExclusionImpact.MODERATE),
            ("29.99", ExclusionImpact.SIGNIFICANT),
            ("30", ExclusionImpact.CRITICAL),
        ],
    )
    def test_bands(self, pct, impact):
        assert impact_category(Decimal(pct)) == impact


class TestProcess:
    def test_only_high_confidence_rule_matches_are_excluded(self, processor):
        result = processor.process("W001", "PP1", COMPONENTS)
        assert [i.name for i in result.excluded_components] == ["Tronc"]
        assert result.excluded_components[0].detection_method == RULE_HIGH
        assert result.total_excluded == Decimal("60")
        assert result.gross_pay == Decimal("500")
        assert result.adjusted_pay == Decimal("440")
        assert result.exclusion_percentage == Decimal("12.00")
        assert result.impact_category == ExclusionImpact.MODERATE

    def test_pooled_tips_are_excluded(self, processor):
        result = processor.process("W001", "PP1", {"Basic Pay": 400, "Pooled Tips": 25})
        assert [i.name for i in result.excluded_components] == ["Pooled Tips"]
        assert result.flagged_components == []
        assert result.total_excluded == Decimal("25")

    def test_lower_confidence_matches_flagged_not_subtracted(self, processor):
        result = processor.process("W001", "PP1", COMPONENTS)
        methods = {i.name: i.detection_method for i in result.flagged_components}
        assert methods == {"Card Tips": RULE_MEDIUM, "Service Fee": KEYWORD}
        assert result.total_flagged == Decimal("30")
        assert all("manual verification" in i.reason for i in result.flagged_components)

    def test_warnings(self, processor):
        result = processor.process("W001", "PP1", COMPONENTS)
        codes = [w.code for w in result.warnings]
        assert codes == [IssueCode.TRONC_EXCLUDED, IssueCode.TRONC_REVIEW_REQUIRED]
        assert result.warnings[0].severity == Severity.CRITICAL

    def test_significant_proportion_with_explicit_gross(self, processor):
        result = processor.process("W001", "PP1", {"Tronc": 60}, gross_pay=Decimal("300"))
        assert result.exclusion_percentage == Decimal("20.00")
        assert result.impact_category == ExclusionImpact.SIGNIFICANT
        assert IssueCode.SIGNIFICANT_TIP_PROPORTION in [w.code for w in result.warnings]

    def test_gross_pay_component_used_as_gross(self, processor):
        result = processor.process("W001", "PP1", {"gross_pay": 1000, "tronc": 50})
        assert result.gross_pay == Decimal("1000")
        assert result.exclusion_percentage == Decimal("5.00")

    def test_zeroed_tips_exclude_nothing(self, processor):
        result = processor.process("W001", "PP1", {"Basic Pay": 400, "Tronc": 0, "Tips": 0})
        assert result.total_excluded == Decimal("0")
        assert result.impact_category == ExclusionImpact.NONE
        assert result.warnings == []

    def test_validation(self, processor):
        with pytest.raises(ValidationError, match="Pay components are required"):
            processor.process("W001", "PP1", {})


def test_summarize(processor):
    results = [
        processor.process("W001", "PP1", COMPONENTS),
        processor.process("W002", "PP1", {"Basic Pay": 400}),
    ]
    summary = TroncExclusionProcessor.summarize(results)
    assert summary.total_workers == 2
    assert summary.workers_with_exclusions == 1
    assert summary.workers_with_flags == 1
    assert summary.total_excluded == Decimal("60")
    assert summary.impact_distribution[ExclusionImpact.MODERATE] == 1
    assert summary.impact_distribution[ExclusionImpact.NONE] == 1
    assert summary.average_exclusion_percentage == Decimal("6.00")
