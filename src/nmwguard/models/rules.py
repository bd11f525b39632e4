"""Classification rule table models for pay component labels."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Treatment(StrEnum):
    FULL_INCLUSION = "full_inclusion"
    FULL_EXCLUSION = "full_exclusion"
    BASIC_RATE_ONLY = "basic_rate_only"
    REQUIRES_MANUAL_REVIEW = "requires_manual_review"


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    Confidence.NONE: 0,
    Confidence.LOW: 1,
    Confidence.MEDIUM: 2,
    Confidence.HIGH: 3,
}

UNCLASSIFIED = "unclassified"


class ClassificationRule(BaseModel):
    """Keywords for one category path, e.g. ``allowances.general``."""

    model_config = {"frozen": True}

    category_path: str
    category: str
    treatment: Treatment
    keywords: tuple[str, ...] = ()
    description: str = ""
    confidence: Confidence = Confidence.HIGH


class RuleTableSnapshot(BaseModel):
    """Immutable, ordered copy of the classification rule table."""

    model_config = {"frozen": True}

    version: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    rules: tuple[ClassificationRule, ...] = ()

    @classmethod
    def from_document(cls, document: dict[str, Any], version: str = "") -> "RuleTableSnapshot":
        """Flatten ``payComponents`` into rules in document order.

        A category holding ``keywords`` is a rule itself (``basicPay``);
        otherwise each child with ``keywords`` becomes ``<category>.<child>``.
        """
        rules = []
        for key, data in (document.get("payComponents") or {}).items():
            if "keywords" in data:
                rules.append(_rule(key, data))
                continue
            for sub_key, sub_data in data.items():
                if isinstance(sub_data, dict) and "keywords" in sub_data:
                    rules.append(_rule(f"{key}.{sub_key}", sub_data))
        return cls(version=version, metadata=document.get("metadata", {}), rules=tuple(rules))


def _rule(path: str, data: dict[str, Any]) -> ClassificationRule:
    return ClassificationRule(
        category_path=path,
        category=data.get("category", ""),
        treatment=data.get("treatment"),
        keywords=tuple(data.get("keywords") or ()),
        description=data.get("description", ""),
        confidence=data.get("confidence", Confidence.HIGH),
    )


class ClassificationResult(BaseModel):
    """How one pay component label is treated for NMW purposes."""

    model_config = {"frozen": True}

    component_name: str
    normalized_name: str
    category_path: str = UNCLASSIFIED
    category: str = UNCLASSIFIED
    treatment: Treatment = Treatment.REQUIRES_MANUAL_REVIEW
    confidence: Confidence = Confidence.NONE
    matched_keyword: Optional[str] = None
    description: str = ""

    @property
    def is_unclassified(self) -> bool:
        return self.category_path == UNCLASSIFIED


class ClassificationReport(BaseModel):
    """Outcome of reviewing a batch of classifications before use."""

    is_valid: bool
    warnings: list[str] = Field(default_factory=list)
    unclassified: list[str] = Field(default_factory=list)
    total_classified: int = 0
    total_unclassified: int = 0
