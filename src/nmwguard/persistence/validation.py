"""Integrity checks for the rate table and the classification rule table."""

from __future__ import annotations

from decimal import Decimal

from nmwguard.models.rates import RateTableSnapshot
from nmwguard.models.rules import RuleTableSnapshot

MAX_EXPECTED_ACCOMMODATION_LIMIT = Decimal("20")


def validate_rate_table(table: RateTableSnapshot) -> tuple[list[str], list[str]]:
    """Return ``(errors, warnings)`` for a rate table snapshot."""
    errors: list[str] = []
    warnings: list[str] = []

    if not table.records:
        errors.append("Rate table has no rate records")
    if not table.metadata.get("version"):
        warnings.append("Rate table metadata has no version")

    for record in table.records:
        label = f"record from {record.effective_from.isoformat()}"
        if record.effective_to is not None and record.effective_to < record.effective_from:
            errors.append(f"{label} ends before it starts")
        if not record.age_bands:
            errors.append(f"{label} has no age bands")
        if record.apprentice is None:
            errors.append(f"{label} has no apprentice rate")
        for band in (*record.age_bands, *((record.apprentice,) if record.apprentice else ())):
            if band.hourly_rate < 0:
                errors.append(f"{label} band {band.key!r} has a negative hourly rate")
        limit = record.accommodation_daily_limit
        if limit is not None:
            if limit < 0:
                errors.append(f"{label} has a negative accommodation daily limit")
            elif limit > MAX_EXPECTED_ACCOMMODATION_LIMIT:
                warnings.append(f"{label} accommodation daily limit {limit} seems high")

    ordered = sorted(table.records, key=lambda r: r.effective_from)
    for earlier, later in zip(ordered, ordered[1:]):
        if earlier.effective_to is None or earlier.effective_to >= later.effective_from:
            errors.append(
                f"Rate records from {earlier.effective_from.isoformat()} and "
                f"{later.effective_from.isoformat()} overlap"
            )

    return errors, warnings


def validate_rule_table(table: RuleTableSnapshot) -> tuple[list[str], list[str]]:
    """Return ``(errors, warnings)`` for a classification rule table snapshot."""
    errors: list[str] = []
    warnings: list[str] = []

    if not table.rules:
        errors.append("Rule table has no classification rules")
    if not table.metadata.get("version"):
        warnings.append("Rule table metadata has no version")

    seen: dict[str, str] = {}
    for rule in table.rules:
        if not rule.keywords:
            errors.append(f"Rule {rule.category_path!r} has no keywords")
        for keyword in rule.keywords:
            if keyword in seen:
                warnings.append(
                    f"Keyword {keyword!r} appears in {seen[keyword]!r} and {rule.category_path!r}"
                )
            else:
                seen[keyword] = rule.category_path

    return errors, warnings
