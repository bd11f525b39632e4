"""AccommodationOffsetCalculator: permissible accommodation offset against NMW pay."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, timedelta
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Optional

from pydantic import BaseModel

from nmwguard.core.exceptions import ValidationError
from nmwguard.core.money import HUNDRED, ZERO, quantize, round_int, to_decimal
from nmwguard.models.outputs import RAGStatus
from nmwguard.models.results import AccommodationPeriod, AccommodationResult
from nmwguard.models.worker import PayPeriod, Worker

logger = logging.getLogger(__name__)

AMBER_COMPLIANT_DAYS_PCT = Decimal("80")


class OffsetFigures(BaseModel):
    """The pure arithmetic of an accommodation offset for a charge over ``days``."""

    daily_charge: Decimal
    permissible_daily: Decimal
    total_offset: Decimal
    daily_excess: Decimal
    total_excess: Decimal
    compliant_days: int
    non_compliant_days: int
    status: RAGStatus
    score: int


def compute_offset(total_charge: Decimal, days: int, daily_limit: Decimal) -> OffsetFigures:
    """Split ``total_charge`` into permissible offset and excess.

    ``total_offset + total_excess == total_charge`` to the penny: the excess
    is taken as the remainder rather than rounded independently.
    """
    if days <= 0:
        raise ValidationError("Accommodation period must cover at least one day")
    charge = quantize(total_charge)
    daily = charge / days

    if daily <= daily_limit:
        total_offset = charge
        compliant_days = days
        status = RAGStatus.GREEN
    else:
        total_offset = quantize(daily_limit * days)
        if daily_limit > 0:
            full_days = int((charge / daily_limit).to_integral_value(rounding=ROUND_FLOOR))
            compliant_days = min(days, full_days)
        else:
            compliant_days = 0
        ratio = Decimal(compliant_days) / days * HUNDRED
        status = RAGStatus.AMBER if ratio >= AMBER_COMPLIANT_DAYS_PCT else RAGStatus.RED

    return OffsetFigures(
        daily_charge=quantize(daily),
        permissible_daily=quantize(min(daily, daily_limit)),
        total_offset=total_offset,
        daily_excess=quantize(max(ZERO, daily - daily_limit)),
        total_excess=charge - total_offset,
        compliant_days=compliant_days,
        non_compliant_days=days - compliant_days,
        status=status,
        score=round_int(Decimal(compliant_days) / days * HUNDRED),
    )


def working_days(start: date, end: date) -> int:
    """Weekdays between ``start`` and ``end`` inclusive."""
    count = 0
    day = start
    while day <= end:
        if day.weekday() < 5:
            count += 1
        day += timedelta(days=1)
    return count


class AccommodationSummary(BaseModel):
    total_workers: int = 0
    total_charges: Decimal = ZERO
    total_offsets: Decimal = ZERO
    total_excess: Decimal = ZERO
    green: int = 0
    amber: int = 0
    red: int = 0
    average_compliance_score: Decimal = ZERO


class AccommodationOffsetCalculator:
    """Applies the daily accommodation offset limit over an inclusive pay period."""

    def __init__(self, daily_limit: Decimal = Decimal("9.99")) -> None:
        self._daily_limit = daily_limit

    def calculate(
        self,
        worker: Worker,
        pay_period: PayPeriod,
        total_charge: Any,
        *,
        daily_limit: Optional[Decimal] = None,
    ) -> AccommodationResult:
        start, end = pay_period.start_date, pay_period.end_date
        errors = []
        if not worker.worker_id:
            errors.append("Worker ID is required")
        if start is None or end is None:
            errors.append("Pay period start and end dates are required")
        elif start >= end:
            errors.append("Pay period start date must be before end date")
        try:
            charge = to_decimal(total_charge, field="Accommodation total charge")
        except ValidationError as exc:
            errors.extend(exc.errors)
            charge = ZERO
        if charge < 0:
            errors.append("Accommodation total charge cannot be negative")
        if errors or start is None or end is None:
            raise ValidationError(errors, worker_id=worker.worker_id, pay_period_id=pay_period.pay_period_id)

        limit = self._daily_limit if daily_limit is None else daily_limit
        days = pay_period.day_count
        figures = compute_offset(charge, days, limit)

        if figures.total_excess > 0:
            logger.info(
                "Accommodation charge exceeds daily limit",
                extra={
                    "worker_id": worker.worker_id,
                    "daily_charge": str(figures.daily_charge),
                    "daily_limit": str(limit),
                },
            )
        return AccommodationResult(
            worker_id=worker.worker_id,
            pay_period_id=pay_period.pay_period_id,
            period=AccommodationPeriod(
                start_date=start,
                end_date=end,
                total_days=days,
                working_days=working_days(start, end),
            ),
            total_charge=quantize(charge),
            daily_charge=figures.daily_charge,
            daily_limit=limit,
            period_limit=quantize(limit * days),
            permissible_daily=figures.permissible_daily,
            total_offset=figures.total_offset,
            daily_excess=figures.daily_excess,
            total_excess=figures.total_excess,
            compliant_days=figures.compliant_days,
            non_compliant_days=figures.non_compliant_days,
            compliance_status=figures.status,
            compliance_score=figures.score,
        )

    @staticmethod
    def summarize(results: Sequence[AccommodationResult]) -> AccommodationSummary:
        summary = AccommodationSummary(total_workers=len(results))
        for result in results:
            summary.total_charges += result.total_charge
            summary.total_offsets += result.total_offset
            summary.total_excess += result.total_excess
            if result.compliance_status == RAGStatus.GREEN:
                summary.green += 1
            elif result.compliance_status == RAGStatus.AMBER:
                summary.amber += 1
            else:
                summary.red += 1
        if results:
            summary.average_compliance_score = quantize(
                Decimal(sum(r.compliance_score for r in results)) / len(results)
            )
        return summary
