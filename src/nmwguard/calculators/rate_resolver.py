"""RateResolver: the legally required hourly rate for an age, date and apprentice status."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel

from nmwguard.core.exceptions import NMWGuardError, RateNotFoundError, ValidationError
from nmwguard.core.result import Err, Ok, Result
from nmwguard.models.rates import AgeBand, RateRecord, RateTableSnapshot, ResolvedRate
from nmwguard.models.worker import Worker, age_on

logger = logging.getLogger(__name__)

MIN_COVERED_AGE = 16
MAX_AGE = 150
APPRENTICE_RATE_AGE_LIMIT = 19


class RateLookupRequest(BaseModel):
    """One item of a bulk rate lookup."""

    reference_date: Optional[date] = None
    age: Optional[int] = None
    date_of_birth: Optional[date] = None
    is_apprentice: bool = False
    apprenticeship_start_date: Optional[date] = None
    worker_id: str = ""


def coerce_date(value: Any, field: str) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValidationError(f"{field} is not a valid date: {value!r}") from exc
    raise ValidationError(f"{field} is required")


def coerce_age(value: Any) -> int:
    """Accept an int or integral numeric; reject anything outside 16..150."""
    if value is None or value == "":
        raise ValidationError("Worker age is required")
    if isinstance(value, bool):
        raise ValidationError(f"Worker age must be numeric, got {value!r}")
    try:
        numeric = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"Worker age must be numeric, got {value!r}") from exc
    if not numeric.is_finite() or numeric != numeric.to_integral_value():
        raise ValidationError(f"Worker age must be a whole number, got {value!r}")
    age = int(numeric)
    if age < 0 or age > MAX_AGE:
        raise ValidationError(f"Worker age must be between 0 and {MAX_AGE}, got {age}")
    if age < MIN_COVERED_AGE:
        raise ValidationError(f"Workers aged under {MIN_COVERED_AGE} are not covered by NMW legislation")
    return age


def _one_year_after(start: date) -> date:
    try:
        return start.replace(year=start.year + 1)
    except ValueError:
        return start.replace(year=start.year + 1, day=28)


class RateResolver:
    """Resolves required rates against one immutable rate table snapshot."""

    def __init__(self, table: RateTableSnapshot) -> None:
        self._table = table

    @property
    def table(self) -> RateTableSnapshot:
        return self._table

    def record_for(self, reference_date: Any) -> RateRecord:
        when = coerce_date(reference_date, "Pay period date")
        record = self._table.record_for(when)
        if record is None:
            raise RateNotFoundError(f"No rate record covers {when.isoformat()}")
        return record

    def resolve(
        self,
        *,
        reference_date: Any,
        age: Any = None,
        date_of_birth: Optional[date] = None,
        is_apprentice: bool = False,
        apprenticeship_start_date: Any = None,
    ) -> ResolvedRate:
        """Return the required rate, checking apprentice eligibility before age bands.

        Apprentices under 19, or in the first year of their apprenticeship,
        get the apprentice rate. Everyone else gets the first age band (in
        table order) whose range contains their age.
        """
        when = coerce_date(reference_date, "Pay period date")
        if (age is None or age == "") and date_of_birth is not None:
            age = age_on(coerce_date(date_of_birth, "Date of birth"), when)
        worker_age = coerce_age(age)
        record = self.record_for(when)

        if is_apprentice and self._apprentice_eligible(worker_age, when, apprenticeship_start_date):
            if record.apprentice is None:
                raise RateNotFoundError(
                    f"Rate record from {record.effective_from.isoformat()} has no apprentice rate"
                )
            return self._resolved(record, record.apprentice, worker_age, apprentice=True)

        for band in record.age_bands:
            if band.contains(worker_age):
                return self._resolved(record, band, worker_age, apprentice=False)

        raise RateNotFoundError(
            f"No age band for age {worker_age} in rate record from {record.effective_from.isoformat()}"
        )

    def resolve_for(self, worker: Worker, reference_date: Any) -> ResolvedRate:
        return self.resolve(
            reference_date=reference_date,
            age=worker.age,
            date_of_birth=worker.date_of_birth,
            is_apprentice=worker.is_apprentice,
            apprenticeship_start_date=worker.apprenticeship_start_date,
        )

    def _apprentice_eligible(self, age: int, when: date, start: Any) -> bool:
        if age < APPRENTICE_RATE_AGE_LIMIT:
            return True
        if start is None or start == "":
            return False
        return when <= _one_year_after(coerce_date(start, "Apprenticeship start date"))

    def _resolved(self, record: RateRecord, band: AgeBand, age: int, *, apprentice: bool) -> ResolvedRate:
        return ResolvedRate(
            hourly_rate=band.hourly_rate,
            band_key=band.key,
            category=band.category,
            description=band.description,
            age=age,
            is_apprentice_rate=apprentice,
            effective_from=record.effective_from,
            effective_to=record.effective_to,
            accommodation_daily_limit=record.accommodation_daily_limit,
            table_version=self._table.version,
        )

    # ---- reporting helpers ----

    def rates_for_date(self, reference_date: Any) -> list[AgeBand]:
        """Every band in force on a date, apprentice entry last."""
        record = self.record_for(reference_date)
        bands = list(record.age_bands)
        if record.apprentice is not None:
            bands.append(record.apprentice)
        return bands

    def rate_history(self, age: Any, start: Any, end: Any) -> list[ResolvedRate]:
        """The rate for ``age`` under each record overlapping ``[start, end]``, oldest first."""
        window_start = coerce_date(start, "Start date")
        window_end = coerce_date(end, "End date")
        if window_end < window_start:
            raise ValidationError("End date must not be before start date")
        worker_age = coerce_age(age)

        history = []
        for record in sorted(self._table.records, key=lambda r: r.effective_from):
            if record.effective_from > window_end:
                continue
            if record.effective_to is not None and record.effective_to < window_start:
                continue
            band = next((b for b in record.age_bands if b.contains(worker_age)), None)
            if band is not None:
                history.append(self._resolved(record, band, worker_age, apprentice=False))
        return history

    def bulk_lookup(self, requests: list[RateLookupRequest]) -> list[Result[ResolvedRate]]:
        """Resolve many requests; a failing item becomes an ``Err`` in place."""
        results: list[Result[ResolvedRate]] = []
        for request in requests:
            try:
                rate = self.resolve(
                    reference_date=request.reference_date,
                    age=request.age,
                    date_of_birth=request.date_of_birth,
                    is_apprentice=request.is_apprentice,
                    apprenticeship_start_date=request.apprenticeship_start_date,
                )
            except NMWGuardError as exc:
                logger.warning(
                    "Rate lookup failed", extra={"worker_id": request.worker_id, "error": str(exc)}
                )
                results.append(Err.from_error(exc, worker_id=request.worker_id))
            else:
                results.append(Ok(rate))
        return results
