"""Worker and pay reference period models.

Both are immutable for the lifetime of a calculation call. Dates are optional
at the model level so that calculators can report missing dates as a
validation failure instead of the model refusing to construct.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from nmwguard.core.exceptions import ValidationError
from nmwguard.core.money import Amount


class PRPType(StrEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


def age_on(date_of_birth: date, reference: date) -> int:
    """Whole years between ``date_of_birth`` and ``reference``, birthday-aware."""
    years = reference.year - date_of_birth.year
    if (reference.month, reference.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


class Worker(BaseModel):
    """Identity attributes of a worker that affect the required rate."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    worker_id: str = ""
    worker_name: str = ""
    age: Optional[int] = None
    date_of_birth: Optional[date] = None
    is_apprentice: bool = False
    apprenticeship_start_date: Optional[date] = None

    @property
    def has_age_data(self) -> bool:
        return self.age is not None or self.date_of_birth is not None

    def age_at(self, reference: date) -> Optional[int]:
        """Explicit age wins; otherwise derive it from date of birth."""
        if self.age is not None:
            return self.age
        if self.date_of_birth is not None:
            return age_on(self.date_of_birth, reference)
        return None


class PRPWindow(BaseModel):
    """Normalised pay reference period bounds."""

    model_config = {"frozen": True}

    prp_type: PRPType
    start_date: date
    end_date: date
    day_count: int


def prp_window(start: date, end: date) -> PRPWindow:
    """Derive the PRP type and bounding window for a period.

    Weekly periods are widened to the Monday to Sunday week(s) containing them.
    """
    days = (end - start).days
    if days <= 7:
        prp_type = PRPType.WEEKLY
        start = start - timedelta(days=start.weekday())
        end = end + timedelta(days=6 - end.weekday())
    elif days <= 31:
        prp_type = PRPType.MONTHLY
    elif days <= 91:
        prp_type = PRPType.QUARTERLY
    else:
        prp_type = PRPType.ANNUAL
    return PRPWindow(prp_type=prp_type, start_date=start, end_date=end, day_count=days)


class PayPeriod(BaseModel):
    """A pay reference period with its base hours and pay."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    pay_period_id: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    hours_worked: Amount = Decimal("0")
    total_pay: Amount = Decimal("0")

    @property
    def reference_date(self) -> Optional[date]:
        return self.start_date

    @property
    def day_count(self) -> int:
        """Inclusive number of calendar days in the period."""
        if self.start_date is None or self.end_date is None:
            return 0
        return (self.end_date - self.start_date).days + 1

    @property
    def window(self) -> PRPWindow:
        if self.start_date is None or self.end_date is None:
            raise ValidationError(
                "Pay period start and end dates are required", pay_period_id=self.pay_period_id
            )
        return prp_window(self.start_date, self.end_date)
