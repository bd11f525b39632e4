"""Decimal helpers: all money and rate arithmetic is exact and rounded half-up to pence."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import Field

from nmwguard.core.exceptions import ValidationError

PENNY = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
CURRENCY_SYMBOL = "£"

# Amounts stay below this in magnitude so pence arithmetic fits the 28-digit context.
MAX_AMOUNT = Decimal("1000000000000")

Amount = Annotated[Decimal, Field(gt=-MAX_AMOUNT, lt=MAX_AMOUNT)]


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Coerce an int, float, str or Decimal into a Decimal.

    Floats go through ``str`` so 11.44 stays 11.44 rather than its binary
    expansion. ``None`` and empty strings are zero.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"{field} must be a finite number, got {value!r}")
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValidationError(f"{field} must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number, got {value!r}")
    if abs(result) >= MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range, got {value!r}")
    return result


def quantize(value: Decimal) -> Decimal:
    return value.quantize(PENNY, rounding=ROUND_HALF_UP)


def round_int(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole * 100`` rounded to two places; zero when ``whole`` is zero."""
    if whole == 0:
        return ZERO
    return quantize(part / whole * HUNDRED)


def format_gbp(amount: Decimal) -> str:
    return f"{CURRENCY_SYMBOL}{quantize(amount):.2f}"
