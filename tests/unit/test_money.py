"""Tests for Decimal coercion, rounding and currency formatting."""

from __future__ import annotations

from decimal import Decimal

import pydantic
import pytest

from nmwguard.core.exceptions import ValidationError
from nmwguard.core.money import format_gbp, percentage, quantize, round_int, to_decimal
from nmwguard.models.inputs import ChargeData
from nmwguard.models.worker import PayPeriod


class TestToDecimal:
    def test_float_goes_through_str(self):
        assert to_decimal(11.44) == Decimal("11.44")

    def test_none_and_blank_are_zero(self):
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("") == Decimal("0")

    def test_numeric_string(self):
        assert to_decimal(" 400.50 ") == Decimal("400.50")

    def test_rejects_text(self):
        with pytest.raises(ValidationError, match="charge must be numeric"):
            to_decimal("abc", field="charge")

    def test_rejects_bool(self):
        with pytest.raises(ValidationError):
            to_decimal(True)

    def test_rejects_nan(self):
        with pytest.raises(ValidationError):
            to_decimal(float("nan"))

    def test_rejects_out_of_range_amount(self):
        with pytest.raises(ValidationError, match="charge is out of range"):
            to_decimal("1e30", field="charge")

    def test_amount_bound_on_input_models(self):
        with pytest.raises(pydantic.ValidationError):
            ChargeData(total_charge=Decimal("1e30"))
        with pytest.raises(pydantic.ValidationError):
            PayPeriod(total_pay=Decimal("-1e13"))
        assert ChargeData(total_charge=Decimal("999999999999.99")).total_charge == Decimal("999999999999.99")


class TestRounding:
    def test_quantize_half_up(self):
        assert quantize(Decimal("12.905")) == Decimal("12.91")
        assert quantize(Decimal("0.125")) == Decimal("0.13")

    def test_round_int_half_up(self):
        assert round_int(Decimal("87.5")) == 88
        assert round_int(Decimal("87.49")) == 87

    def test_percentage_of_zero_whole(self):
        assert percentage(Decimal("5"), Decimal("0")) == Decimal("0")

    def test_percentage(self):
        assert percentage(Decimal("1.44"), Decimal("11.44")) == Decimal("12.59")


def test_format_gbp():
    assert format_gbp(Decimal("57.6")) == "£57.60"
    assert format_gbp(Decimal("11.444")) == "£11.44"
