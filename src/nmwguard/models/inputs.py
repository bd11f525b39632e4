"""Calculation input payloads supplied by ingestion collaborators."""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from nmwguard.core.money import Amount
from nmwguard.models.worker import PayPeriod, Worker


class OffsetCategory(StrEnum):
    ACCOMMODATION = "accommodation"
    UNIFORM = "uniform"
    MEALS = "meals"
    DEDUCTIONS = "deductions"


class AllowanceCategory(StrEnum):
    TRONC = "tronc"
    PREMIUM = "premium"
    BONUS = "bonus"


class OffsetItem(BaseModel):
    """One offset line for the PRP calculator, tagged or inferred from its description."""

    description: str = ""
    amount: Amount = Decimal("0")
    daily_rate: Amount = Decimal("0")
    days_applied: int = 1
    category: Optional[OffsetCategory] = None


class AllowanceItem(BaseModel):
    """One allowance line for the PRP calculator."""

    description: str = ""
    amount: Amount = Decimal("0")
    category: Optional[AllowanceCategory] = None


class ChargeData(BaseModel):
    total_charge: Amount = Decimal("0")


class OffsetData(BaseModel):
    accommodation: ChargeData = Field(default_factory=ChargeData)
    meals: ChargeData = Field(default_factory=ChargeData)
    transport: ChargeData = Field(default_factory=ChargeData)


class DeductionData(BaseModel):
    uniform_deduction: Amount = Decimal("0")
    tools_deduction: Amount = Decimal("0")
    training_deduction: Amount = Decimal("0")
    other_deductions: Amount = Decimal("0")


class EnhancementData(BaseModel):
    bonus: Amount = Decimal("0")
    commission: Amount = Decimal("0")
    tips: Amount = Decimal("0")
    tronc: Amount = Decimal("0")
    shift_premium: Amount = Decimal("0")
    overtime: Amount = Decimal("0")
    holiday_pay: Amount = Decimal("0")

    @property
    def total(self) -> Decimal:
        return (
            self.bonus + self.commission + self.tips + self.tronc
            + self.shift_premium + self.overtime + self.holiday_pay
        )


class WorkerCalculationRequest(BaseModel):
    """Everything the Integrator needs for one (Worker, PayPeriod) calculation."""

    worker: Worker
    pay_period: PayPeriod
    offsets: OffsetData = Field(default_factory=OffsetData)
    deductions: DeductionData = Field(default_factory=DeductionData)
    enhancements: EnhancementData = Field(default_factory=EnhancementData)
    pay_components: dict[str, Any] = Field(default_factory=dict)
