"""Rate table models: versioned, non-overlapping NMW/NLW rate records."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class AgeBand(BaseModel):
    """An hourly rate applying to an inclusive age range; ``None`` bounds are open."""

    model_config = {"frozen": True, "populate_by_name": True}

    key: str = ""
    min_age: Optional[int] = Field(default=None, alias="minAge")
    max_age: Optional[int] = Field(default=None, alias="maxAge")
    hourly_rate: Decimal = Field(alias="hourlyRate")
    description: str = ""
    category: str = "NMW"

    def contains(self, age: int) -> bool:
        if self.min_age is not None and age < self.min_age:
            return False
        if self.max_age is not None and age > self.max_age:
            return False
        return True


class RateRecord(BaseModel):
    """Rates in force between ``effective_from`` and ``effective_to`` inclusive."""

    model_config = {"frozen": True, "populate_by_name": True}

    effective_from: date = Field(alias="effectiveFrom")
    effective_to: Optional[date] = Field(default=None, alias="effectiveTo")
    description: str = ""
    age_bands: tuple[AgeBand, ...] = Field(default=(), alias="ageBands")
    apprentice: Optional[AgeBand] = None
    accommodation_daily_limit: Optional[Decimal] = Field(default=None, alias="accommodationDailyLimit")

    def covers(self, when: date) -> bool:
        if when < self.effective_from:
            return False
        return self.effective_to is None or when <= self.effective_to


class RateTableSnapshot(BaseModel):
    """Immutable copy of the rate table as loaded at one version stamp."""

    model_config = {"frozen": True}

    version: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    records: tuple[RateRecord, ...] = ()

    @classmethod
    def from_document(cls, document: dict[str, Any], version: str = "") -> "RateTableSnapshot":
        """Build a snapshot from the JSON rate table document.

        Each record's ``rates`` mapping holds age bands plus one entry whose
        category is ``APPRENTICE``; table order of the bands is preserved.
        """
        records = []
        for raw in document.get("rates", []):
            bands = []
            apprentice = None
            for key, entry in (raw.get("rates") or {}).items():
                band = AgeBand.model_validate({**entry, "key": key})
                if band.category.upper() == "APPRENTICE":
                    apprentice = band
                else:
                    bands.append(band)
            records.append(
                RateRecord(
                    effective_from=raw.get("effectiveFrom"),
                    effective_to=raw.get("effectiveTo"),
                    description=raw.get("description", ""),
                    age_bands=tuple(bands),
                    apprentice=apprentice,
                    accommodation_daily_limit=raw.get("accommodationDailyLimit"),
                )
            )
        return cls(version=version, metadata=document.get("metadata", {}), records=tuple(records))

    def ordered_records(self) -> list[RateRecord]:
        return sorted(self.records, key=lambda r: r.effective_from, reverse=True)

    def record_for(self, when: date) -> Optional[RateRecord]:
        for record in self.ordered_records():
            if record.covers(when):
                return record
        return None


class ResolvedRate(BaseModel):
    """The legally required hourly rate for one worker on one date."""

    model_config = {"frozen": True}

    hourly_rate: Decimal
    band_key: str
    category: str
    description: str = ""
    age: int
    is_apprentice_rate: bool = False
    effective_from: date
    effective_to: Optional[date] = None
    accommodation_daily_limit: Optional[Decimal] = None
    table_version: str = ""
