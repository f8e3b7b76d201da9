"""Pydantic schemas for treatment entries."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional, Union
from pydantic import BaseModel, Field, StrictFloat, StrictInt

# Strict: JSON booleans and numeric strings are rejected, not coerced to floats
MeasurementValue = Union[StrictInt, StrictFloat]


class EntryCreate(BaseModel):
    entry_date: date
    content: str
    therapy_methods: list[str] = []
    measurements: dict[str, MeasurementValue] = {}
    next_appointment: Optional[date] = None
    actor_id: str


class EntryAmend(BaseModel):
    content: Optional[str] = None
    therapy_methods: Optional[list[str]] = None
    measurements: Optional[dict[str, MeasurementValue]] = None
    next_appointment: Optional[date] = None
    # Accepted only so the engine can reject the attempt with a clear message
    entry_date: Optional[date] = None
    patient_id: Optional[str] = None
    reason: str
    actor_id: str
    version: int  # required for optimistic locking


class TemporalAnnotation(BaseModel):
    elapsed_days: int
    elapsed_weeks: int
    remainder_days: int

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        return f"{self.elapsed_weeks}週{self.remainder_days}日"


class EntryOut(BaseModel):
    entry_id: str
    patient_id: str
    entry_date: date
    content: str
    therapy_methods: list[str]
    measurements: dict[str, float]
    next_appointment: Optional[date] = None
    version: int
    created_at: datetime
    last_amended_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AnnotatedEntryOut(EntryOut):
    elapsed: TemporalAnnotation
    treatment_period: str = Field(description="Elapsed marker, e.g. 3週2日")
