"""Intermediate records shared by every export encoder."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel

from chart_ledger.schemas.entry import TemporalAnnotation


class LedgerRecord(BaseModel):
    entry_id: str
    entry_date: date
    elapsed: TemporalAnnotation
    content: str
    therapy_methods: list[str]
    measurements: dict[str, float]
    next_appointment: Optional[date] = None
    # Audit metadata, filled only when requested
    version: Optional[int] = None
    last_amended_at: Optional[datetime] = None
    last_amendment_reason: Optional[str] = None


class LedgerDocument(BaseModel):
    patient_id: str
    first_visit_date: Optional[date] = None
    generated_at: datetime
    include_audit: bool = False
    records: list[LedgerRecord] = []


class ExportPayload(BaseModel):
    content: bytes
    media_type: str
    filename: str
