"""Pydantic schemas for audit history and reconstructed versions."""
from __future__ import annotations
from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel


class AuditEventOut(BaseModel):
    event_id: int
    entry_id: str
    patient_id: str
    actor_id: str
    action: str
    timestamp: datetime
    reason: Optional[str] = None
    previous_version: Optional[int] = None
    new_version: int
    diff: dict[str, Any]

    model_config = {"from_attributes": True}


class EntrySnapshot(BaseModel):
    """Field values of an entry as of one version, rebuilt from audit diffs."""

    entry_id: str
    patient_id: str
    entry_date: date
    version: int
    content: str
    therapy_methods: list[str]
    measurements: dict[str, float]
    next_appointment: Optional[date] = None
