"""Audit history API routes: read-only views of the audit log."""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chart_ledger.database import get_db
from chart_ledger.errors import ValidationError
from chart_ledger.models.audit_event import AuditAction
from chart_ledger.schemas.audit import AuditEventOut, EntrySnapshot
from chart_ledger.services.audit_log import AuditLog
from chart_ledger.services.entry_store import EntryStore

router = APIRouter()


@router.get("/{patient_id}/entries/{entry_id}/history", response_model=list[AuditEventOut])
def entry_history(patient_id: str, entry_id: str, db: Session = Depends(get_db)):
    """Every create/amend event of one entry, oldest first."""
    EntryStore(db).get(patient_id, entry_id)
    return AuditLog(db).history(entry_id)


@router.get("/{patient_id}/entries/{entry_id}/versions/{version}", response_model=EntrySnapshot)
def entry_version(patient_id: str, entry_id: str, version: int, db: Session = Depends(get_db)):
    """The entry as it read at ``version``."""
    EntryStore(db).get(patient_id, entry_id)
    return AuditLog(db).version_at(entry_id, version)


@router.get("/{patient_id}/audit", response_model=list[AuditEventOut])
def patient_audit(
    patient_id: str,
    action: Optional[str] = Query(None, description="create or amend"),
    db: Session = Depends(get_db),
):
    """Modification history across the patient's ledger, newest first."""
    try:
        action_filter = AuditAction(action) if action else None
    except ValueError:
        raise ValidationError(f"Unknown audit action {action!r}; expected 'create' or 'amend'")
    return AuditLog(db).for_patient(patient_id, action=action_filter)
