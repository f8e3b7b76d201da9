"""Treatment entry API routes: writes go through the amendment engine."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from chart_ledger.database import get_db
from chart_ledger.models.treatment_entry import TreatmentEntry
from chart_ledger.schemas.entry import AnnotatedEntryOut, EntryAmend, EntryCreate, EntryOut
from chart_ledger.services.amendment_engine import AmendmentEngine
from chart_ledger.services.entry_store import EntryStore
from chart_ledger.services.temporal import annotate

logger = logging.getLogger(__name__)
router = APIRouter()


def _annotated(entry: TreatmentEntry, first_visit) -> AnnotatedEntryOut:
    elapsed = annotate(entry, first_visit)
    base = EntryOut.model_validate(entry).model_dump()
    return AnnotatedEntryOut(**base, elapsed=elapsed, treatment_period=elapsed.label)


@router.post("/{patient_id}/entries", response_model=EntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(patient_id: str, payload: EntryCreate, db: Session = Depends(get_db)):
    """Append a new visit to the patient's ledger."""
    return AmendmentEngine(db).create_entry(
        patient_id=patient_id,
        entry_date=payload.entry_date,
        content=payload.content,
        therapy_methods=payload.therapy_methods,
        measurements=payload.measurements,
        actor_id=payload.actor_id,
        next_appointment=payload.next_appointment,
    )


@router.get("/{patient_id}/entries", response_model=list[AnnotatedEntryOut])
def list_entries(patient_id: str, db: Session = Depends(get_db)):
    """The patient's ledger in timeline order, with elapsed time since the first visit."""
    store = EntryStore(db)
    first_visit = store.first_visit_date(patient_id)
    return [_annotated(entry, first_visit) for entry in store.list_by_patient(patient_id)]


@router.get("/{patient_id}/entries/{entry_id}", response_model=AnnotatedEntryOut)
def get_entry(patient_id: str, entry_id: str, db: Session = Depends(get_db)):
    store = EntryStore(db)
    entry = store.get(patient_id, entry_id)
    return _annotated(entry, store.first_visit_date(patient_id))


@router.put("/{patient_id}/entries/{entry_id}", response_model=EntryOut)
def amend_entry(patient_id: str, entry_id: str, payload: EntryAmend, db: Session = Depends(get_db)):
    """Amend an entry (reason required, optimistic locking enforced)."""
    updates = payload.model_dump(exclude_unset=True, exclude={"version", "reason", "actor_id"})
    return AmendmentEngine(db).amend_entry(
        patient_id=patient_id,
        entry_id=entry_id,
        updated_fields=updates,
        reason=payload.reason,
        actor_id=payload.actor_id,
        expected_version=payload.version,
    )
