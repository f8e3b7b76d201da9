"""Entry Store: keyed storage of treatment entries, ordered per patient.

Backed by whatever database the session is bound to (SQLite in tests,
PostgreSQL in production). Only the amendment engine writes through it.
"""
import logging
from datetime import date
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from chart_ledger.errors import ConflictError, NotFoundError
from chart_ledger.models.ledger import Ledger
from chart_ledger.models.treatment_entry import TreatmentEntry
from chart_ledger.services.storage import storage_errors

logger = logging.getLogger(__name__)


class EntryStore:
    def __init__(self, db: Session):
        self.db = db

    def put(self, entry: TreatmentEntry) -> TreatmentEntry:
        """Insert ``entry`` or overwrite the stored row with the same id.

        Raises ConflictError if ``entry.version`` is lower than the stored version.
        """
        with storage_errors(self.db, "store entry"):
            stored_version = (
                self.db.query(TreatmentEntry.version)
                .filter(TreatmentEntry.entry_id == entry.entry_id)
                .scalar()
            )
            if stored_version is not None and entry.version < stored_version:
                raise ConflictError(
                    f"Version regression for entry {entry.entry_id}: "
                    f"stored {stored_version}, got {entry.version}"
                )
            self.db.add(entry)
            self.db.flush()
        return entry

    def _query(self, patient_id: str, entry_id: str):
        return self.db.query(TreatmentEntry).filter(
            TreatmentEntry.patient_id == patient_id,
            TreatmentEntry.entry_id == entry_id,
        )

    def get(self, patient_id: str, entry_id: str) -> TreatmentEntry:
        with storage_errors(self.db, "load entry"):
            entry = self._query(patient_id, entry_id).first()
        if entry is None:
            raise NotFoundError(f"Entry {entry_id} not found for patient {patient_id}")
        return entry

    def get_for_update(self, patient_id: str, entry_id: str) -> TreatmentEntry:
        """Re-read the current row, locking it where the backend supports row locks."""
        with storage_errors(self.db, "load entry"):
            entry = self._query(patient_id, entry_id).populate_existing().with_for_update().first()
        if entry is None:
            raise NotFoundError(f"Entry {entry_id} not found for patient {patient_id}")
        return entry

    def list_by_patient(self, patient_id: str) -> Iterator[TreatmentEntry]:
        """Entries ordered by visit date, then creation order.

        Each call runs its own query when first advanced, so the sequence is
        restartable and reflects one consistent read.
        """
        with storage_errors(self.db, "list entries"):
            rows = (
                self.db.query(TreatmentEntry)
                .filter(TreatmentEntry.patient_id == patient_id)
                .order_by(TreatmentEntry.entry_date, TreatmentEntry.sequence)
                .all()
            )
        yield from rows

    # -----------------------------------------------------------------
    # Ledger header
    # -----------------------------------------------------------------
    def get_ledger(self, patient_id: str) -> Optional[Ledger]:
        with storage_errors(self.db, "load ledger"):
            return self.db.query(Ledger).filter(Ledger.patient_id == patient_id).first()

    def open_ledger(self, patient_id: str, entry_date: date) -> Ledger:
        """Return the patient's ledger, creating it for a first entry dated ``entry_date``."""
        ledger = self.get_ledger(patient_id)
        if ledger is None:
            ledger = Ledger(patient_id=patient_id, first_visit_date=entry_date, entry_count=0)
            with storage_errors(self.db, "open ledger"):
                self.db.add(ledger)
                self.db.flush()
            logger.info("Opened ledger for patient %s", patient_id)
        return ledger

    def first_visit_date(self, patient_id: str) -> Optional[date]:
        ledger = self.get_ledger(patient_id)
        return ledger.first_visit_date if ledger else None
