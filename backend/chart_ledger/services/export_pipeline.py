"""Export pipeline: one composed record sequence, many encoders.

The ledger is read and annotated once into a LedgerDocument; an encoder
registered under a format name turns that document into bytes. Adding a
format means adding an encoder to ``ENCODERS``.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, NamedTuple, Optional

from sqlalchemy.orm import Session

from chart_ledger.errors import ValidationError
from chart_ledger.exporters import print_pdf, structured_json, table_csv, plain_text
from chart_ledger.models.audit_event import AuditAction
from chart_ledger.schemas.export import ExportPayload, LedgerDocument, LedgerRecord
from chart_ledger.services.audit_log import AuditLog
from chart_ledger.services.entry_store import EntryStore
from chart_ledger.services.temporal import annotate

logger = logging.getLogger(__name__)


class Encoder(NamedTuple):
    render: Callable[[LedgerDocument], bytes]
    media_type: str
    extension: str


ENCODERS: dict[str, Encoder] = {
    "print": Encoder(print_pdf.render, "application/pdf", "pdf"),
    "table": Encoder(table_csv.render, "text/csv; charset=utf-8", "csv"),
    "structured": Encoder(structured_json.render, "application/json", "json"),
    "text": Encoder(plain_text.render, "text/plain; charset=utf-8", "txt"),
}


def compose_ledger(
    db: Session,
    patient_id: str,
    include_audit: bool = False,
    generated_at: Optional[datetime] = None,
) -> LedgerDocument:
    """Annotated records of the patient's ledger, oldest visit first."""
    store = EntryStore(db)
    first_visit = store.first_visit_date(patient_id)

    last_amendments = {}
    if include_audit:
        # Newest first, so the first reason seen per entry is the latest one
        for ev in AuditLog(db).for_patient(patient_id, action=AuditAction.amend):
            last_amendments.setdefault(ev.entry_id, ev.reason)

    records = []
    for entry in store.list_by_patient(patient_id):
        record = LedgerRecord(
            entry_id=entry.entry_id,
            entry_date=entry.entry_date,
            elapsed=annotate(entry, first_visit),
            content=entry.content,
            therapy_methods=list(entry.therapy_methods or []),
            measurements=dict(entry.measurements or {}),
            next_appointment=entry.next_appointment,
        )
        if include_audit:
            record.version = entry.version
            record.last_amended_at = entry.last_amended_at
            record.last_amendment_reason = last_amendments.get(entry.entry_id)
        records.append(record)

    return LedgerDocument(
        patient_id=patient_id,
        first_visit_date=first_visit,
        generated_at=generated_at or datetime.now(timezone.utc),
        include_audit=include_audit,
        records=records,
    )


def export_ledger(db: Session, patient_id: str, fmt: str, include_audit: bool = False) -> ExportPayload:
    """Render the patient's ledger in ``fmt`` (one of ``ENCODERS``)."""
    encoder = ENCODERS.get(fmt)
    if encoder is None:
        raise ValidationError(f"Unknown export format {fmt!r}; expected one of: {', '.join(ENCODERS)}")

    document = compose_ledger(db, patient_id, include_audit=include_audit)
    content = encoder.render(document)
    logger.info("Exported %d entries for patient %s as %s", len(document.records), patient_id, fmt)
    return ExportPayload(
        content=content,
        media_type=encoder.media_type,
        filename=f"chart_{patient_id}_{document.generated_at:%Y%m%d}.{encoder.extension}",
    )
