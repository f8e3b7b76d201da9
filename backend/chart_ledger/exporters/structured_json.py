"""Structured nested encoding (JSON)."""
import json
from typing import Any

from chart_ledger.schemas.export import LedgerDocument, LedgerRecord


def _record(record: LedgerRecord, include_audit: bool) -> dict[str, Any]:
    data: dict[str, Any] = {
        "entry_id": record.entry_id,
        "date": record.entry_date.isoformat(),
        "treatment_period": {
            "weeks": record.elapsed.elapsed_weeks,
            "days": record.elapsed.remainder_days,
            "elapsed_days": record.elapsed.elapsed_days,
            "label": record.elapsed.label,
        },
        "content": record.content,
        "therapy_methods": record.therapy_methods,
        "measurements": record.measurements,
        "next_appointment": record.next_appointment.isoformat() if record.next_appointment else None,
    }
    if include_audit:
        data["audit"] = {
            "version": record.version,
            "last_amended_at": record.last_amended_at.isoformat() if record.last_amended_at else None,
            "last_amendment_reason": record.last_amendment_reason,
        }
    return data


def render(document: LedgerDocument) -> bytes:
    data = {
        "patient": {
            "id": document.patient_id,
            "first_visit_date": document.first_visit_date.isoformat() if document.first_visit_date else None,
        },
        "generated_at": document.generated_at.isoformat(),
        "chart_entries": [_record(r, document.include_audit) for r in document.records],
    }
    return json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
