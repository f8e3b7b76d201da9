"""Audit Log: append-only history of ledger mutations.

Events are kept as diffs rather than full snapshots; any past version of an
entry is rebuilt by folding its diffs from the create event forward.
"""
import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from chart_ledger.errors import NotFoundError
from chart_ledger.models.audit_event import AuditEvent, AuditAction
from chart_ledger.schemas.audit import EntrySnapshot
from chart_ledger.services.storage import storage_errors

logger = logging.getLogger(__name__)


def fold_diffs(events: list[AuditEvent]) -> dict[str, Any]:
    """Apply the ``after`` side of each diff in order, starting from nothing."""
    state: dict[str, Any] = {}
    for ev in events:
        for field, change in ev.diff.items():
            state[field] = change["after"]
    return state


class AuditLog:
    def __init__(self, db: Session):
        self.db = db

    def append(self, event: AuditEvent) -> AuditEvent:
        """Add ``event`` to the log. Raises StorageError if storage is unavailable."""
        with storage_errors(self.db, "append audit event"):
            self.db.add(event)
            self.db.flush()
        return event

    def history(self, entry_id: str) -> list[AuditEvent]:
        """Events for one entry, oldest first."""
        with storage_errors(self.db, "read audit history"):
            return (
                self.db.query(AuditEvent)
                .filter(AuditEvent.entry_id == entry_id)
                .order_by(AuditEvent.event_id)
                .all()
            )

    def version_at(self, entry_id: str, at_version: int) -> EntrySnapshot:
        """Rebuild the entry's fields as of ``at_version``."""
        events = self.history(entry_id)
        if not events:
            raise NotFoundError(f"No history for entry {entry_id}")
        current = events[-1].new_version
        if at_version < 1 or at_version > current:
            raise NotFoundError(f"Entry {entry_id} has no version {at_version} (current: {current})")

        state = fold_diffs([ev for ev in events if ev.new_version <= at_version])
        next_appointment = state.get("next_appointment")
        return EntrySnapshot(
            entry_id=entry_id,
            patient_id=events[0].patient_id,
            entry_date=date.fromisoformat(state["entry_date"]),
            version=at_version,
            content=state["content"],
            therapy_methods=state["therapy_methods"],
            measurements=state["measurements"],
            next_appointment=date.fromisoformat(next_appointment) if next_appointment else None,
        )

    def for_patient(self, patient_id: str, action: Optional[AuditAction] = None) -> list[AuditEvent]:
        """Modification history across a patient's ledger, newest first."""
        with storage_errors(self.db, "read patient audit history"):
            query = self.db.query(AuditEvent).filter(AuditEvent.patient_id == patient_id)
            if action is not None:
                query = query.filter(AuditEvent.action == action)
            return query.order_by(AuditEvent.event_id.desc()).all()
