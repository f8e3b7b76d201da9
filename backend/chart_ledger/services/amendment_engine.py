"""Amendment engine: the only writer of treatment entries.

Responsibilities:
- Create/amend contract: non-empty content, catalog therapy codes, no future
  visit dates, a justified reason for every amendment
- Immutable visit date and patient
- Optimistic locking via the entry version
- One audit event per write, committed in the same transaction as the entry
- Per-entry mutual exclusion around validate-diff-store-audit
"""
import logging
import math
import unicodedata
import uuid
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional, Union

import pytz
from sqlalchemy.orm import Session

from chart_ledger.config import Settings, settings as default_settings
from chart_ledger.errors import ConflictError, LedgerError, ValidationError
from chart_ledger.models.audit_event import AuditEvent, AuditAction
from chart_ledger.models.treatment_entry import TreatmentEntry, AMENDABLE_FIELDS, IMMUTABLE_FIELDS
from chart_ledger.services.audit_log import AuditLog
from chart_ledger.services.entry_store import EntryStore
from chart_ledger.services.locks import KeyedLockRegistry, ledger_locks
from chart_ledger.services.storage import storage_errors

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def reason_length(reason: str) -> int:
    """Length in half-width units: wide and full-width characters count as 2."""
    return sum(2 if unicodedata.east_asian_width(ch) in ("W", "F") else 1 for ch in reason)


def _json_value(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


def _entry_snapshot(entry: TreatmentEntry) -> dict[str, Any]:
    """JSON-safe view of the amendable fields, as recorded in audit diffs."""
    return {field: _json_value(getattr(entry, field)) for field in AMENDABLE_FIELDS}


def _creation_diff(entry: TreatmentEntry) -> dict[str, dict[str, Any]]:
    diff = {"entry_date": {"before": None, "after": entry.entry_date.isoformat()}}
    for field, value in _entry_snapshot(entry).items():
        diff[field] = {"before": None, "after": value}
    return diff


def _coerce_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a calendar date (YYYY-MM-DD), got {value!r}")


class AmendmentEngine:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        clock: Optional[Callable[[], datetime]] = None,
        locks: KeyedLockRegistry = ledger_locks,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock or _utcnow
        self.locks = locks
        self.store = EntryStore(db)
        self.audit = AuditLog(db)

    # ---------------------------------------------------------------------
    # Validation helpers
    # ---------------------------------------------------------------------
    def _today(self, now: Union[datetime, date, None]) -> date:
        """Calendar date at ``now`` in the clinic's time zone."""
        if now is None:
            now = self.clock()
        if not isinstance(now, datetime):
            return now
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(pytz.timezone(self.settings.CLINIC_TIMEZONE)).date()

    @staticmethod
    def _content(content: Any) -> str:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Entry content must not be empty")
        return content

    def _therapy_methods(self, codes: Any) -> list[str]:
        """Validate against the catalog; returns the selection de-duplicated in catalog order."""
        if codes is None:
            return []
        if not isinstance(codes, (list, tuple, set)) or not all(isinstance(code, str) for code in codes):
            raise ValidationError("therapy_methods must be a list of catalog codes")
        catalog = self.settings.THERAPY_CATALOG
        unknown = sorted(set(codes) - set(catalog))
        if unknown:
            raise ValidationError(f"Unknown therapy method(s): {', '.join(unknown)}")
        selected = set(codes)
        return [code for code in catalog if code in selected]

    @staticmethod
    def _measurements(measurements: Any) -> dict[str, Union[int, float]]:
        if measurements is None:
            return {}
        if not isinstance(measurements, Mapping):
            raise ValidationError("measurements must map metric names to numbers")
        cleaned = {}
        for name, value in measurements.items():
            if not isinstance(name, str) or not name.strip():
                raise ValidationError("Measurement names must be non-empty strings")
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValidationError(f"Measurement {name!r} must be a finite number, got {value!r}")
            cleaned[name] = value
        return dict(sorted(cleaned.items()))

    @staticmethod
    def _actor(actor_id: Any) -> str:
        if not isinstance(actor_id, str) or not actor_id.strip():
            raise ValidationError("actor_id is required")
        return actor_id

    def _reason(self, reason: Any) -> str:
        reason = reason.strip() if isinstance(reason, str) else ""
        if not reason:
            raise ValidationError("An amendment reason is required")
        minimum = self.settings.MIN_AMENDMENT_REASON_LENGTH
        if reason_length(reason) < minimum:
            raise ValidationError(f"Amendment reason must be at least {minimum} characters")
        return reason

    def _amendment_values(self, entry: TreatmentEntry, updated_fields: Mapping[str, Any]) -> dict[str, Any]:
        """Validated new values for the amendable fields named in ``updated_fields``."""
        for field in IMMUTABLE_FIELDS:
            if field not in updated_fields:
                continue
            current = getattr(entry, field)
            proposed = updated_fields[field]
            if field == "entry_date":
                proposed = _coerce_date(proposed, field)
            if proposed != current:
                raise ValidationError(f"{field} cannot be amended")

        values: dict[str, Any] = {}
        if "content" in updated_fields:
            values["content"] = self._content(updated_fields["content"])
        if "therapy_methods" in updated_fields:
            values["therapy_methods"] = self._therapy_methods(updated_fields["therapy_methods"])
        if "measurements" in updated_fields:
            values["measurements"] = self._measurements(updated_fields["measurements"])
        if "next_appointment" in updated_fields:
            value = updated_fields["next_appointment"]
            values["next_appointment"] = None if value is None else _coerce_date(value, "next_appointment")
        return values

    # ---------------------------------------------------------------------
    # Writes
    # ---------------------------------------------------------------------
    def create_entry(
        self,
        patient_id: str,
        entry_date: Union[date, str],
        content: str,
        therapy_methods: Optional[list[str]],
        measurements: Optional[Mapping[str, Union[int, float]]],
        actor_id: str,
        next_appointment: Union[date, str, None] = None,
        now: Union[datetime, date, None] = None,
    ) -> TreatmentEntry:
        """Create the next entry in the patient's ledger and record a create event."""
        if not isinstance(patient_id, str) or not patient_id.strip():
            raise ValidationError("patient_id is required")
        entry_date = _coerce_date(entry_date, "entry_date")
        today = self._today(now)
        if entry_date > today:
            raise ValidationError(f"Entry date {entry_date.isoformat()} is in the future (today is {today.isoformat()})")
        content = self._content(content)
        therapy_methods = self._therapy_methods(therapy_methods)
        measurements = self._measurements(measurements)
        if next_appointment is not None:
            next_appointment = _coerce_date(next_appointment, "next_appointment")
        actor_id = self._actor(actor_id)

        entry_id = str(uuid.uuid4())
        timeout = self.settings.ENTRY_LOCK_TIMEOUT_SECONDS
        with self.locks.hold(f"patient:{patient_id}", timeout), self.locks.hold(f"entry:{entry_id}", timeout):
            try:
                ledger = self.store.open_ledger(patient_id, entry_date)
                if entry_date < ledger.first_visit_date:
                    logger.info(
                        "First visit for patient %s moves from %s to %s",
                        patient_id, ledger.first_visit_date, entry_date,
                    )
                    ledger.first_visit_date = entry_date
                ledger.entry_count += 1

                timestamp = self.clock()
                entry = TreatmentEntry(
                    entry_id=entry_id,
                    patient_id=patient_id,
                    entry_date=entry_date,
                    content=content,
                    therapy_methods=therapy_methods,
                    measurements=measurements,
                    next_appointment=next_appointment,
                    sequence=ledger.entry_count,
                    version=1,
                    created_at=timestamp,
                )
                self.store.put(entry)
                self.audit.append(AuditEvent(
                    entry_id=entry_id,
                    patient_id=patient_id,
                    actor_id=actor_id,
                    action=AuditAction.create,
                    timestamp=timestamp,
                    reason=None,
                    previous_version=None,
                    new_version=1,
                    diff=_creation_diff(entry),
                ))
                with storage_errors(self.db, "commit new entry"):
                    self.db.commit()
            except LedgerError:
                self.db.rollback()
                raise

        logger.info("Created entry %s for patient %s dated %s by %s", entry_id, patient_id, entry_date, actor_id)
        return entry

    def amend_entry(
        self,
        patient_id: str,
        entry_id: str,
        updated_fields: Mapping[str, Any],
        reason: str,
        actor_id: str,
        expected_version: Optional[int] = None,
    ) -> TreatmentEntry:
        """Apply a justified amendment and record it with its diff.

        ``expected_version`` is the version the caller last observed; a
        mismatch means someone else amended first and raises ConflictError.
        """
        reason = self._reason(reason)
        actor_id = self._actor(actor_id)
        if not isinstance(updated_fields, Mapping):
            raise ValidationError("updated_fields must be a mapping of field names to values")
        unknown = sorted(set(updated_fields) - set(AMENDABLE_FIELDS) - set(IMMUTABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Field(s) cannot be amended: {', '.join(unknown)}")

        with self.locks.hold(f"entry:{entry_id}", self.settings.ENTRY_LOCK_TIMEOUT_SECONDS):
            try:
                entry = self.store.get_for_update(patient_id, entry_id)
                if expected_version is not None and entry.version != expected_version:
                    raise ConflictError(
                        f"Version mismatch: expected {entry.version}, got {expected_version}. Re-fetch and retry."
                    )

                values = self._amendment_values(entry, updated_fields)
                before = _entry_snapshot(entry)
                after = {**before, **{field: _json_value(value) for field, value in values.items()}}
                diff = {
                    field: {"before": before[field], "after": after[field]}
                    for field in AMENDABLE_FIELDS
                    if before[field] != after[field]
                }
                if not diff:
                    raise ValidationError("Amendment does not change any field")

                previous_version = entry.version
                for field in diff:
                    setattr(entry, field, values[field])
                entry.version = previous_version + 1
                entry.last_amended_at = self.clock()

                self.store.put(entry)
                self.audit.append(AuditEvent(
                    entry_id=entry_id,
                    patient_id=patient_id,
                    actor_id=actor_id,
                    action=AuditAction.amend,
                    timestamp=entry.last_amended_at,
                    reason=reason,
                    previous_version=previous_version,
                    new_version=entry.version,
                    diff=diff,
                ))
                with storage_errors(self.db, "commit amendment"):
                    self.db.commit()
            except LedgerError as exc:
                self.db.rollback()
                logger.warning("Rejected amendment of entry %s: %s", entry_id, exc.message)
                raise

        logger.info(
            "Amended entry %s to version %d by %s (fields: %s)",
            entry_id, previous_version + 1, actor_id, ", ".join(diff),
        )
        return entry
