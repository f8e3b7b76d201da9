"""Tests for the entry store: ordering, lookups and version regression."""
from datetime import date
import pytest
from sqlalchemy.orm.exc import StaleDataError

from chart_ledger.errors import ConflictError, ImmutableRecordError, NotFoundError
from chart_ledger.services.entry_store import EntryStore
from chart_ledger.services.storage import storage_errors
from tests.conftest import ACTOR, PATIENT, VALID_REASON, create_entry


def test_list_orders_by_date_then_creation(ledger, db):
    late = create_entry(ledger, entry_date="2024-01-20", content="late")
    early = create_entry(ledger, entry_date="2024-01-05", content="early")
    same_day_first = create_entry(ledger, entry_date="2024-01-10", content="same day, first")
    same_day_second = create_entry(ledger, entry_date="2024-01-10", content="same day, second")

    ids = [e.entry_id for e in EntryStore(db).list_by_patient(PATIENT)]
    assert ids == [early.entry_id, same_day_first.entry_id, same_day_second.entry_id, late.entry_id]


def test_amendment_keeps_timeline_position(ledger, db):
    first = create_entry(ledger, entry_date="2024-01-01", content="first")
    second = create_entry(ledger, entry_date="2024-01-08", content="second")
    ledger.amend_entry(PATIENT, first.entry_id, {"content": "first, amended"}, VALID_REASON, ACTOR)

    ids = [e.entry_id for e in EntryStore(db).list_by_patient(PATIENT)]
    assert ids == [first.entry_id, second.entry_id]


def test_list_is_restartable_and_scoped_to_patient(ledger, db):
    create_entry(ledger, entry_date="2024-01-01")
    create_entry(ledger, entry_date="2024-01-02", patient_id="other-patient")
    store = EntryStore(db)

    listing = store.list_by_patient(PATIENT)
    assert len(list(listing)) == 1
    assert list(listing) == []  # a consumed iterator stays consumed
    assert len(list(store.list_by_patient(PATIENT))) == 1  # a new call starts over


def test_unknown_patient_lists_nothing(db):
    assert list(EntryStore(db).list_by_patient("nobody")) == []


def test_get_unknown_entry(db):
    with pytest.raises(NotFoundError):
        EntryStore(db).get(PATIENT, "missing")


def test_get_requires_owning_patient(ledger, db):
    entry = create_entry(ledger)
    assert EntryStore(db).get(PATIENT, entry.entry_id).entry_date == date(2024, 1, 1)
    with pytest.raises(NotFoundError):
        EntryStore(db).get("other-patient", entry.entry_id)


def test_put_rejects_version_regression(ledger, db):
    entry = create_entry(ledger)
    ledger.amend_entry(PATIENT, entry.entry_id, {"content": "v2"}, VALID_REASON, ACTOR)

    stored = EntryStore(db).get(PATIENT, entry.entry_id)
    assert stored.version == 2
    stored.version = 1
    with pytest.raises(ConflictError, match="regression"):
        EntryStore(db).put(stored)
    db.rollback()


def test_entries_cannot_be_deleted(ledger, db):
    entry = create_entry(ledger)
    db.delete(EntryStore(db).get(PATIENT, entry.entry_id))
    with pytest.raises(ImmutableRecordError):
        db.flush()
    db.rollback()
    assert EntryStore(db).get(PATIENT, entry.entry_id)


def test_stale_write_maps_to_conflict(db):
    with pytest.raises(ConflictError):
        with storage_errors(db, "amend entry"):
            raise StaleDataError("UPDATE statement on table 'treatment_entries' expected to update 1 row(s); 0 were matched.")
