"""End-to-end ledger scenarios through the engine, annotator and audit log."""
from chart_ledger.services.audit_log import AuditLog
from chart_ledger.services.entry_store import EntryStore
from chart_ledger.services.temporal import annotate
from tests.conftest import ACTOR, PATIENT, create_entry


def test_initial_evaluation_then_justified_addendum(ledger, db):
    entry = create_entry(ledger, entry_date="2024-01-01", content="初回評価")
    store = EntryStore(db)
    assert entry.version == 1

    elapsed = annotate(entry, store.first_visit_date(PATIENT))
    assert (elapsed.elapsed_weeks, elapsed.remainder_days) == (0, 0)

    amended = ledger.amend_entry(
        PATIENT, entry.entry_id, {"content": "初回評価・追記"}, "記載漏れのため追記", ACTOR,
        expected_version=1,
    )
    assert amended.version == 2

    log = AuditLog(db)
    assert len(log.history(entry.entry_id)) == 2
    assert log.version_at(entry.entry_id, 1).content == "初回評価"
    assert log.version_at(entry.entry_id, 2).content == "初回評価・追記"


def test_earlier_backdated_entry_reanchors_elapsed_time(ledger, db):
    later = create_entry(ledger, entry_date="2024-01-15", content="再診")
    store = EntryStore(db)
    assert annotate(later, store.first_visit_date(PATIENT)).elapsed_days == 0

    create_entry(ledger, entry_date="2024-01-01", content="初診 (紙カルテより転記)")
    db.expire_all()
    first_visit = store.first_visit_date(PATIENT)
    labels = [annotate(e, first_visit).label for e in store.list_by_patient(PATIENT)]
    assert labels == ["0週0日", "2週0日"]
