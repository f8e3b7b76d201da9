"""Tests for the temporal annotator."""
from datetime import date
from types import SimpleNamespace
import pytest

from chart_ledger.errors import ValidationError
from chart_ledger.services.temporal import annotate

FIRST_VISIT = date(2024, 1, 1)


def _entry(d: date):
    return SimpleNamespace(entry_date=d)


@pytest.mark.parametrize("entry_date, days, weeks, remainder, label", [
    (date(2024, 1, 1), 0, 0, 0, "0週0日"),
    (date(2024, 1, 7), 6, 0, 6, "0週6日"),
    (date(2024, 1, 8), 7, 1, 0, "1週0日"),
    (date(2024, 1, 17), 16, 2, 2, "2週2日"),
    (date(2024, 3, 1), 60, 8, 4, "8週4日"),  # across a leap day
])
def test_elapsed_weeks_and_days(entry_date, days, weeks, remainder, label):
    result = annotate(_entry(entry_date), FIRST_VISIT)
    assert (result.elapsed_days, result.elapsed_weeks, result.remainder_days) == (days, weeks, remainder)
    assert result.label == label


def test_entry_before_first_visit_rejected():
    with pytest.raises(ValidationError):
        annotate(_entry(date(2023, 12, 31)), FIRST_VISIT)


def test_annotation_is_idempotent_and_pure():
    entry = _entry(date(2024, 2, 14))
    before = vars(entry).copy()
    assert annotate(entry, FIRST_VISIT) == annotate(entry, FIRST_VISIT)
    assert vars(entry) == before


def test_annotation_is_immutable():
    result = annotate(_entry(date(2024, 1, 10)), FIRST_VISIT)
    with pytest.raises(Exception):
        result.elapsed_days = 0
