"""Temporal annotation: elapsed time of an entry since the first visit.

Derived on every read and never stored, so it cannot drift from the dates.
"""
from datetime import date

from chart_ledger.errors import ValidationError
from chart_ledger.schemas.entry import TemporalAnnotation


def days_between(start: date, end: date) -> int:
    return (end - start).days


def annotate(entry, first_visit_date: date) -> TemporalAnnotation:
    """Elapsed days, whole weeks and remainder days of ``entry`` after ``first_visit_date``."""
    elapsed_days = days_between(first_visit_date, entry.entry_date)
    if elapsed_days < 0:
        raise ValidationError(
            f"Entry date {entry.entry_date.isoformat()} precedes first visit {first_visit_date.isoformat()}"
        )
    return TemporalAnnotation(
        elapsed_days=elapsed_days,
        elapsed_weeks=elapsed_days // 7,
        remainder_days=elapsed_days % 7,
    )
