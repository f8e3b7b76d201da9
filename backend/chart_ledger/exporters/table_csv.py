"""Flat tabular encoding (CSV), one row per entry."""
import csv
import io

from chart_ledger.exporters.common import format_date, format_measurements, format_therapies, format_timestamp
from chart_ledger.schemas.export import LedgerDocument

_COLUMNS = ["施術日", "初診からの期間", "施術内容", "実施した物療", "測定値", "次回予約"]
_AUDIT_COLUMNS = ["版", "最終修正日時", "修正理由"]


def render(document: LedgerDocument) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(_COLUMNS + (_AUDIT_COLUMNS if document.include_audit else []))
    for record in document.records:
        row = [
            format_date(record.entry_date),
            record.elapsed.label,
            record.content,
            format_therapies(record.therapy_methods),
            format_measurements(record.measurements, sep="; "),
            format_date(record.next_appointment),
        ]
        if document.include_audit:
            row += [record.version, format_timestamp(record.last_amended_at), record.last_amendment_reason or ""]
        writer.writerow(row)
    # BOM so spreadsheet software detects UTF-8
    return buf.getvalue().encode("utf-8-sig")
