"""Plain-text chart, for pasting into letters and referrals."""
from chart_ledger.exporters.common import (
    NO_ENTRIES, TITLE, format_date, format_measurements, format_therapies, format_timestamp,
)
from chart_ledger.schemas.export import LedgerDocument


def render(document: LedgerDocument) -> bytes:
    lines = [f"=== {TITLE} ===", "", "【患者情報】", f"患者ID: {document.patient_id}"]
    if document.first_visit_date:
        lines.append(f"初診日: {format_date(document.first_visit_date, weekday=False)}")
    lines += ["", "【診療記録一覧】", ""]

    if not document.records:
        lines.append(NO_ENTRIES)
    for record in document.records:
        lines.append(f"施術日: {format_date(record.entry_date)}")
        lines.append(f"初診からの期間: {record.elapsed.label}")
        lines.append("施術内容:")
        lines.append(record.content)
        if record.therapy_methods:
            lines.append(f"実施した物療: {format_therapies(record.therapy_methods)}")
        if record.measurements:
            lines.append(f"測定値: {format_measurements(record.measurements)}")
        if record.next_appointment:
            lines.append(f"次回予約: {format_date(record.next_appointment)}")
        if document.include_audit and record.last_amended_at:
            lines.append(f"修正: 第{record.version}版 {format_timestamp(record.last_amended_at)} ({record.last_amendment_reason})")
        lines += ["", "---", ""]

    return ("\n".join(lines) + "\n").encode("utf-8")
