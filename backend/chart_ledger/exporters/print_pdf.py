"""Paginated print document (A4 PDF).

Japanese text is set in a built-in CID font so no font files are needed.
Output is rendered in reportlab's invariant mode: the same ledger always
produces the same bytes.
"""
import io
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer

from chart_ledger.exporters.common import (
    NO_ENTRIES, TITLE, format_date, format_measurements, format_therapies, format_timestamp,
)
from chart_ledger.schemas.export import LedgerDocument, LedgerRecord

FONT_NAME = "HeiseiKakuGo-W5"
MARGIN = 20 * mm


def _ensure_font() -> None:
    if FONT_NAME not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(FONT_NAME))


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("LedgerTitle", parent=base["Title"], fontName=FONT_NAME, fontSize=16),
        "heading": ParagraphStyle("LedgerHeading", parent=base["Heading2"], fontName=FONT_NAME, fontSize=13),
        "date": ParagraphStyle("LedgerDate", parent=base["Heading3"], fontName=FONT_NAME, fontSize=11, spaceBefore=6),
        "body": ParagraphStyle("LedgerBody", parent=base["Normal"], fontName=FONT_NAME, fontSize=10,
                               leading=14, wordWrap="CJK"),
        "content": ParagraphStyle("LedgerContent", parent=base["Normal"], fontName=FONT_NAME, fontSize=10,
                                  leading=14, leftIndent=5 * mm, wordWrap="CJK"),
        "meta": ParagraphStyle("LedgerMeta", parent=base["Normal"], fontName=FONT_NAME, fontSize=8,
                               textColor=colors.grey, wordWrap="CJK"),
    }


def _text(value: str) -> str:
    return escape(value).replace("\n", "<br/>")


def _record_flowables(record: LedgerRecord, styles, include_audit: bool) -> list:
    flowables = [
        Paragraph(_text(f"施術日: {format_date(record.entry_date)}"), styles["date"]),
        Paragraph(_text(f"初診からの期間: {record.elapsed.label}"), styles["body"]),
        Paragraph("施術内容:", styles["body"]),
        Paragraph(_text(record.content), styles["content"]),
    ]
    if record.therapy_methods:
        flowables.append(Paragraph(_text(f"実施した物療: {format_therapies(record.therapy_methods)}"), styles["body"]))
    if record.measurements:
        flowables.append(Paragraph(_text(f"測定値: {format_measurements(record.measurements)}"), styles["body"]))
    if record.next_appointment:
        flowables.append(Paragraph(_text(f"次回予約: {format_date(record.next_appointment)}"), styles["body"]))
    if include_audit and record.last_amended_at:
        flowables.append(Paragraph(
            _text(f"第{record.version}版 / 修正 {format_timestamp(record.last_amended_at)}: "
                  f"{record.last_amendment_reason or ''}"),
            styles["meta"],
        ))
    return flowables


def _page_footer(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFont(FONT_NAME, 8)
    canvas.drawRightString(A4[0] - MARGIN, 10 * mm, f"{doc.page}")
    canvas.restoreState()


def render(document: LedgerDocument) -> bytes:
    _ensure_font()
    styles = _styles()
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=TITLE,
        invariant=1,
    )

    story = [Paragraph(TITLE, styles["title"]), Spacer(1, 4 * mm)]
    story.append(Paragraph(_text(f"患者ID: {document.patient_id}"), styles["body"]))
    if document.first_visit_date:
        story.append(Paragraph(_text(f"初診日: {format_date(document.first_visit_date, weekday=False)}"), styles["body"]))
    story.append(Spacer(1, 6 * mm))
    story.append(Paragraph("診療記録一覧", styles["heading"]))

    if not document.records:
        story.append(Paragraph(NO_ENTRIES, styles["body"]))
    for record in document.records:
        story.append(KeepTogether(_record_flowables(record, styles, document.include_audit)))
        story.append(Spacer(1, 4 * mm))

    doc.build(story, onFirstPage=_page_footer, onLaterPages=_page_footer)
    return buf.getvalue()
