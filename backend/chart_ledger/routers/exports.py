"""Export API routes: render a patient's ledger as a downloadable document."""
import re
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from chart_ledger.database import get_db
from chart_ledger.services.export_pipeline import export_ledger

router = APIRouter()


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the RFC 5987 UTF-8 name."""
    fallback = re.sub(r"[^A-Za-z0-9._-]", "_", filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/{patient_id}/export")
def export_chart(
    patient_id: str,
    fmt: str = Query("print", alias="format", description="print, table, structured or text"),
    include_audit: bool = Query(False),
    db: Session = Depends(get_db),
):
    payload = export_ledger(db, patient_id, fmt, include_audit=include_audit)
    return Response(
        content=payload.content,
        media_type=payload.media_type,
        headers={"Content-Disposition": content_disposition(payload.filename)},
    )
