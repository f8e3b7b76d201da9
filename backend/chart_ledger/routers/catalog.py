"""Therapy-method catalog route."""
from fastapi import APIRouter

from chart_ledger.config import settings

router = APIRouter()


@router.get("/", response_model=list[str])
def list_therapy_methods():
    """Codes an entry may list under therapy_methods."""
    return settings.THERAPY_CATALOG
