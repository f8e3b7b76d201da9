"""Ledger ORM model: per-patient header of the treatment timeline."""
from sqlalchemy import Column, String, Date, DateTime, Integer
from sqlalchemy.sql import func
from chart_ledger.database import Base


class Ledger(Base):
    __tablename__ = "ledgers"

    patient_id = Column(String(64), primary_key=True)
    first_visit_date = Column(Date, nullable=False)
    entry_count = Column(Integer, nullable=False, default=0)  # last creation sequence handed out
    created_at = Column(DateTime(timezone=True), server_default=func.now())
