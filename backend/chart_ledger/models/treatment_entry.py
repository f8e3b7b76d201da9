"""TreatmentEntry ORM model: one visit in a patient's treatment timeline."""
import uuid
from sqlalchemy import Column, String, Date, DateTime, Integer, Text, JSON, Index, event
from chart_ledger.database import Base
from chart_ledger.errors import ImmutableRecordError

# Fields an amendment may rewrite; everything else is fixed at creation.
AMENDABLE_FIELDS = ("content", "therapy_methods", "measurements", "next_appointment")
IMMUTABLE_FIELDS = ("entry_date", "patient_id")


class TreatmentEntry(Base):
    __tablename__ = "treatment_entries"

    entry_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_id = Column(String(64), nullable=False)
    entry_date = Column(Date, nullable=False)
    content = Column(Text, nullable=False)
    therapy_methods = Column(JSON, nullable=False, default=list)
    measurements = Column(JSON, nullable=False, default=dict)
    next_appointment = Column(Date, nullable=True)
    sequence = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_amended_at = Column(DateTime(timezone=True), nullable=True)

    # UPDATE ... WHERE version = <loaded version>; a stale write matches no row
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    __table_args__ = (
        Index("ix_treatment_entries_patient_timeline", "patient_id", "entry_date", "sequence"),
    )


@event.listens_for(TreatmentEntry, "before_delete")
def _refuse_entry_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Treatment entry {target.entry_id} cannot be deleted; amend it instead")
