"""AuditEvent ORM model: append-only record of every create/amend."""
import enum
from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, UniqueConstraint, Enum as SAEnum, event
from chart_ledger.database import Base
from chart_ledger.errors import ImmutableRecordError


class AuditAction(str, enum.Enum):
    create = "create"
    amend = "amend"


class AuditEvent(Base):
    __tablename__ = "audit_events"

    event_id = Column(Integer, primary_key=True, autoincrement=True)
    entry_id = Column(String(36), nullable=False, index=True)
    patient_id = Column(String(64), nullable=False, index=True)
    actor_id = Column(String(64), nullable=False)
    action = Column(SAEnum(AuditAction), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    reason = Column(Text, nullable=True)
    previous_version = Column(Integer, nullable=True)
    new_version = Column(Integer, nullable=False)
    diff = Column(JSON, nullable=False)

    __table_args__ = (
        UniqueConstraint("entry_id", "new_version", name="uq_audit_events_entry_version"),
    )


@event.listens_for(AuditEvent, "before_update")
def _refuse_audit_update(mapper, connection, target):
    raise ImmutableRecordError(f"Audit event {target.event_id} is append-only")


@event.listens_for(AuditEvent, "before_delete")
def _refuse_audit_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Audit event {target.event_id} is append-only")
