"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the ledger tables: ledgers, treatment_entries, audit_events.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ledgers ---
    op.create_table(
        "ledgers",
        sa.Column("patient_id", sa.String(64), primary_key=True),
        sa.Column("first_visit_date", sa.Date, nullable=False),
        sa.Column("entry_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- treatment_entries ---
    op.create_table(
        "treatment_entries",
        sa.Column("entry_id", sa.String(36), primary_key=True),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("entry_date", sa.Date, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("therapy_methods", sa.JSON, nullable=False),
        sa.Column("measurements", sa.JSON, nullable=False),
        sa.Column("next_appointment", sa.Date, nullable=True),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_amended_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_treatment_entries_patient_timeline",
        "treatment_entries",
        ["patient_id", "entry_date", "sequence"],
    )

    # --- audit_events ---
    op.create_table(
        "audit_events",
        sa.Column("event_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("entry_id", sa.String(36), nullable=False),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("action", sa.Enum("create", "amend", name="auditaction"), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("previous_version", sa.Integer, nullable=True),
        sa.Column("new_version", sa.Integer, nullable=False),
        sa.Column("diff", sa.JSON, nullable=False),
        sa.UniqueConstraint("entry_id", "new_version", name="uq_audit_events_entry_version"),
    )
    op.create_index("ix_audit_events_entry_id", "audit_events", ["entry_id"])
    op.create_index("ix_audit_events_patient_id", "audit_events", ["patient_id"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("treatment_entries")
    op.drop_table("ledgers")
    sa.Enum(name="auditaction").drop(op.get_bind(), checkfirst=True)
