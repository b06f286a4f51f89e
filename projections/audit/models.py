"""
Audit Log model for tracking data changes.

Every create, update and delete of events, rules, accounts and transactions
is recorded here, in the same transaction as the change itself.
"""
from sqlalchemy import Column, String, DateTime, Text, JSON, Index
from sqlalchemy.sql import func

from projections.database import Base
from projections.data.base import generate_id


class AuditLog(Base):
    """Audit Log - one row per recorded change."""

    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=lambda: generate_id("audit"))

    # What changed?
    entity_type = Column(String, nullable=False, index=True)
    # Options: "bank_account", "projected_event", "recurring_rule",
    # "transaction_record", "decision_path", "scenario_set"

    entity_id = Column(String, nullable=False, index=True)

    # What kind of change?
    action = Column(String, nullable=False, index=True)
    # Options: "create", "update", "delete", "revision"

    # What field changed? (for updates)
    field_name = Column(String, nullable=True)

    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)

    # What triggered the change?
    source = Column(String, nullable=False, default="api")

    # Additional context (renamed from 'metadata' which is reserved in SQLAlchemy)
    extra_data = Column("extra_data", JSON, nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_entity_action", "entity_type", "action"),
    )

    def __repr__(self):
        return (
            f"<AuditLog {self.id}: "
            f"{self.action} on {self.entity_type}/{self.entity_id} "
            f"at {self.created_at}>"
        )
