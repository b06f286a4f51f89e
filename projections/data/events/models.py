"""Projected Event model - one-off expected cash movements."""
import enum

from sqlalchemy import (
    Column, String, DateTime, Date, Numeric, Text, ForeignKey, Index, CheckConstraint
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from projections.database import Base
from projections.data.base import generate_id


class EventType(str, enum.Enum):
    """Direction of a projected cash movement."""
    EXPENSE = "EXPENSE"
    INCOMING = "INCOMING"


class CertaintyLevel(str, enum.Enum):
    """
    How confident the user is that the event happens.

    UNLIKELY events are recorded but never affect a balance.
    """
    UNLIKELY = "UNLIKELY"
    POSSIBLE = "POSSIBLE"
    LIKELY = "LIKELY"
    CERTAIN = "CERTAIN"


class ProjectedEvent(Base):
    """Projected Event - created by the user or expanded from a recurring rule."""

    __tablename__ = "projected_events"

    id = Column(String, primary_key=True, default=lambda: generate_id("evt"))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Always a positive magnitude; the direction comes from `type`
    value = Column(Numeric(precision=12, scale=2), nullable=False)
    type = Column(
        SQLEnum(EventType, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    certainty = Column(
        SQLEnum(CertaintyLevel, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    date = Column(Date, nullable=False)

    # Counterparties
    pay_to = Column(String, nullable=True)
    paid_by = Column(String, nullable=True)

    # Ownership
    bank_account_id = Column(
        String, ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False
    )
    decision_path_id = Column(
        String, ForeignKey("decision_paths.id", ondelete="SET NULL"), nullable=True, index=True
    )
    recurring_rule_id = Column(
        String, ForeignKey("recurring_event_rules.id", ondelete="CASCADE"), nullable=True, index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    bank_account = relationship("BankAccount", back_populates="projected_events")
    recurring_rule = relationship("RecurringRule", back_populates="projected_events")

    __table_args__ = (
        Index("ix_projected_events_account_date", "bank_account_id", "date"),
        CheckConstraint("value > 0", name="ck_projected_events_value_positive"),
    )

    def __repr__(self):
        return f"<ProjectedEvent {self.id} {self.type} {self.value} on {self.date}>"
