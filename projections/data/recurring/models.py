"""Recurring Rule model - templates that expand into projected events."""
import enum

from sqlalchemy import Column, String, DateTime, Date, Numeric, Boolean, Text, ForeignKey, Index
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from projections.database import Base
from projections.data.base import generate_id
from projections.data.events.models import EventType, CertaintyLevel


class RecurrenceFrequency(str, enum.Enum):
    """How often a recurring rule fires."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    BIANNUAL = "BIANNUAL"
    ANNUAL = "ANNUAL"


class RecurringRule(Base):
    """
    Recurring Rule - e.g. "Salary, 2500, monthly, 2025-01-28 to 2026-01-28".

    A rule owns the projected events generated from it. A revision is a
    child rule that takes over from a split date with new parameters; the
    base rule is truncated to the day before. ``base_rule_id`` always points
    at the root rule of the chain.
    """

    __tablename__ = "recurring_event_rules"

    id = Column(String, primary_key=True, default=lambda: generate_id("rule"))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    value = Column(Numeric(precision=12, scale=2), nullable=False)
    type = Column(
        SQLEnum(EventType, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    certainty = Column(
        SQLEnum(CertaintyLevel, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    pay_to = Column(String, nullable=True)
    paid_by = Column(String, nullable=True)

    # Schedule
    start_date = Column(Date, nullable=False, index=True)
    # Required for expansion; nullable only because of legacy rows
    end_date = Column(Date, nullable=True)
    frequency = Column(
        SQLEnum(RecurrenceFrequency, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=RecurrenceFrequency.MONTHLY,
    )

    # Ownership
    bank_account_id = Column(
        String, ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    decision_path_id = Column(
        String, ForeignKey("decision_paths.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Revision chain
    is_base_rule = Column(Boolean, nullable=False, default=True)
    base_rule_id = Column(
        String, ForeignKey("recurring_event_rules.id", ondelete="CASCADE"), nullable=True, index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    bank_account = relationship("BankAccount", back_populates="recurring_rules")
    projected_events = relationship(
        "ProjectedEvent",
        back_populates="recurring_rule",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_recurring_rules_account_start", "bank_account_id", "start_date"),
    )

    def __repr__(self):
        return f"<RecurringRule {self.id} {self.frequency} {self.start_date}..{self.end_date}>"
