"""Transaction Record model - imported bank statement rows."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Integer, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from projections.database import Base
from projections.data.base import generate_id


class TransactionRecord(Base):
    """
    Transaction Record - an immutable historical fact.

    The running ``balance`` after each row is the ground truth the
    projection engine anchors on. ``sequence`` keeps the statement order of
    rows that share a date, so the last row of a day carries that day's
    closing balance.
    """

    __tablename__ = "transaction_records"

    id = Column(String, primary_key=True, default=lambda: generate_id("txn"))
    bank_account_id = Column(
        String, ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False
    )
    transaction_date = Column(Date, nullable=False)
    transaction_type = Column(String, nullable=False)  # e.g. "DEB", "FPI", "DD"
    description = Column(Text, nullable=False)
    debit_amount = Column(Numeric(precision=12, scale=2), nullable=True)
    credit_amount = Column(Numeric(precision=12, scale=2), nullable=True)
    balance = Column(Numeric(precision=12, scale=2), nullable=False)
    sequence = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    bank_account = relationship("BankAccount", back_populates="transactions")

    __table_args__ = (
        Index("ix_transaction_records_account_date", "bank_account_id", "transaction_date"),
    )
