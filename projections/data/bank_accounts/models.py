"""Bank Account model - the account every projection is keyed by."""
import enum

from sqlalchemy import Column, String, DateTime, Text, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from projections.database import Base
from projections.data.base import generate_id


class BankProvider(str, enum.Enum):
    """Statement formats the account's transactions come from."""
    HALIFAX = "HALIFAX"
    METTLE = "METTLE"
    OTHER = "OTHER"


class BankAccount(Base):
    """A real bank account with imported history and projected events."""

    __tablename__ = "bank_accounts"

    id = Column(String, primary_key=True, default=lambda: generate_id("acct"))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    sort_code = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    provider = Column(
        SQLEnum(BankProvider, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=BankProvider.OTHER,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    projected_events = relationship("ProjectedEvent", back_populates="bank_account")
    recurring_rules = relationship("RecurringRule", back_populates="bank_account")
    transactions = relationship("TransactionRecord", back_populates="bank_account")

    __table_args__ = (
        UniqueConstraint("sort_code", "account_number", name="uq_bank_accounts_sort_code_number"),
    )

    def __repr__(self):
        return f"<BankAccount {self.id} {self.name}>"
