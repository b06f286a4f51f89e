"""Daily Balance model - materialised output of the projection engine."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from projections.database import Base
from projections.data.base import generate_id


class DailyBalance(Base):
    """
    Cached expected balance for one account on one day.

    Rows carry no information of their own: they can be dropped and
    recomputed from events and transactions at any time.
    """

    __tablename__ = "daily_balances"

    id = Column(String, primary_key=True, default=lambda: generate_id("bal"))
    date = Column(Date, nullable=False)
    bank_account_id = Column(
        String, ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False
    )
    expected_balance = Column(Numeric(precision=14, scale=2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("date", "bank_account_id", name="uq_daily_balances_date_account"),
    )
