"""Pydantic schemas for transaction records."""
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional
from decimal import Decimal


class TransactionRecordBase(BaseModel):
    """One bank statement row."""
    transaction_date: date
    transaction_type: str = Field(..., min_length=1, description="e.g. DEB, FPI, DD")
    description: str
    debit_amount: Optional[Decimal] = Field(default=None, ge=0)
    credit_amount: Optional[Decimal] = Field(default=None, ge=0)
    balance: Decimal = Field(..., description="Running balance after this row")
    notes: Optional[str] = None


class TransactionBatchCreate(BaseModel):
    """
    Schema for recording statement rows against an account.

    Rows are kept in the order given; rows sharing a date are numbered so
    the last one carries the day's closing balance.
    """
    bank_account_id: str
    transactions: List[TransactionRecordBase] = Field(..., min_length=1)


class TransactionRecordResponse(TransactionRecordBase):
    id: str
    bank_account_id: str
    sequence: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TransactionBatchResponse(BaseModel):
    created: int
    transactions: List[TransactionRecordResponse]
    recalculated_from: date
    days_recalculated: int


class TransactionCoverageResponse(BaseModel):
    bank_account_id: str
    earliest_date: Optional[date] = None
    latest_covered_date: Optional[date] = None
    transaction_count: int


class BalanceHistoryPoint(BaseModel):
    date: date
    balance: Decimal


class BalanceHistoryResponse(BaseModel):
    bank_account_id: str
    history: List[BalanceHistoryPoint]


class TransactionStatsResponse(BaseModel):
    bank_account_id: str
    total_transactions: int
    total_debits: Decimal
    total_credits: Decimal
