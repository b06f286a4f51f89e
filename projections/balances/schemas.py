"""Pydantic schemas for balance calculation and computation."""
from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import List, Optional
from decimal import Decimal

from projections.balances.types import BalanceType
from projections.data.events.schemas import ProjectedEventResponse


class BalanceRangeRequest(BaseModel):
    """Common fields of a balance run over a date range."""
    start_date: date
    end_date: date
    bank_account_id: str
    enabled_decision_path_ids: Optional[List[str]] = Field(
        default=None,
        description="Decision paths to include; omit to include every path"
    )

    @model_validator(mode="after")
    def check_date_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class CalculateBalancesRequest(BalanceRangeRequest):
    """Recalculate and cache balances for a range."""
    pass


class CalculateBalancesResponse(BaseModel):
    bank_account_id: str
    start_date: date
    end_date: date
    days_calculated: int
    message: str


class ComputeBalancesRequest(BalanceRangeRequest):
    """
    Compute balances without caching them.

    ``scenario_set_id`` may be given instead of an explicit list of
    decision paths.
    """
    use_true_balance_from_date: date = Field(
        ..., description="Anchor on the last real balance on or before this day"
    )
    scenario_set_id: Optional[str] = None


class ComputedBalance(BaseModel):
    date: date
    expected_balance: Decimal
    event_count: int
    balance_type: BalanceType


class ComputeBalancesResponse(BaseModel):
    starting_balance: Decimal
    starting_date: date
    balances: List[ComputedBalance]
    days_computed: int


class DailyBalanceResponse(BaseModel):
    """Schema for a cached daily balance."""
    id: str
    date: date
    bank_account_id: str
    expected_balance: Decimal
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PreviewDayRequest(BaseModel):
    """Apply one day's events on top of a given balance."""
    date: date
    previous_balance: Decimal
    bank_account_id: str
    enabled_decision_path_ids: Optional[List[str]] = None


class PreviewDayResponse(BaseModel):
    expected_balance: Decimal
    events: List[ProjectedEventResponse]
