"""Pydantic schemas for recurring event rules."""
from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import List, Optional
from decimal import Decimal

from projections.data.events.models import EventType, CertaintyLevel
from projections.data.recurring.models import RecurrenceFrequency


class RecurringRuleBase(BaseModel):
    """Base schema with common fields."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    value: Decimal = Field(..., gt=0)
    type: EventType
    certainty: CertaintyLevel = CertaintyLevel.CERTAIN
    pay_to: Optional[str] = None
    paid_by: Optional[str] = None
    start_date: date
    end_date: date = Field(..., description="Required; open-ended rules cannot be expanded")
    frequency: RecurrenceFrequency = RecurrenceFrequency.MONTHLY
    bank_account_id: str
    decision_path_id: Optional[str] = None

    @model_validator(mode="after")
    def check_date_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class RecurringRuleCreate(RecurringRuleBase):
    """Schema for creating a recurring rule."""
    pass


class RecurringRuleUpdate(BaseModel):
    """Schema for updating a recurring rule. All fields optional."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    value: Optional[Decimal] = Field(default=None, gt=0)
    type: Optional[EventType] = None
    certainty: Optional[CertaintyLevel] = None
    pay_to: Optional[str] = None
    paid_by: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    frequency: Optional[RecurrenceFrequency] = None
    decision_path_id: Optional[str] = None


class RecurringRuleResponse(BaseModel):
    """Schema for recurring rule response."""
    id: str
    name: str
    description: Optional[str] = None
    value: Decimal
    type: EventType
    certainty: CertaintyLevel
    pay_to: Optional[str] = None
    paid_by: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    frequency: RecurrenceFrequency
    bank_account_id: str
    decision_path_id: Optional[str] = None
    is_base_rule: bool
    base_rule_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RecurringRuleWithEventsResponse(RecurringRuleResponse):
    events_created: int = 0


# =============================================================================
# Preview
# =============================================================================

class RecurringPreviewRequest(BaseModel):
    """Schema for previewing the dates a schedule would produce."""
    start_date: date
    end_date: date
    frequency: RecurrenceFrequency
    type: EventType = EventType.EXPENSE
    limit: Optional[int] = Field(default=None, ge=1, le=366)

    @model_validator(mode="after")
    def check_date_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class RecurringPreviewDate(BaseModel):
    date: date
    adjusted_date: date
    is_adjusted: bool


class RecurringPreviewResponse(BaseModel):
    dates: List[RecurringPreviewDate]
    total_occurrences: int


# =============================================================================
# Revisions
# =============================================================================

class RevisionCreate(BaseModel):
    """Schema for splitting a rule at a date with new parameters."""
    start_date: date = Field(..., description="First day the revision applies")
    value: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    frequency: Optional[RecurrenceFrequency] = None
    decision_path_id: Optional[str] = None


class RevisionResponse(BaseModel):
    base_rule: RecurringRuleResponse
    revision: RecurringRuleResponse
    base_rule_events_deleted: int
    revision_events_created: int
