"""Pydantic schemas for projected event validation."""
from pydantic import BaseModel, Field
import datetime as dt
from typing import Optional
from decimal import Decimal

from projections.data.events.models import EventType, CertaintyLevel


class ProjectedEventBase(BaseModel):
    """Base schema with common fields."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    value: Decimal = Field(..., gt=0, description="Positive magnitude; direction comes from type")
    type: EventType
    certainty: CertaintyLevel = CertaintyLevel.CERTAIN
    date: dt.date
    pay_to: Optional[str] = None
    paid_by: Optional[str] = None
    bank_account_id: str
    decision_path_id: Optional[str] = None


class ProjectedEventCreate(ProjectedEventBase):
    """Schema for creating a one-off projected event."""
    pass


class ProjectedEventUpdate(BaseModel):
    """Schema for updating a projected event. All fields optional."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    value: Optional[Decimal] = Field(default=None, gt=0)
    type: Optional[EventType] = None
    certainty: Optional[CertaintyLevel] = None
    date: Optional[dt.date] = None
    pay_to: Optional[str] = None
    paid_by: Optional[str] = None
    bank_account_id: Optional[str] = None
    decision_path_id: Optional[str] = None


class ProjectedEventResponse(ProjectedEventBase):
    """Schema for projected event response."""
    id: str
    recurring_rule_id: Optional[str] = None
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}
