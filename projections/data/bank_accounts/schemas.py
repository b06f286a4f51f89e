"""Pydantic schemas for bank accounts."""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from projections.data.bank_accounts.models import BankProvider


class BankAccountBase(BaseModel):
    """Base schema with common fields."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    sort_code: str = Field(..., min_length=1, description="e.g. 12-34-56")
    account_number: str = Field(..., min_length=1)
    provider: BankProvider = BankProvider.OTHER


class BankAccountCreate(BankAccountBase):
    """Schema for creating a bank account."""
    pass


class BankAccountUpdate(BaseModel):
    """Schema for updating a bank account. All fields optional."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    sort_code: Optional[str] = Field(default=None, min_length=1)
    account_number: Optional[str] = Field(default=None, min_length=1)
    provider: Optional[BankProvider] = None


class BankAccountResponse(BankAccountBase):
    """Schema for bank account response."""
    id: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
