"""Pydantic schemas for audit log responses."""
from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Any, Dict


class AuditLogResponse(BaseModel):
    """Schema for an audit log entry."""
    id: str
    entity_type: str
    entity_id: str
    action: str
    field_name: Optional[str] = None
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    source: str
    extra_data: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
