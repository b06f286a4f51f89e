"""Activity log API routes."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from projections.database import get_db
from projections.audit.schemas import AuditLogResponse
from projections.audit.services import AuditService

router = APIRouter()


@router.get("", response_model=List[AuditLogResponse])
async def get_activity_log(
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    """Get recent activity, or the history of one entity."""
    audit = AuditService(db)
    if entity_type and entity_id:
        return await audit.get_entity_history(entity_type, entity_id, limit=limit)
    return await audit.get_recent_activity(entity_type=entity_type, action=action, limit=limit)
