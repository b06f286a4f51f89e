"""
Audit Service for logging data changes.

This service provides a simple interface for recording data operations
from routes and services alongside the change itself.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, List, Literal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, desc

from projections.audit.models import AuditLog


# Type aliases
EntityType = Literal[
    "bank_account", "projected_event", "recurring_rule",
    "transaction_record", "decision_path", "scenario_set"
]
ActionType = Literal["create", "update", "delete", "revision"]
SourceType = Literal["api", "system"]


def to_json_value(value: Any) -> Any:
    """Convert dates, decimals and enums into JSON-safe values."""
    if isinstance(value, dict):
        return {key: to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_value(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class AuditService:
    """
    Service for logging audit events.

    Usage:
        audit = AuditService(db)
        await audit.log_create("projected_event", event.id, {"name": "Rent"})
        await audit.log_update("recurring_rule", rule.id, {"value": (old, new)})
    """

    def __init__(self, db: AsyncSession, source: SourceType = "api"):
        self.db = db
        self.source = source

    # ==========================================================================
    # Core Logging Methods
    # ==========================================================================

    async def log(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: ActionType,
        field_name: Optional[str] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> AuditLog:
        """
        Log an audit event.

        Args:
            entity_type: Type of entity being changed
            entity_id: ID of the entity
            action: Type of action
            field_name: Optional specific field that changed
            old_value: Previous value (for updates/deletes)
            new_value: New value (for creates/updates)
            metadata: Additional context
            notes: Human-readable notes

        Returns:
            Created AuditLog
        """
        log = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            field_name=field_name,
            old_value=to_json_value(old_value),
            new_value=to_json_value(new_value),
            source=self.source,
            extra_data=to_json_value(metadata),
            notes=notes,
        )

        self.db.add(log)
        # Don't commit here - let caller manage transaction
        return log

    # ==========================================================================
    # Convenience Methods
    # ==========================================================================

    async def log_create(
        self,
        entity_type: EntityType,
        entity_id: str,
        new_value: Dict[str, Any],
        notes: Optional[str] = None,
    ) -> AuditLog:
        """Log a create operation."""
        return await self.log(
            entity_type=entity_type,
            entity_id=entity_id,
            action="create",
            new_value=new_value,
            notes=notes,
        )

    async def log_update(
        self,
        entity_type: EntityType,
        entity_id: str,
        changes: Dict[str, tuple],
        notes: Optional[str] = None,
    ) -> List[AuditLog]:
        """
        Log an update operation.

        Args:
            changes: Dict mapping field names to (old_value, new_value) tuples

        Returns:
            List of AuditLogs (one per changed field)
        """
        logs = []
        for field_name, (old_value, new_value) in changes.items():
            if old_value != new_value:
                log = await self.log(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    action="update",
                    field_name=field_name,
                    old_value=old_value,
                    new_value=new_value,
                    notes=notes,
                )
                logs.append(log)
        return logs

    async def log_delete(
        self,
        entity_type: EntityType,
        entity_id: str,
        old_value: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> AuditLog:
        """Log a delete operation."""
        return await self.log(
            entity_type=entity_type,
            entity_id=entity_id,
            action="delete",
            old_value=old_value,
            notes=notes,
        )

    # ==========================================================================
    # Query Methods
    # ==========================================================================

    async def get_entity_history(
        self,
        entity_type: EntityType,
        entity_id: str,
        limit: int = 100,
    ) -> List[AuditLog]:
        """Get audit history for an entity."""
        query = (
            select(AuditLog)
            .where(
                and_(
                    AuditLog.entity_type == entity_type,
                    AuditLog.entity_id == entity_id,
                )
            )
            .order_by(desc(AuditLog.created_at))
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_recent_activity(
        self,
        entity_type: Optional[str] = None,
        action: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 50,
    ) -> List[AuditLog]:
        """Get the most recent audit events, optionally filtered."""
        conditions = []
        if entity_type:
            conditions.append(AuditLog.entity_type == entity_type)
        if action:
            conditions.append(AuditLog.action == action)
        if since:
            conditions.append(AuditLog.created_at >= since)

        query = select(AuditLog).order_by(desc(AuditLog.created_at)).limit(limit)
        if conditions:
            query = query.where(and_(*conditions))

        result = await self.db.execute(query)
        return list(result.scalars().all())
