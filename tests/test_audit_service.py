"""
Tests for the Audit Service.
"""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from projections.audit.services import AuditService, to_json_value
from projections.data.events.models import EventType


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def mock_db():
    """Session stand-in; the service only calls add()."""
    return MagicMock()


# =============================================================================
# Unit Tests - JSON conversion
# =============================================================================

def test_to_json_value_converts_nested_values():
    value = {
        "date": date(2025, 1, 1),
        "value": Decimal("12.50"),
        "type": EventType.INCOMING,
        "tags": (date(2025, 2, 1),),
    }
    assert to_json_value(value) == {
        "date": "2025-01-01",
        "value": "12.50",
        "type": "INCOMING",
        "tags": ["2025-02-01"],
    }


# =============================================================================
# Unit Tests - Logging
# =============================================================================

class TestAuditService:

    @pytest.mark.asyncio
    async def test_log_create(self, mock_db):
        log = await AuditService(mock_db).log_create("projected_event", "evt_1", {"value": Decimal("5")})

        mock_db.add.assert_called_once_with(log)
        assert log.action == "create"
        assert log.new_value == {"value": "5"}
        assert log.source == "api"

    @pytest.mark.asyncio
    async def test_log_update_skips_unchanged_fields(self, mock_db):
        logs = await AuditService(mock_db, source="system").log_update(
            "recurring_rule", "rule_1", {"value": (Decimal("1"), Decimal("2")), "name": ("A", "A")}
        )

        assert [entry.field_name for entry in logs] == ["value"]
        assert logs[0].old_value == "1"
        assert logs[0].source == "system"

    @pytest.mark.asyncio
    async def test_history_is_queried_from_the_database(self, db, bank_account):
        audit = AuditService(db)
        await audit.log_create("bank_account", bank_account.id, {"name": bank_account.name})
        await audit.log_delete("bank_account", bank_account.id, {"name": bank_account.name})
        await db.flush()

        history = await audit.get_entity_history("bank_account", bank_account.id)
        assert {entry.action for entry in history} == {"create", "delete"}

        recent = await audit.get_recent_activity(action="delete")
        assert [entry.entity_id for entry in recent] == [bank_account.id]
