"""
Consolidated models package.

IMPORTANT: Explicit imports only - no wildcards to prevent circular imports.
Use string-based forward references in relationships: relationship("ProjectedEvent", ...)

Importing this package registers every table on ``Base.metadata`` and lets
the string relationships resolve.
"""

# Base utilities
from projections.data.base import generate_id

# Accounts
from projections.data.bank_accounts.models import BankProvider, BankAccount

# Scenario models
from projections.data.decision_paths.models import (
    DecisionPath,
    ScenarioSet,
    ScenarioSetDecisionPath,
)

# Projection inputs
from projections.data.events.models import EventType, CertaintyLevel, ProjectedEvent
from projections.data.recurring.models import RecurrenceFrequency, RecurringRule
from projections.data.transactions.models import TransactionRecord

# Projection output
from projections.balances.models import DailyBalance

# Audit
from projections.audit.models import AuditLog

__all__ = [
    "generate_id",
    "BankProvider",
    "BankAccount",
    "DecisionPath",
    "ScenarioSet",
    "ScenarioSetDecisionPath",
    "EventType",
    "CertaintyLevel",
    "ProjectedEvent",
    "RecurrenceFrequency",
    "RecurringRule",
    "TransactionRecord",
    "DailyBalance",
    "AuditLog",
]
