"""Domain errors raised by the engine and services.

The HTTP layer translates these in ``projections.main``.
"""
from datetime import date
from typing import Optional


class ProjectionsError(Exception):
    """Base class for all domain errors."""


class NotFoundError(ProjectionsError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class InvalidDateRangeError(ProjectionsError, ValueError):
    """A date range whose start falls after its end."""

    def __init__(self, start_date: date, end_date: date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"start_date ({start_date.isoformat()}) must be on or before "
            f"end_date ({end_date.isoformat()})"
        )


class RecurringRuleMissingEndDateError(ProjectionsError):
    """A recurring rule cannot be expanded without an end date."""

    def __init__(self, rule_id: Optional[str]):
        self.rule_id = rule_id
        super().__init__(f"Recurring rule {rule_id} is missing required end_date")


class RevisionDateOutOfRangeError(ProjectionsError, ValueError):
    """A revision must start strictly inside the rule's active range."""

    def __init__(self, revision_date: date, start_date: date, end_date: Optional[date]):
        self.revision_date = revision_date
        bound = end_date.isoformat() if end_date else "open end"
        super().__init__(
            f"Revision start date {revision_date.isoformat()} must be between "
            f"{start_date.isoformat()} and {bound}"
        )
