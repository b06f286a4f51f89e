"""
Recurring Rule Service - expands rules into projected events.

Data Flow:
    RecurringRule (User Input) ← SOURCE OF TRUTH
                ↓
    generate_recurring_dates (working-day adjusted)
                ↓
    ProjectedEvent (one per occurrence, owned by the rule)
                ↓
    Balance engine (daily_balances cache)

A revision splits a rule at a date: the rule keeps everything before the
date, a child rule with the new parameters takes over from the date.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from projections.data.base import generate_id
from projections.data.events.models import ProjectedEvent
from projections.data.recurring.dates import generate_recurring_dates
from projections.data.recurring.models import RecurringRule
from projections.errors import (
    NotFoundError,
    RecurringRuleMissingEndDateError,
    RevisionDateOutOfRangeError,
)

logger = logging.getLogger(__name__)


@dataclass
class RevisionResult:
    """Outcome of splitting a rule at a revision date."""
    base_rule: RecurringRule
    revision: RecurringRule
    base_rule_events_deleted: int
    revision_events_created: int


class RecurringRuleService:
    """
    Service for managing recurring rules and the events generated from them.

    This service handles:
    1. Expanding a rule into ProjectedEvents
    2. Regenerating events when a rule changes
    3. Deleting rules together with their revisions and events
    4. Splitting a rule into a base rule and a revision

    Nothing here commits; the request's session owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==========================================================================
    # Lookup
    # ==========================================================================

    async def get_rule(self, rule_id: str) -> RecurringRule:
        result = await self.db.execute(
            select(RecurringRule).where(RecurringRule.id == rule_id)
        )
        rule = result.scalar_one_or_none()
        if rule is None:
            raise NotFoundError("Recurring rule", rule_id)
        return rule

    async def list_rules(
        self,
        bank_account_id: Optional[str] = None,
        include_revisions: bool = True,
    ) -> List[RecurringRule]:
        query = select(RecurringRule).order_by(RecurringRule.start_date, RecurringRule.created_at)
        if bank_account_id:
            query = query.where(RecurringRule.bank_account_id == bank_account_id)
        if not include_revisions:
            query = query.where(RecurringRule.is_base_rule.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ==========================================================================
    # Event Generation
    # ==========================================================================

    async def generate_events_for_rule(self, rule: RecurringRule) -> List[ProjectedEvent]:
        """
        Create one ProjectedEvent per occurrence of a rule.

        Events are booked on the working-day adjusted date and inherit the
        rule's decision path.

        Raises:
            RecurringRuleMissingEndDateError: if the rule has no end date
        """
        if rule.end_date is None:
            raise RecurringRuleMissingEndDateError(rule.id)

        occurrences = generate_recurring_dates(
            rule.start_date, rule.end_date, rule.frequency, rule.type
        )

        events = []
        for occurrence in occurrences:
            event = ProjectedEvent(
                id=generate_id("evt"),
                name=rule.name,
                description=rule.description,
                value=rule.value,
                type=rule.type,
                certainty=rule.certainty,
                date=occurrence.adjusted_date,
                pay_to=rule.pay_to,
                paid_by=rule.paid_by,
                bank_account_id=rule.bank_account_id,
                decision_path_id=rule.decision_path_id,
                recurring_rule_id=rule.id,
            )
            self.db.add(event)
            events.append(event)

        await self.db.flush()
        logger.info(f"Generated {len(events)} events for recurring rule {rule.id}")
        return events

    async def delete_generated_events(
        self,
        rule_id: str,
        on_or_after: Optional[date] = None,
    ) -> int:
        """
        Delete events generated from a rule.

        Args:
            rule_id: Owning rule
            on_or_after: Only delete events dated on or after this day

        Returns:
            Number of events deleted
        """
        stmt = delete(ProjectedEvent).where(ProjectedEvent.recurring_rule_id == rule_id)
        if on_or_after is not None:
            stmt = stmt.where(ProjectedEvent.date >= on_or_after)
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    # ==========================================================================
    # Rule Lifecycle
    # ==========================================================================

    async def create_rule_with_events(self, **fields) -> Tuple[RecurringRule, List[ProjectedEvent]]:
        """Insert a base rule and expand it."""
        rule = RecurringRule(id=generate_id("rule"), is_base_rule=True, **fields)
        if rule.end_date is None:
            raise RecurringRuleMissingEndDateError(rule.id)

        self.db.add(rule)
        await self.db.flush()
        events = await self.generate_events_for_rule(rule)
        return rule, events

    async def update_rule_and_regenerate(
        self,
        rule: RecurringRule,
        changes: Dict[str, Any],
    ) -> Dict[str, tuple]:
        """
        Apply changes to a rule and rebuild its events.

        Returns:
            Dict mapping changed field names to (old_value, new_value)
        """
        applied = {}
        for field, value in changes.items():
            old_value = getattr(rule, field)
            if old_value != value:
                applied[field] = (old_value, value)
                setattr(rule, field, value)

        if rule.end_date is None:
            raise RecurringRuleMissingEndDateError(rule.id)

        await self.delete_generated_events(rule.id)
        await self.db.flush()
        await self.generate_events_for_rule(rule)
        return applied

    async def delete_rule(self, rule: RecurringRule) -> int:
        """
        Delete a rule, its revisions and every event they generated.

        Returns:
            Number of rules deleted
        """
        revision_ids = []
        if rule.is_base_rule:
            result = await self.db.execute(
                select(RecurringRule.id).where(RecurringRule.base_rule_id == rule.id)
            )
            revision_ids = list(result.scalars().all())

        rule_ids = [rule.id, *revision_ids]
        await self.db.execute(
            delete(ProjectedEvent).where(ProjectedEvent.recurring_rule_id.in_(rule_ids))
        )
        # Revisions first: they reference the base rule
        if revision_ids:
            await self.db.execute(
                delete(RecurringRule).where(RecurringRule.id.in_(revision_ids))
            )
        await self.db.execute(delete(RecurringRule).where(RecurringRule.id == rule.id))

        logger.info(f"Deleted recurring rule {rule.id} and {len(revision_ids)} revisions")
        return len(rule_ids)

    async def get_rule_chain_range(self, rule: RecurringRule) -> Tuple[date, date]:
        """First and last day covered by a rule and all of its revisions."""
        root_id = rule.base_rule_id or rule.id
        result = await self.db.execute(
            select(RecurringRule).where(
                or_(RecurringRule.id == root_id, RecurringRule.base_rule_id == root_id)
            )
        )
        chain = list(result.scalars().all()) or [rule]
        start = min(r.start_date for r in chain)
        end = max((r.end_date or r.start_date) for r in chain)
        return start, end

    # ==========================================================================
    # Revisions
    # ==========================================================================

    async def create_revision(
        self,
        rule_id: str,
        start_date: date,
        value,
        description: Optional[str] = None,
        frequency=None,
        decision_path_id: Optional[str] = None,
    ) -> RevisionResult:
        """
        Split a rule at ``start_date``.

        The rule is truncated to the day before and its events are rebuilt
        for the shorter range; a revision covering ``[start_date, old end]``
        is created with the new value and expanded.

        Raises:
            NotFoundError: if the rule does not exist
            RecurringRuleMissingEndDateError: if the rule has no end date
            RevisionDateOutOfRangeError: if ``start_date`` is not strictly
                inside the rule's range
        """
        base_rule = await self.get_rule(rule_id)
        if base_rule.end_date is None:
            raise RecurringRuleMissingEndDateError(base_rule.id)

        if not (base_rule.start_date < start_date < base_rule.end_date):
            raise RevisionDateOutOfRangeError(start_date, base_rule.start_date, base_rule.end_date)

        original_end_date = base_rule.end_date

        # Rebuild the truncated base from scratch: a shifted occurrence
        # before the split date may be booked on or after it
        base_rule.end_date = start_date - timedelta(days=1)
        removed = await self.delete_generated_events(base_rule.id)
        await self.db.flush()
        kept = await self.generate_events_for_rule(base_rule)
        deleted = removed - len(kept)

        revision = RecurringRule(
            id=generate_id("rule"),
            name=base_rule.name,
            description=description if description is not None else base_rule.description,
            value=value,
            type=base_rule.type,
            certainty=base_rule.certainty,
            pay_to=base_rule.pay_to,
            paid_by=base_rule.paid_by,
            start_date=start_date,
            end_date=original_end_date,
            frequency=frequency if frequency is not None else base_rule.frequency,
            bank_account_id=base_rule.bank_account_id,
            decision_path_id=(
                decision_path_id if decision_path_id is not None else base_rule.decision_path_id
            ),
            is_base_rule=False,
            # Revisions of revisions still point at the root
            base_rule_id=base_rule.base_rule_id or base_rule.id,
        )
        self.db.add(revision)
        await self.db.flush()

        created = await self.generate_events_for_rule(revision)

        logger.info(
            f"Split recurring rule {base_rule.id} at {start_date.isoformat()}: "
            f"{deleted} events removed, revision {revision.id} with {len(created)} events"
        )
        return RevisionResult(
            base_rule=base_rule,
            revision=revision,
            base_rule_events_deleted=deleted,
            revision_events_created=len(created),
        )
