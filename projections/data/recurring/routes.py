"""
Routes for recurring event rules.

Creating, updating, revising or deleting a rule regenerates its projected
events and refreshes the cached balances over the range the rule covers.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from projections.audit.services import AuditService
from projections.balances.triggers import recalculate_after_change
from projections.config import settings
from projections.database import get_db
from projections.data.bank_accounts.models import BankAccount
from projections.data.decision_paths.models import DecisionPath
from .dates import generate_recurring_dates
from .schemas import (
    RecurringRuleCreate,
    RecurringRuleUpdate,
    RecurringRuleResponse,
    RecurringRuleWithEventsResponse,
    RecurringPreviewRequest,
    RecurringPreviewDate,
    RecurringPreviewResponse,
    RevisionCreate,
    RevisionResponse,
)
from .service import RecurringRuleService

router = APIRouter(prefix="/recurring-event-rules", tags=["Recurring Event Rules"])


async def _check_references(
    db: AsyncSession,
    bank_account_id: Optional[str],
    decision_path_id: Optional[str],
) -> None:
    if bank_account_id and not await db.get(BankAccount, bank_account_id):
        raise HTTPException(status_code=404, detail="Bank account not found")
    if decision_path_id and not await db.get(DecisionPath, decision_path_id):
        raise HTTPException(status_code=404, detail="Decision path not found")


@router.get("", response_model=List[RecurringRuleResponse])
async def list_recurring_rules(
    bank_account_id: Optional[str] = Query(None),
    include_revisions: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """List recurring rules, optionally for one bank account."""
    return await RecurringRuleService(db).list_rules(bank_account_id, include_revisions)


@router.post("", response_model=RecurringRuleWithEventsResponse, status_code=201)
async def create_recurring_rule(
    data: RecurringRuleCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a recurring rule.

    The rule is expanded into projected events straight away and the
    balances over ``[start_date, end_date]`` are recomputed.
    """
    await _check_references(db, data.bank_account_id, data.decision_path_id)

    rule, events = await RecurringRuleService(db).create_rule_with_events(**data.model_dump())
    await db.refresh(rule)

    await AuditService(db).log_create(
        "recurring_rule", rule.id, data.model_dump(), notes=f"{len(events)} events generated"
    )
    await recalculate_after_change(db, rule.bank_account_id, rule.start_date, rule.end_date)

    response = RecurringRuleWithEventsResponse.model_validate(rule)
    response.events_created = len(events)
    return response


@router.post("/preview", response_model=RecurringPreviewResponse)
async def preview_recurring_rule(data: RecurringPreviewRequest):
    """Dates a schedule would produce, with working-day adjustments."""
    occurrences = generate_recurring_dates(data.start_date, data.end_date, data.frequency, data.type)
    limit = data.limit or settings.DEFAULT_PREVIEW_LIMIT

    return RecurringPreviewResponse(
        dates=[
            RecurringPreviewDate(
                date=occurrence.date,
                adjusted_date=occurrence.adjusted_date,
                is_adjusted=occurrence.is_adjusted,
            )
            for occurrence in occurrences[:limit]
        ],
        total_occurrences=len(occurrences),
    )


@router.get("/{rule_id}", response_model=RecurringRuleResponse)
async def get_recurring_rule(rule_id: str, db: AsyncSession = Depends(get_db)):
    return await RecurringRuleService(db).get_rule(rule_id)


@router.put("/{rule_id}", response_model=RecurringRuleResponse)
async def update_recurring_rule(
    rule_id: str,
    data: RecurringRuleUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Update a recurring rule and regenerate its events.

    Balances are recomputed over the union of the old and new ranges.
    """
    service = RecurringRuleService(db)
    rule = await service.get_rule(rule_id)
    update_data = data.model_dump(exclude_unset=True)
    await _check_references(db, None, update_data.get("decision_path_id"))

    start_date = update_data.get("start_date", rule.start_date)
    end_date = update_data.get("end_date", rule.end_date)
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")

    old_start, old_end = rule.start_date, rule.end_date or rule.start_date

    changes = await service.update_rule_and_regenerate(rule, update_data)
    await db.refresh(rule)

    await AuditService(db).log_update("recurring_rule", rule.id, changes)
    await recalculate_after_change(
        db,
        rule.bank_account_id,
        min(old_start, rule.start_date),
        max(old_end, rule.end_date),
    )
    return rule


@router.delete("/{rule_id}")
async def delete_recurring_rule(rule_id: str, db: AsyncSession = Depends(get_db)):
    """
    Delete a recurring rule with its events.

    Deleting a base rule also deletes its revisions.
    """
    service = RecurringRuleService(db)
    rule = await service.get_rule(rule_id)

    if rule.is_base_rule:
        start_date, end_date = await service.get_rule_chain_range(rule)
    else:
        start_date, end_date = rule.start_date, rule.end_date or rule.start_date
    bank_account_id = rule.bank_account_id
    name = rule.name

    deleted = await service.delete_rule(rule)

    await AuditService(db).log_delete(
        "recurring_rule",
        rule_id,
        old_value={"name": name, "start_date": start_date, "end_date": end_date},
    )
    await recalculate_after_change(db, bank_account_id, start_date, end_date)
    return {"status": "deleted", "rule_id": rule_id, "deleted_rules": deleted}


@router.post("/{rule_id}/revisions", response_model=RevisionResponse, status_code=201)
async def create_rule_revision(
    rule_id: str,
    data: RevisionCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Split a rule at ``start_date`` with a new value.

    The base rule ends the day before; the revision takes over until the
    base rule's original end date. Balances are recomputed over the whole
    span of both.
    """
    await _check_references(db, None, data.decision_path_id)

    result = await RecurringRuleService(db).create_revision(
        rule_id,
        start_date=data.start_date,
        value=data.value,
        description=data.description,
        frequency=data.frequency,
        decision_path_id=data.decision_path_id,
    )
    await db.refresh(result.base_rule)
    await db.refresh(result.revision)

    await AuditService(db).log(
        "recurring_rule",
        result.revision.id,
        "revision",
        new_value=data.model_dump(),
        metadata={
            "base_rule_id": result.base_rule.id,
            "base_rule_events_deleted": result.base_rule_events_deleted,
            "revision_events_created": result.revision_events_created,
        },
    )
    await recalculate_after_change(
        db,
        result.base_rule.bank_account_id,
        result.base_rule.start_date,
        result.revision.end_date,
    )

    return RevisionResponse(
        base_rule=RecurringRuleResponse.model_validate(result.base_rule),
        revision=RecurringRuleResponse.model_validate(result.revision),
        base_rule_events_deleted=result.base_rule_events_deleted,
        revision_events_created=result.revision_events_created,
    )
