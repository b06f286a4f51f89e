"""
Routes for one-off projected events.

Every write refreshes the cached daily balances of the affected account
from the event's date over the recalculation horizon.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from projections.audit.services import AuditService
from projections.balances.triggers import horizon_end, recalculate_after_change
from projections.database import get_db
from projections.data.bank_accounts.models import BankAccount
from projections.data.decision_paths.models import DecisionPath
from .models import ProjectedEvent
from .schemas import ProjectedEventCreate, ProjectedEventUpdate, ProjectedEventResponse

router = APIRouter(prefix="/projected-events", tags=["Projected Events"])


async def _get_event_or_404(db: AsyncSession, event_id: str) -> ProjectedEvent:
    result = await db.execute(select(ProjectedEvent).where(ProjectedEvent.id == event_id))
    event = result.scalar_one_or_none()
    if not event:
        raise HTTPException(status_code=404, detail="Projected event not found")
    return event


async def _check_references(
    db: AsyncSession,
    bank_account_id: Optional[str],
    decision_path_id: Optional[str],
) -> None:
    if bank_account_id and not await db.get(BankAccount, bank_account_id):
        raise HTTPException(status_code=404, detail="Bank account not found")
    if decision_path_id and not await db.get(DecisionPath, decision_path_id):
        raise HTTPException(status_code=404, detail="Decision path not found")


@router.get("", response_model=List[ProjectedEventResponse])
async def list_projected_events(
    bank_account_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
):
    """
    List projected events.

    Filter either by a single ``date`` or by a ``start_date``/``end_date``
    range, optionally for one bank account.
    """
    query = select(ProjectedEvent)

    if bank_account_id:
        query = query.where(ProjectedEvent.bank_account_id == bank_account_id)

    if on_date:
        query = query.where(ProjectedEvent.date == on_date)
    else:
        if start_date and end_date and start_date > end_date:
            raise HTTPException(status_code=400, detail="start_date must be on or before end_date")
        if start_date:
            query = query.where(ProjectedEvent.date >= start_date)
        if end_date:
            query = query.where(ProjectedEvent.date <= end_date)

    result = await db.execute(query.order_by(ProjectedEvent.date, ProjectedEvent.created_at))
    return result.scalars().all()


@router.post("", response_model=ProjectedEventResponse, status_code=201)
async def create_projected_event(
    data: ProjectedEventCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a one-off projected event and refresh the balance cache."""
    await _check_references(db, data.bank_account_id, data.decision_path_id)

    event = ProjectedEvent(**data.model_dump())
    db.add(event)
    await db.flush()
    await db.refresh(event)

    await AuditService(db).log_create("projected_event", event.id, data.model_dump())
    await recalculate_after_change(db, event.bank_account_id, event.date)
    return event


@router.get("/{event_id}", response_model=ProjectedEventResponse)
async def get_projected_event(event_id: str, db: AsyncSession = Depends(get_db)):
    return await _get_event_or_404(db, event_id)


@router.put("/{event_id}", response_model=ProjectedEventResponse)
async def update_projected_event(
    event_id: str,
    data: ProjectedEventUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Update a projected event.

    Both the old and the new position of the event are recomputed, so a
    move between dates or accounts leaves no stale cached balance behind.
    """
    event = await _get_event_or_404(db, event_id)
    update_data = data.model_dump(exclude_unset=True)
    await _check_references(db, update_data.get("bank_account_id"), update_data.get("decision_path_id"))

    old_account_id = event.bank_account_id
    old_date = event.date

    changes = {}
    for field, value in update_data.items():
        changes[field] = (getattr(event, field), value)
        setattr(event, field, value)

    await db.flush()
    await db.refresh(event)

    await AuditService(db).log_update("projected_event", event.id, changes)

    if old_account_id != event.bank_account_id:
        await recalculate_after_change(db, old_account_id, old_date)
        await recalculate_after_change(db, event.bank_account_id, event.date)
    else:
        from_date = min(old_date, event.date)
        await recalculate_after_change(
            db, event.bank_account_id, from_date, horizon_end(max(old_date, event.date))
        )
    return event


@router.delete("/{event_id}")
async def delete_projected_event(event_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a projected event and refresh the balance cache."""
    event = await _get_event_or_404(db, event_id)
    bank_account_id = event.bank_account_id
    event_date = event.date

    await db.delete(event)
    await db.flush()

    await AuditService(db).log_delete(
        "projected_event",
        event_id,
        old_value={"name": event.name, "value": event.value, "date": event_date},
    )
    await recalculate_after_change(db, bank_account_id, event_date)
    return {"status": "deleted", "event_id": event_id}
